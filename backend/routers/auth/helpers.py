from dataclasses import dataclass
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from config import JWT_SECRET_KEY, JWT_ALGORITHM
from models import UserProfile
from utils.errors import NotFoundError, ForbiddenError, UnauthorizedError
import jwt
import logging
import uuid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Resolved caller identity handed to every marketplace helper"""
    user_id: uuid.UUID
    role: str
    email: str = None

    @classmethod
    def from_current_user(cls, current_user: dict) -> "Actor":
        return cls(
            user_id=uuid.UUID(str(current_user["user_id"])),
            role=current_user.get("role") or "buyer",
            email=current_user.get("email")
        )

    def require_role(self, *roles: str) -> None:
        if self.role not in roles:
            allowed = " or ".join(f"{role}s" for role in roles)
            raise ForbiddenError(f"Only {allowed} can perform this action")


class AuthHelpers:
    """Helper functions for authentication operations"""

    def verify_token(self, token: str):
        """
        Verify the auth provider's JWT locally
        Returns user object with role from JWT
        """
        try:
            payload = jwt.decode(
                token,
                JWT_SECRET_KEY,
                algorithms=[JWT_ALGORITHM],
                options={
                    "verify_exp": True,
                    "verify_iat": True,
                    "verify_signature": True,
                    "verify_aud": False
                }
            )

            user_id = payload.get("sub")
            email = payload.get("email")
            user_metadata = payload.get("user_metadata") or {}
            role = user_metadata.get("role")

            if not user_id:
                raise UnauthorizedError("Invalid token: missing user ID")

            return type('User', (), {
                'id': user_id,
                'email': email,
                'role': role,
                'payload': payload
            })()

        except UnauthorizedError:
            raise
        except jwt.ExpiredSignatureError:
            logger.warning("JWT token expired")
            raise UnauthorizedError("Token expired")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid JWT token: {str(e)}")
            raise UnauthorizedError("Invalid token")
        except Exception as e:
            logger.error(f"JWT verification failed: {str(e)}")
            raise UnauthorizedError("Token verification failed")

    async def get_profile(self, db: AsyncSession, actor: Actor) -> UserProfile:
        """Profile of the calling identity"""
        result = await db.execute(
            select(UserProfile).where(UserProfile.user_id == actor.user_id)
        )
        profile = result.scalar_one_or_none()
        if not profile:
            raise NotFoundError("User profile not found")
        return profile

    async def get_profile_by_id(self, db: AsyncSession, profile_id: uuid.UUID) -> UserProfile:
        profile = await db.get(UserProfile, profile_id)
        if not profile:
            raise NotFoundError("User not found")
        return profile


auth_helpers = AuthHelpers()
