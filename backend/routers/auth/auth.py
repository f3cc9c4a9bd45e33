from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from config import get_db
from models import UserProfile
from utils.errors import UnauthorizedError
from utils.response_helpers import user_profile_to_dict
from .schemas import CreateUserProfileRequest, UserResponse
from .helpers import auth_helpers, Actor
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

security = HTTPBearer()


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
):
    """Get current user from JWT token"""
    token = credentials.credentials
    try:
        token_user = auth_helpers.verify_token(token)
    except UnauthorizedError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    current_user = {
        "user_id": token_user.id,
        "email": token_user.email,
        "role": None
    }

    # Try to get role from JWT first
    if token_user.role:
        current_user["role"] = token_user.role
        logger.info(f"User {token_user.id} authenticated via JWT role: {token_user.role}")
    else:
        # Fallback: Get role from database
        logger.info(f"No role in JWT for user {token_user.id}, checking database...")
        result = await db.execute(
            select(UserProfile).where(UserProfile.user_id == Actor.from_current_user(current_user).user_id)
        )
        user_profile = result.scalar_one_or_none()
        if user_profile:
            current_user["role"] = user_profile.role
            logger.info(f"User {token_user.id} role from database: {user_profile.role}")
        else:
            current_user["role"] = "buyer"
            logger.warning(f"No user profile found for {token_user.id}, using default role: buyer")

    request.state.current_user = current_user
    return current_user


async def get_current_actor(current_user: dict = Depends(get_current_user)) -> Actor:
    return Actor.from_current_user(current_user)


@router.post("/create-profile", response_model=UserResponse)
async def create_user_profile(
    profile_data: CreateUserProfileRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Create or update the profile of the authenticated user"""
    try:
        result = await db.execute(
            select(UserProfile).where(UserProfile.user_id == actor.user_id)
        )
        profile = result.scalar_one_or_none()

        values = profile_data.model_dump(exclude_unset=True, exclude_none=True)
        if "email" not in values and actor.email:
            values["email"] = actor.email

        if profile:
            for field, value in values.items():
                setattr(profile, field, value)
        else:
            values.setdefault("role", actor.role if actor.role in ("buyer", "supplier") else "buyer")
            profile = UserProfile(user_id=actor.user_id, **values)
            db.add(profile)

        await db.commit()
        await db.refresh(profile)

        logger.info(f"Profile saved for user {actor.user_id} with role {profile.role}")
        return UserResponse.model_validate(user_profile_to_dict(profile, actor.email))

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Profile creation/update failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create/update profile"
        )


@router.get("/profile", response_model=UserResponse)
async def get_user_profile(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Get the current user's profile"""
    try:
        result = await db.execute(
            select(UserProfile).where(UserProfile.user_id == actor.user_id)
        )
        user_profile = result.scalar_one_or_none()

        if not user_profile:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User profile not found"
            )

        return UserResponse.model_validate(user_profile_to_dict(user_profile, actor.email))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get profile failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve profile"
        )
