"""
Marketplace error taxonomy
Core helpers raise these; routers translate them into HTTPException responses
"""
from fastapi import status


class MarketplaceError(Exception):
    """Base class for every expected failure of a marketplace operation"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MarketplaceError):
    """Missing or invalid input (quantity <= 0, MOQ violated, bad action)"""
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(MarketplaceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(MarketplaceError):
    """Caller is authenticated but does not own the entity or has the wrong role"""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(MarketplaceError):
    """State conflict: duplicate bid, already processed, expired request, oversell"""
    status_code = status.HTTP_409_CONFLICT


class InternalError(MarketplaceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
