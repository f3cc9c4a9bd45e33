from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from routers.auth.auth import get_current_actor
from routers.auth.helpers import auth_helpers, Actor
from dependencies.rbac import require_request_read, require_request_write
from utils.errors import MarketplaceError
from utils.response_helpers import request_to_dict
from .helpers import request_helpers
from .schemas import SourcingRequestCreate, SourcingRequestResponse, SourcingRequestListResponse
from typing import Optional
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/requests", tags=["Sourcing Requests"])


# =================
# REQUEST ROUTES
# =================

@router.post("/", response_model=SourcingRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    request_data: SourcingRequestCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_request_write)
):
    """Post a sourcing request (buyers only); expires after the configured number of days"""
    try:
        actor.require_role("buyer")
        buyer = await auth_helpers.get_profile(db, actor)

        sourcing_request = await request_helpers.create_request(db, buyer, request_data.model_dump(mode="json"))
        await db.commit()

        return SourcingRequestResponse.model_validate(request_to_dict(sourcing_request))

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating request: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create request"
        )


@router.get("/", response_model=SourcingRequestListResponse)
async def list_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    request_status: str = Query("open", alias="status"),
    category: Optional[str] = Query(None),
    mine: bool = Query(False),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_request_read)
):
    """Browse requests; `mine=true` lists the calling buyer's own requests"""
    try:
        buyer_id = None
        if mine:
            buyer = await auth_helpers.get_profile(db, actor)
            buyer_id = buyer.id

        requests, total = await request_helpers.list_requests(
            db,
            status_filter=request_status,
            category=category,
            buyer_id=buyer_id,
            page=page,
            limit=limit
        )

        return SourcingRequestListResponse(
            requests=[SourcingRequestResponse.model_validate(request_to_dict(item)) for item in requests],
            page=page,
            limit=limit,
            total=total
        )

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error listing requests: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get requests"
        )


@router.get("/{request_id}", response_model=SourcingRequestResponse)
async def get_request(
    request_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_request_read)
):
    """Get one request; every read counts as a view"""
    try:
        await request_helpers.get_request(db, request_id)
        await request_helpers.record_view(db, request_id)
        await db.commit()

        sourcing_request = await request_helpers.get_request(db, request_id, fresh=True)
        return SourcingRequestResponse.model_validate(request_to_dict(sourcing_request))

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error getting request: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get request"
        )


@router.post("/{request_id}/close", response_model=SourcingRequestResponse)
async def close_request(
    request_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_request_write)
):
    """Close an open request without accepting a bid (owner only)"""
    try:
        buyer = await auth_helpers.get_profile(db, actor)
        await request_helpers.close_request(db, request_id, buyer)
        await db.commit()

        sourcing_request = await request_helpers.get_request(db, request_id, fresh=True)
        return SourcingRequestResponse.model_validate(request_to_dict(sourcing_request))

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error closing request: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to close request"
        )
