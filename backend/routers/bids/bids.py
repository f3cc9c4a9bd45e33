from fastapi import APIRouter, Depends, HTTPException, status, Query, BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from routers.auth.auth import get_current_actor
from routers.auth.helpers import auth_helpers, Actor
from routers.requests.helpers import request_helpers
from dependencies.rbac import require_bid_read, require_bid_write, require_bid_delete
from utils.errors import MarketplaceError
from utils.response_helpers import bid_to_dict, request_to_dict, cart_item_to_dict
from utils.notifications import (
    send_email, send_sms,
    get_new_bid_email, get_new_bid_sms,
    get_bid_decision_email, get_bid_decision_sms
)
from .acceptance import accept_bid
from .helpers import bid_helpers, validate_action
from .schemas import BidCreate, BidAction, BidResponse, BidListResponse, BidAcceptanceResponse
from typing import Optional
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bids", tags=["Bids"])


def _notify(background_tasks: BackgroundTasks, profile, subject: str, body: str, sms_body: str):
    if profile is None:
        return
    if profile.email:
        background_tasks.add_task(send_email, profile.email, subject, body)
    if profile.phone_number:
        background_tasks.add_task(send_sms, profile.phone_number, sms_body)


async def send_new_bid_notifications(db: AsyncSession, bid_data: dict, request_data: dict, background_tasks: BackgroundTasks):
    """Tell the buyer about a new bid on their request"""
    try:
        buyer = await auth_helpers.get_profile_by_id(db, uuid.UUID(request_data["buyer_id"]))
        subject, body = get_new_bid_email(bid_data, request_data)
        _notify(background_tasks, buyer, subject, body, get_new_bid_sms(bid_data, request_data))
    except Exception as e:
        logger.warning(f"Failed to queue new bid notifications: {str(e)}")


async def send_bid_decision_notifications(
    db: AsyncSession,
    bid_data: dict,
    request_data: dict,
    accepted: bool,
    background_tasks: BackgroundTasks
):
    try:
        supplier = await auth_helpers.get_profile_by_id(db, uuid.UUID(bid_data["supplier_id"]))
        subject, body = get_bid_decision_email(bid_data, request_data, accepted)
        _notify(background_tasks, supplier, subject, body, get_bid_decision_sms(bid_data, request_data, accepted))
    except Exception as e:
        logger.warning(f"Failed to queue bid decision notifications: {str(e)}")


# =================
# BID ROUTES
# =================

@router.post("/", response_model=BidResponse, status_code=status.HTTP_201_CREATED)
async def create_bid(
    bid_data: BidCreate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_bid_write)
):
    """Place a bid on an open sourcing request (suppliers only, one bid per request)"""
    try:
        actor.require_role("supplier")
        supplier = await auth_helpers.get_profile(db, actor)

        bid = await bid_helpers.create_bid(db, actor, supplier, bid_data.model_dump())
        await db.commit()

        bid_dict = bid_to_dict(bid)
        sourcing_request = await request_helpers.get_request(db, bid.request_id, fresh=True)
        await send_new_bid_notifications(db, bid_dict, request_to_dict(sourcing_request), background_tasks)

        return BidResponse.model_validate(bid_dict)

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating bid: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create bid"
        )


@router.get("/", response_model=BidListResponse)
async def list_bids(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    request_id: Optional[uuid.UUID] = Query(None),
    supplier_id: Optional[str] = Query(None, description="Supplier profile id, or 'me'"),
    bid_status: Optional[str] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_bid_read)
):
    """List bids, newest first"""
    try:
        supplier_filter = None
        if supplier_id == "me":
            supplier = await auth_helpers.get_profile(db, actor)
            supplier_filter = supplier.id
        elif supplier_id:
            try:
                supplier_filter = uuid.UUID(supplier_id)
            except ValueError:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Invalid supplier_id"
                )

        bids, total = await bid_helpers.list_bids(
            db,
            request_id=request_id,
            supplier_id=supplier_filter,
            status_filter=bid_status,
            page=page,
            limit=limit
        )

        return BidListResponse(
            bids=[BidResponse.model_validate(bid_to_dict(bid)) for bid in bids],
            page=page,
            limit=limit,
            total=total
        )

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error listing bids: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get bids"
        )


@router.get("/{bid_id}", response_model=BidResponse)
async def get_bid(
    bid_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_bid_read)
):
    try:
        bid = await bid_helpers.get_bid(db, bid_id)
        return BidResponse.model_validate(bid_to_dict(bid))

    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error getting bid: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get bid"
        )


@router.patch("/{bid_id}")
async def update_bid(
    bid_id: uuid.UUID,
    bid_action: BidAction,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_bid_write)
):
    """
    Accept or reject a bid (request owner only).
    Accepting fulfils the request, rejects every other pending bid and puts
    the bid into the buyer's cart, all in one transaction.
    """
    try:
        action = validate_action(bid_action.action)
        buyer = await auth_helpers.get_profile(db, actor)

        if action == "accept":
            result = await accept_bid(db, bid_id, buyer)

            response = BidAcceptanceResponse(
                bid=BidResponse.model_validate(bid_to_dict(result.bid)),
                request=request_to_dict(result.request),
                cart_item=cart_item_to_dict(result.cart_item),
                rejected_bids=result.rejected_bids
            )
            await send_bid_decision_notifications(
                db, bid_to_dict(result.bid), request_to_dict(result.request), True, background_tasks
            )
            return response

        await bid_helpers.reject_bid(db, bid_id, buyer)
        await db.commit()

        bid = await bid_helpers.get_bid(db, bid_id, fresh=True)
        sourcing_request = await request_helpers.get_request(db, bid.request_id)
        bid_dict = bid_to_dict(bid)
        await send_bid_decision_notifications(
            db, bid_dict, request_to_dict(sourcing_request), False, background_tasks
        )
        return BidResponse.model_validate(bid_dict)

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating bid: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update bid"
        )


@router.delete("/{bid_id}", response_model=BidResponse)
async def withdraw_bid(
    bid_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_bid_delete)
):
    """Withdraw a pending bid (bid owner only)"""
    try:
        supplier = await auth_helpers.get_profile(db, actor)
        await bid_helpers.withdraw_bid(db, bid_id, supplier)

        bid = await bid_helpers.get_bid(db, bid_id, fresh=True)
        return BidResponse.model_validate(bid_to_dict(bid))

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error withdrawing bid: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to withdraw bid"
        )
