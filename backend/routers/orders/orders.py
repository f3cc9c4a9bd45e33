from fastapi import APIRouter, Depends, HTTPException, status, Query, BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models import Order
from routers.auth.auth import get_current_actor
from routers.auth.helpers import auth_helpers, Actor
from dependencies.rbac import require_order_read, require_order_write
from utils.errors import MarketplaceError
from utils.response_helpers import order_to_dict
from utils.notifications import (
    send_email, send_sms,
    get_order_placed_email, get_order_placed_sms
)
from .helpers import order_helpers
from .schemas import (
    OrderCreate, CheckoutRequest, OrderStatusUpdate,
    OrderResponse, OrderListResponse, CheckoutResponse
)
from typing import List, Optional
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


def _checkout_response(orders: List[Order]) -> CheckoutResponse:
    order_dicts = [order_to_dict(order) for order in orders]
    return CheckoutResponse(
        orders=[OrderResponse.model_validate(order) for order in order_dicts],
        total_amount=round(sum(order["total_amount"] for order in order_dicts), 2)
    )


async def send_order_notifications(db: AsyncSession, orders: List[Order], background_tasks: BackgroundTasks):
    """Send email and SMS notifications for new orders to both parties"""
    try:
        for order in orders:
            order_data = order_to_dict(order)
            buyer = await auth_helpers.get_profile_by_id(db, order.buyer_id)
            supplier = await auth_helpers.get_profile_by_id(db, order.supplier_id)

            for profile, email, is_buyer in ((buyer, order.buyer_email, True), (supplier, order.supplier_email, False)):
                if email:
                    subject, body = get_order_placed_email(order_data, is_buyer=is_buyer)
                    background_tasks.add_task(send_email, email, subject, body)
                if profile.phone_number:
                    background_tasks.add_task(send_sms, profile.phone_number, get_order_placed_sms(order_data, is_buyer=is_buyer))

    except Exception as e:
        logger.warning(f"Failed to queue order notifications: {str(e)}")


# =================
# ORDER ROUTES
# =================

@router.post("/", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_order_write)
):
    """
    Order products directly. Prices are resolved from the current tier table
    at the ordered quantity; one order is created per supplier.
    """
    try:
        actor.require_role("buyer")
        buyer = await auth_helpers.get_profile(db, actor)

        orders = await order_helpers.create_direct_order(db, buyer, order_data.model_dump())
        await db.commit()

        response = _checkout_response(orders)
        await send_order_notifications(db, orders, background_tasks)
        return response

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating order: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create order"
        )


@router.post("/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def checkout(
    checkout_data: CheckoutRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_order_write)
):
    """Turn the whole cart into orders and empty it, in one transaction"""
    try:
        actor.require_role("buyer")
        buyer = await auth_helpers.get_profile(db, actor)

        orders = await order_helpers.checkout_cart(db, buyer, checkout_data.model_dump())
        await db.commit()

        response = _checkout_response(orders)
        await send_order_notifications(db, orders, background_tasks)
        return response

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error during checkout: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to checkout"
        )


@router.get("/", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    order_status: Optional[str] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_order_read)
):
    """Buyers see the orders they placed, suppliers the orders they received"""
    try:
        profile = await auth_helpers.get_profile(db, actor)
        orders, total = await order_helpers.list_orders(
            db, actor, profile,
            status_filter=order_status,
            page=page,
            limit=limit
        )

        return OrderListResponse(
            orders=[OrderResponse.model_validate(order_to_dict(order)) for order in orders],
            page=page,
            limit=limit,
            total=total
        )

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error listing orders: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get orders"
        )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_order_read)
):
    try:
        profile = await auth_helpers.get_profile(db, actor)
        order = await order_helpers.get_order(db, order_id)
        order_helpers.check_participant(order, actor, profile)

        return OrderResponse.model_validate(order_to_dict(order))

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error getting order: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get order"
        )


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    status_update: OrderStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_order_write)
):
    """Move an order along its lifecycle or record its payment status"""
    try:
        profile = await auth_helpers.get_profile(db, actor)
        order = await order_helpers.get_order(db, order_id)

        await order_helpers.update_order_status(
            db, order, actor, profile,
            new_status=status_update.status.value if status_update.status else None,
            payment_status=status_update.payment_status.value if status_update.payment_status else None
        )
        await db.commit()

        order = await order_helpers.get_order(db, order_id, fresh=True)
        return OrderResponse.model_validate(order_to_dict(order))

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating order status: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update order status"
        )
