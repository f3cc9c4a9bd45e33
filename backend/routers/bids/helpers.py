from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, update, func
from models import Bid, UserProfile
from routers.auth.helpers import Actor
from routers.products.helpers import catalog
from routers.requests.helpers import request_helpers
from utils.clock import utcnow, has_passed
from utils.errors import NotFoundError, ForbiddenError, ConflictError, ValidationError
from typing import Any, Dict, List, Optional, Tuple
import logging
import uuid

logger = logging.getLogger(__name__)

BID_ACTIONS = ("accept", "reject")

# pending is the only state a bid ever leaves
BID_TRANSITIONS = {
    "pending": {"accepted", "rejected", "withdrawn"},
    "accepted": set(),
    "rejected": set(),
    "withdrawn": set(),
}

TIMESTAMP_FOR_STATUS = {
    "accepted": "accepted_at",
    "rejected": "rejected_at",
    "withdrawn": "withdrawn_at",
}


def validate_action(action: str) -> str:
    if action not in BID_ACTIONS:
        raise ValidationError("Invalid action. Must be 'accept' or 'reject'")
    return action


class BidHelpers:
    """Bid side of the request/bid ledger"""

    async def create_bid(self, db: AsyncSession, actor: Actor, supplier: UserProfile, data: Dict[str, Any]) -> Bid:
        """
        Place a bid. Guards run in order: supplier role, request exists and is
        open and unexpired, product exists and is the supplier's own, no earlier
        bid by the same supplier on the request. A duplicate that slips past
        the read check is caught by the unique index.
        """
        actor.require_role("supplier")

        sourcing_request = await request_helpers.get_request(db, data["request_id"])
        if sourcing_request.status != "open":
            raise ConflictError("Request is no longer accepting bids")
        if has_passed(sourcing_request.expires_at):
            raise ConflictError("Request has expired")

        product = await catalog.get_product(db, data["product_id"])
        if product.supplier_id != supplier.id:
            raise ForbiddenError("You can only bid with your own products")

        existing = await db.execute(
            select(Bid.id).where(
                Bid.request_id == sourcing_request.id,
                Bid.supplier_id == supplier.id
            )
        )
        if existing.scalar_one_or_none():
            raise ConflictError("You have already placed a bid on this request")

        bid = Bid(
            request_id=sourcing_request.id,
            supplier_id=supplier.id,
            product_id=product.id,
            supplier_name=supplier.public_name,
            product_name=product.title,
            original_price=product.price,
            bid_price=data["bid_price"],
            quantity=data["quantity"],
            delivery_time=data["delivery_time"],
            message=data.get("message") or "",
            status="pending"
        )

        db.add(bid)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            logger.warning(f"Duplicate bid by supplier {supplier.id} on request {sourcing_request.id}")
            raise ConflictError("You have already placed a bid on this request")

        await request_helpers.adjust_bid_count(db, sourcing_request.id, 1)

        logger.info(f"Bid {bid.id} placed by supplier {supplier.id} on request {sourcing_request.request_number}")
        return bid

    async def get_bid(self, db: AsyncSession, bid_id: uuid.UUID, fresh: bool = False) -> Bid:
        statement = select(Bid).where(Bid.id == bid_id)
        if fresh:
            statement = statement.execution_options(populate_existing=True)
        result = await db.execute(statement)
        bid = result.scalar_one_or_none()
        if not bid:
            raise NotFoundError("Bid not found")
        return bid

    async def list_bids(
        self,
        db: AsyncSession,
        request_id: Optional[uuid.UUID] = None,
        supplier_id: Optional[uuid.UUID] = None,
        status_filter: Optional[str] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[Bid], int]:
        filters = []
        if request_id:
            filters.append(Bid.request_id == request_id)
        if supplier_id:
            filters.append(Bid.supplier_id == supplier_id)
        if status_filter:
            filters.append(Bid.status == status_filter)

        total_result = await db.execute(select(func.count(Bid.id)).where(*filters))
        total = total_result.scalar()

        result = await db.execute(
            select(Bid)
            .where(*filters)
            .order_by(Bid.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return result.scalars().all(), total

    async def update_bid_status(self, db: AsyncSession, bid_id: uuid.UUID, from_status: str, to_status: str) -> None:
        """Compare-and-set transition; a bid that already left from_status is a conflict"""
        if to_status not in BID_TRANSITIONS.get(from_status, set()):
            raise ConflictError(f"Bid cannot move from {from_status} to {to_status}")

        now = utcnow()
        result = await db.execute(
            update(Bid)
            .where(Bid.id == bid_id, Bid.status == from_status)
            .values(status=to_status, updated_at=now, **{TIMESTAMP_FOR_STATUS[to_status]: now})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError("Bid already processed")

    async def reject_pending_siblings(self, db: AsyncSession, request_id: uuid.UUID, accepted_bid_id: uuid.UUID) -> int:
        now = utcnow()
        result = await db.execute(
            update(Bid)
            .where(
                Bid.request_id == request_id,
                Bid.id != accepted_bid_id,
                Bid.status == "pending"
            )
            .values(status="rejected", rejected_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def reject_bid(self, db: AsyncSession, bid_id: uuid.UUID, buyer: UserProfile) -> Bid:
        bid = await self.get_bid(db, bid_id)
        sourcing_request = await request_helpers.get_request(db, bid.request_id)
        if sourcing_request.buyer_id != buyer.id:
            raise ForbiddenError("Only the request owner can reject bids")
        if bid.status != "pending":
            raise ConflictError("Bid already processed")

        await self.update_bid_status(db, bid.id, "pending", "rejected")
        logger.info(f"Bid {bid.id} rejected by buyer {buyer.id}")
        return bid

    async def withdraw_bid(self, db: AsyncSession, bid_id: uuid.UUID, supplier: UserProfile) -> Bid:
        """
        Withdraw a pending bid, then decrement the request's bid counter as a
        separate step. The withdrawal is committed first; a failed decrement
        only leaves the advisory counter high and is logged.
        """
        bid = await self.get_bid(db, bid_id)
        if bid.supplier_id != supplier.id:
            raise ForbiddenError("You can only withdraw your own bids")
        if bid.status != "pending":
            raise ConflictError(f"Cannot withdraw a bid that is {bid.status}")

        await self.update_bid_status(db, bid.id, "pending", "withdrawn")
        await db.commit()
        logger.info(f"Bid {bid.id} withdrawn by supplier {supplier.id}")

        try:
            await request_helpers.adjust_bid_count(db, bid.request_id, -1)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.warning(f"Bid {bid.id} withdrawn but bid count of request {bid.request_id} not decremented: {str(e)}")

        return bid


bid_helpers = BidHelpers()
