from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from models import SourcingRequest, UserProfile
from config import REQUEST_EXPIRY_DAYS
from utils.clock import utcnow
from utils.errors import NotFoundError, ConflictError, ForbiddenError
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple
import logging
import secrets
import string
import time
import uuid

logger = logging.getLogger(__name__)

# open -> fulfilled only through bid acceptance; closed and fulfilled are terminal
REQUEST_TRANSITIONS = {
    "open": {"closed", "fulfilled"},
    "closed": set(),
    "fulfilled": set(),
}

URGENCY_POINTS = {"urgent": 3, "high": 2, "medium": 1}


def generate_request_number() -> str:
    suffix = "".join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(5))
    return f"RQ{int(time.time() * 1000)}{suffix}"


def calculate_priority(max_budget: float, quantity: int, urgency: str) -> str:
    score = 0

    if max_budget > 100000:
        score += 3
    elif max_budget > 50000:
        score += 2
    elif max_budget > 10000:
        score += 1

    if quantity > 1000:
        score += 2
    elif quantity > 100:
        score += 1

    score += URGENCY_POINTS.get(urgency, 0)

    if score >= 6:
        return "urgent"
    if score >= 4:
        return "high"
    if score >= 2:
        return "medium"
    return "low"


class RequestHelpers:
    """Request side of the request/bid ledger"""

    async def create_request(self, db: AsyncSession, buyer: UserProfile, data: Dict[str, Any]) -> SourcingRequest:
        max_budget = data.get("max_budget")
        if max_budget is None:
            max_budget = data["target_price"] * data["quantity"]

        sourcing_request = SourcingRequest(
            request_number=generate_request_number(),
            buyer_id=buyer.id,
            buyer_name=buyer.display_name or buyer.company_name,
            buyer_email=buyer.email,
            **{**data, "max_budget": max_budget},
            priority=calculate_priority(max_budget, data["quantity"], data.get("urgency", "medium")),
            status="open",
            bid_count=0,
            view_count=0,
            expires_at=utcnow() + timedelta(days=REQUEST_EXPIRY_DAYS)
        )
        db.add(sourcing_request)
        await db.flush()

        logger.info(f"Request {sourcing_request.request_number} created by buyer {buyer.id}")
        return sourcing_request

    async def get_request(self, db: AsyncSession, request_id: uuid.UUID, fresh: bool = False) -> SourcingRequest:
        statement = select(SourcingRequest).where(SourcingRequest.id == request_id)
        if fresh:
            statement = statement.execution_options(populate_existing=True)
        result = await db.execute(statement)
        sourcing_request = result.scalar_one_or_none()
        if not sourcing_request:
            raise NotFoundError("Request not found")
        return sourcing_request

    async def list_requests(
        self,
        db: AsyncSession,
        status_filter: Optional[str] = None,
        category: Optional[str] = None,
        buyer_id: Optional[uuid.UUID] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[SourcingRequest], int]:
        filters = []
        if status_filter and status_filter != "all":
            filters.append(SourcingRequest.status == status_filter)
        if category:
            filters.append(SourcingRequest.category == category)
        if buyer_id:
            filters.append(SourcingRequest.buyer_id == buyer_id)

        total_result = await db.execute(select(func.count(SourcingRequest.id)).where(*filters))
        total = total_result.scalar()

        result = await db.execute(
            select(SourcingRequest)
            .where(*filters)
            .order_by(SourcingRequest.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return result.scalars().all(), total

    async def update_request_status(
        self,
        db: AsyncSession,
        request_id: uuid.UUID,
        from_status: str,
        to_status: str,
        **values: Any
    ) -> None:
        """
        Compare-and-set status transition. The row is only written while it is
        still in from_status, so of two racing writers exactly one wins; the
        other gets a ConflictError.
        """
        if to_status not in REQUEST_TRANSITIONS.get(from_status, set()):
            raise ConflictError(f"Request cannot move from {from_status} to {to_status}")

        result = await db.execute(
            update(SourcingRequest)
            .where(SourcingRequest.id == request_id, SourcingRequest.status == from_status)
            .values(status=to_status, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError("Request has already been processed")

    async def close_request(self, db: AsyncSession, request_id: uuid.UUID, buyer: UserProfile) -> None:
        sourcing_request = await self.get_request(db, request_id)
        if sourcing_request.buyer_id != buyer.id:
            raise ForbiddenError("Only the request owner can close it")
        await self.update_request_status(db, request_id, "open", "closed")
        logger.info(f"Request {request_id} closed by buyer {buyer.id}")

    async def record_view(self, db: AsyncSession, request_id: uuid.UUID) -> None:
        await db.execute(
            update(SourcingRequest)
            .where(SourcingRequest.id == request_id)
            .values(view_count=SourcingRequest.view_count + 1)
            .execution_options(synchronize_session=False)
        )

    async def adjust_bid_count(self, db: AsyncSession, request_id: uuid.UUID, delta: int) -> None:
        """Atomic increment/decrement of the advisory bid counter, never below zero"""
        statement = update(SourcingRequest).where(SourcingRequest.id == request_id)
        if delta < 0:
            statement = statement.where(SourcingRequest.bid_count >= -delta)
        await db.execute(
            statement
            .values(bid_count=SourcingRequest.bid_count + delta)
            .execution_options(synchronize_session=False)
        )


request_helpers = RequestHelpers()
