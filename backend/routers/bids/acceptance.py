"""
Bid acceptance

Accepting a bid touches the bid, its siblings, the request and the buyer's
cart. All of it happens in one transaction with a single commit at the end:
either the request is fulfilled with exactly one accepted bid, the other
pending bids rejected and the bid line in the cart, or nothing changed.

Two accepts racing on bids of the same request are serialized by the first
write, the conditional open -> fulfilled update on the request row. The loser
updates zero rows and gets a ConflictError; it is never retried.
"""
from dataclasses import dataclass
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from models import Bid, CartItem, SourcingRequest, UserProfile
from routers.auth.helpers import auth_helpers
from routers.cart.helpers import cart_helpers
from routers.products.helpers import catalog
from routers.requests.helpers import request_helpers
from utils.clock import utcnow
from utils.errors import ConflictError, ForbiddenError, InternalError
from .helpers import bid_helpers
import logging
import math
import uuid

logger = logging.getLogger(__name__)


@dataclass
class AcceptanceResult:
    bid: Bid
    request: SourcingRequest
    cart_item: CartItem
    rejected_bids: int


def discount_percent(original_price: float, bid_price: float) -> int:
    """Whole percent saved against the list price, rounded half up; negative for a bid above list"""
    if not original_price:
        return 0
    percent = (original_price - bid_price) / original_price * 100
    return math.floor(percent + 0.5)


async def accept_bid(db: AsyncSession, bid_id: uuid.UUID, buyer: UserProfile) -> AcceptanceResult:
    bid = await bid_helpers.get_bid(db, bid_id)
    sourcing_request = await request_helpers.get_request(db, bid.request_id)

    if sourcing_request.buyer_id != buyer.id:
        raise ForbiddenError("Only the request owner can accept bids")
    if bid.status != "pending":
        raise ConflictError("Bid already processed")
    if sourcing_request.status != "open":
        raise ConflictError("Request is no longer open")

    try:
        now = utcnow()

        # The request row is the serialization point, so it is written first
        await request_helpers.update_request_status(
            db, sourcing_request.id, "open", "fulfilled",
            accepted_bid_id=bid.id,
            accepted_at=now
        )
        await bid_helpers.update_bid_status(db, bid.id, "pending", "accepted")
        rejected = await bid_helpers.reject_pending_siblings(db, sourcing_request.id, bid.id)

        # Snapshots are re-read inside the transaction
        product = await catalog.reload_product(db, bid.product_id)
        supplier = await auth_helpers.get_profile_by_id(db, bid.supplier_id)

        cart = await cart_helpers.upsert_cart_for_user(db, buyer.id)
        cart_item = await cart_helpers.append_item(
            db, cart.id,
            item_type="bid",
            product_id=product.id,
            product_name=product.title,
            product_image=(product.images or [None])[0],
            supplier_id=supplier.id,
            supplier_name=supplier.public_name,
            quantity=bid.quantity,
            unit_price=bid.bid_price,
            total_price=round(bid.bid_price * bid.quantity, 2),
            is_bulk_order=True,
            min_order_quantity=bid.quantity,
            max_order_quantity=None,
            request_id=sourcing_request.id,
            bid_id=bid.id,
            original_price=product.price,
            discount_percent=discount_percent(product.price, bid.bid_price)
        )

        await db.commit()

    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Bid {bid_id} acceptance hit a constraint: {str(e)}")
        raise ConflictError("Bid already processed")
    except ConflictError:
        await db.rollback()
        logger.warning(f"Bid {bid_id} acceptance lost to a concurrent update")
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Bid {bid_id} acceptance failed in storage: {str(e)}")
        raise InternalError("Failed to accept bid")
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Bid {bid_id} accepted by buyer {buyer.id}; request {sourcing_request.request_number} fulfilled, "
        f"{rejected} other bids rejected"
    )

    return AcceptanceResult(
        bid=await bid_helpers.get_bid(db, bid_id, fresh=True),
        request=await request_helpers.get_request(db, sourcing_request.id, fresh=True),
        cart_item=await cart_helpers.get_item(db, cart.id, cart_item.id),
        rejected_bids=rejected
    )
