from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from models import Order, OrderItem, CartItem, UserProfile
from config import DEFAULT_ESTIMATED_DELIVERY
from routers.auth.helpers import auth_helpers, Actor
from routers.bids.helpers import bid_helpers
from routers.cart.helpers import cart_helpers
from routers.products.helpers import catalog
from utils.clock import utcnow
from utils.errors import ConflictError, ForbiddenError, ValidationError, NotFoundError
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple
import logging
import secrets
import string
import time
import uuid

logger = logging.getLogger(__name__)

ORDER_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"processing", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}

BID_LINE_SPECIFICATION = "From accepted bid"

ORDER_ITEM_FIELDS = (
    "product_id", "product_name", "product_image", "quantity", "unit_price", "total_price",
    "variant_id", "variant_name", "color", "size", "material", "style", "variation_attributes",
)


def generate_order_number() -> str:
    suffix = "".join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(5))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


class OrderHelpers:
    """
    Order materializer. Every line is re-priced from the live product at the
    ordered quantity; prices sent by the client or stored on cart lines are
    never reused, except the negotiated price of an accepted bid.
    """

    async def price_catalog_line(self, db: AsyncSession, line: Dict[str, Any]) -> Dict[str, Any]:
        product = await catalog.reload_product(db, line["product_id"])
        variant = catalog.resolve_variant(product, line.get("variant_id"))
        catalog.check_orderable(product, line["quantity"], variant)

        values = cart_helpers.build_regular_line(product, line["quantity"], variant, line)
        item = {field: values[field] for field in ORDER_ITEM_FIELDS}
        item["supplier_id"] = product.supplier_id
        return item

    async def price_bid_line(self, db: AsyncSession, cart_item: CartItem) -> Dict[str, Any]:
        """Bid lines keep the accepted price as long as the bid is still accepted"""
        bid = await bid_helpers.get_bid(db, cart_item.bid_id)
        if bid.status != "accepted":
            raise ConflictError(f"The bid for {cart_item.product_name} is no longer accepted")

        product = await catalog.reload_product(db, cart_item.product_id)
        catalog.check_orderable(
            product, cart_item.quantity,
            minimum=cart_item.min_order_quantity,
            enforce_maximum=False
        )

        return {
            "product_id": product.id,
            "product_name": cart_item.product_name,
            "product_image": cart_item.product_image,
            "quantity": cart_item.quantity,
            "unit_price": bid.bid_price,
            "total_price": round(bid.bid_price * cart_item.quantity, 2),
            "specifications": BID_LINE_SPECIFICATION,
            "bid_id": bid.id,
            "request_id": bid.request_id,
            "supplier_id": bid.supplier_id,
        }

    def group_by_supplier(self, items: List[Dict[str, Any]]) -> "OrderedDict[uuid.UUID, List[Dict[str, Any]]]":
        grouped = OrderedDict()
        for item in items:
            grouped.setdefault(item["supplier_id"], []).append(item)
        return grouped

    async def materialize(
        self,
        db: AsyncSession,
        buyer: UserProfile,
        items: List[Dict[str, Any]],
        shipping_address: Dict[str, Any],
        shipping_method: str,
        notes: Optional[str] = None
    ) -> List[Order]:
        """
        Persist one order per supplier, then take the ordered quantities out of
        stock with conditional decrements in the same transaction. A decrement
        that finds too little stock raises ConflictError and the caller rolls
        the whole checkout back.
        """
        orders = []
        for supplier_id, lines in self.group_by_supplier(items).items():
            supplier = await auth_helpers.get_profile_by_id(db, supplier_id)

            order = Order(
                order_number=generate_order_number(),
                buyer_id=buyer.id,
                buyer_name=buyer.display_name or buyer.company_name,
                buyer_email=buyer.email,
                supplier_id=supplier.id,
                supplier_name=supplier.public_name,
                supplier_email=supplier.email,
                total_amount=round(sum(line["total_price"] for line in lines), 2),
                status="pending",
                payment_status="pending",
                shipping_address=shipping_address,
                shipping_method=shipping_method,
                estimated_delivery=DEFAULT_ESTIMATED_DELIVERY,
                notes=notes
            )
            order.items = [
                OrderItem(**{field: value for field, value in line.items() if field != "supplier_id"})
                for line in lines
            ]
            db.add(order)
            await db.flush()
            orders.append(order)

        for item in items:
            await catalog.decrement_availability(db, item["product_id"], item["quantity"])
            await catalog.increment_sold(db, item["product_id"], item["quantity"])

        logger.info(f"Buyer {buyer.id} placed {len(orders)} orders ({', '.join(order.order_number for order in orders)})")
        return orders

    async def create_direct_order(self, db: AsyncSession, buyer: UserProfile, data: Dict[str, Any]) -> List[Order]:
        items = [await self.price_catalog_line(db, line) for line in data["products"]]
        return await self.materialize(
            db, buyer, items,
            data["shipping_address"], data["shipping_method"], data.get("notes")
        )

    async def checkout_cart(self, db: AsyncSession, buyer: UserProfile, data: Dict[str, Any]) -> List[Order]:
        """Order everything in the buyer's cart and remove the ordered lines"""
        cart = await cart_helpers.upsert_cart_for_user(db, buyer.id)
        if not cart.items:
            raise ValidationError("Cart is empty")

        items = []
        for cart_item in cart.items:
            if cart_item.item_type == "bid":
                items.append(await self.price_bid_line(db, cart_item))
            else:
                items.append(await self.price_catalog_line(db, {
                    "product_id": cart_item.product_id,
                    "quantity": cart_item.quantity,
                    "variant_id": cart_item.variant_id,
                    "color": cart_item.color,
                    "size": cart_item.size,
                    "material": cart_item.material,
                    "style": cart_item.style,
                    "variation_attributes": cart_item.variation_attributes,
                }))

        orders = await self.materialize(
            db, buyer, items,
            data["shipping_address"], data["shipping_method"], data.get("notes")
        )
        await cart_helpers.clear(db, cart, [cart_item.id for cart_item in cart.items])
        return orders

    async def get_order(self, db: AsyncSession, order_id: uuid.UUID, fresh: bool = False) -> Order:
        statement = select(Order).where(Order.id == order_id)
        if fresh:
            statement = statement.execution_options(populate_existing=True)
        result = await db.execute(statement)
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        return order

    def check_participant(self, order: Order, actor: Actor, profile: UserProfile) -> None:
        if actor.role == "admin":
            return
        if profile.id not in (order.buyer_id, order.supplier_id):
            raise ForbiddenError("You can only access your own orders")

    async def list_orders(
        self,
        db: AsyncSession,
        actor: Actor,
        profile: UserProfile,
        status_filter: Optional[str] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[Order], int]:
        filters = []
        if actor.role == "supplier":
            filters.append(Order.supplier_id == profile.id)
        elif actor.role != "admin":
            filters.append(Order.buyer_id == profile.id)
        if status_filter:
            filters.append(Order.status == status_filter)

        total_result = await db.execute(select(func.count(Order.id)).where(*filters))
        total = total_result.scalar()

        result = await db.execute(
            select(Order)
            .where(*filters)
            .order_by(Order.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return result.scalars().all(), total

    async def update_order_status(
        self,
        db: AsyncSession,
        order: Order,
        actor: Actor,
        profile: UserProfile,
        new_status: Optional[str] = None,
        payment_status: Optional[str] = None
    ) -> None:
        """
        Suppliers and admins may apply any allowed transition and set the
        payment status. Buyers may only cancel an order that is still pending.
        """
        self.check_participant(order, actor, profile)
        is_seller_side = actor.role == "admin" or order.supplier_id == profile.id

        if new_status is None and payment_status is None:
            raise ValidationError("Nothing to update")

        values = {"updated_at": utcnow()}

        if new_status is not None:
            if not is_seller_side and not (order.status == "pending" and new_status == "cancelled"):
                raise ForbiddenError("Buyers can only cancel pending orders")
            if new_status not in ORDER_TRANSITIONS.get(order.status, set()):
                raise ConflictError(f"Cannot change order status from {order.status} to {new_status}")
            values["status"] = new_status
            if new_status == "delivered":
                values["delivered_at"] = utcnow()

        if payment_status is not None:
            if not is_seller_side:
                raise ForbiddenError("Only the supplier can update the payment status")
            values["payment_status"] = payment_status

        result = await db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == order.status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError("Order was updated concurrently, please retry")

        logger.info(f"Order {order.order_number} updated by {actor.role} {profile.id}: {values}")


order_helpers = OrderHelpers()
