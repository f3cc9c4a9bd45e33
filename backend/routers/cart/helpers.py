from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from models import Cart, CartItem, Product
from routers.products.helpers import catalog
from utils.clock import utcnow
from utils.errors import NotFoundError, ValidationError, ConflictError
from utils.variants import variant_name, variant_selectors, SELECTOR_TYPES
from typing import Any, Dict, Iterable, Optional
import logging
import uuid

logger = logging.getLogger(__name__)

# Attempts at the compare-and-set merge before giving up with a conflict
MERGE_ATTEMPTS = 3


def _insert_for(db: AsyncSession):
    if db.get_bind().dialect.name == "postgresql":
        return pg_insert
    return sqlite_insert


def _line_key(values: Dict[str, Any]) -> tuple:
    return (
        str(values.get("product_id")),
        values.get("variant_id"),
        *(values.get(selector) for selector in SELECTOR_TYPES)
    )


def _item_key(item: CartItem) -> tuple:
    return _line_key({field: getattr(item, field) for field in ("product_id", "variant_id", *SELECTOR_TYPES)})


class CartHelpers:
    """
    Cart aggregator. Lines are separate rows, and every write is an insert,
    a conditional update or a delete on a single line, so the bid acceptance
    and the buyer's own cart edits can interleave without losing updates.
    """

    async def upsert_cart_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> Cart:
        """Create the user's cart if missing; safe under concurrent first writes"""
        insert = _insert_for(db)
        now = utcnow()
        await db.execute(
            insert(Cart)
            .values(id=uuid.uuid4(), user_id=user_id, created_at=now, updated_at=now)
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        return await self.get_cart(db, user_id)

    async def get_cart(self, db: AsyncSession, user_id: uuid.UUID) -> Cart:
        result = await db.execute(
            select(Cart)
            .where(Cart.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        cart = result.scalar_one_or_none()
        if not cart:
            raise NotFoundError("Cart not found")
        return cart

    async def touch(self, db: AsyncSession, cart_id: uuid.UUID) -> None:
        await db.execute(
            update(Cart)
            .where(Cart.id == cart_id)
            .values(updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    async def append_item(self, db: AsyncSession, cart_id: uuid.UUID, **values: Any) -> CartItem:
        item = CartItem(cart_id=cart_id, **values)
        db.add(item)
        await db.flush()
        await self.touch(db, cart_id)
        return item

    def build_regular_line(
        self,
        product: Product,
        quantity: int,
        variant: Optional[Dict[str, Any]],
        selectors: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Snapshot a catalog product into cart line values, priced for the quantity"""
        unit_price, _ = catalog.resolve_line_price(product, quantity, variant)

        values = {
            "item_type": "regular",
            "product_id": product.id,
            "product_name": product.title,
            "product_image": (product.images or [None])[0],
            "supplier_id": product.supplier_id,
            "supplier_name": product.supplier_name,
            "quantity": quantity,
            "unit_price": unit_price,
            "total_price": round(unit_price * quantity, 2),
            "is_bulk_order": len(product.price_tiers) > 0,
            "min_order_quantity": product.moq or 1,
            "max_order_quantity": product.max_order_quantity,
            "bulk_discount": [
                {"min_qty": tier.min_quantity, "max_qty": tier.max_quantity, "price": tier.price_per_unit}
                for tier in product.price_tiers
            ],
            "variation_attributes": selectors.get("variation_attributes") or [],
        }

        derived = variant_selectors(product.options, variant) if variant else {}
        for selector in SELECTOR_TYPES:
            values[selector] = selectors.get(selector) or derived.get(selector)

        if variant:
            values["variant_id"] = variant["sku"]
            values["variant_name"] = variant_name(variant)
            if not values["variation_attributes"]:
                values["variation_attributes"] = variant.get("attributes", [])
        else:
            values["variant_id"] = None
            values["variant_name"] = None

        return values

    async def merge_or_increment_item(
        self,
        db: AsyncSession,
        cart: Cart,
        product: Product,
        quantity: int,
        variant_id: Optional[str] = None,
        selectors: Optional[Dict[str, Any]] = None
    ) -> CartItem:
        """
        Add a regular line, or grow the matching one (same product, variant and
        selectors). Growth is a compare-and-set on the observed quantity and is
        re-priced at the combined quantity.
        """
        selectors = selectors or {}
        variant = catalog.resolve_variant(product, variant_id)
        values = self.build_regular_line(product, quantity, variant, selectors)
        key = _line_key(values)

        for _ in range(MERGE_ATTEMPTS):
            existing = next(
                (
                    item for item in cart.items
                    if item.item_type == "regular" and _item_key(item) == key
                ),
                None
            )

            if existing is None:
                catalog.check_orderable(product, quantity, variant)
                item = await self.append_item(db, cart.id, **values)
                logger.info(f"Cart {cart.id}: added {quantity} x product {product.id}")
                return item

            observed = existing.quantity
            combined = observed + quantity
            catalog.check_orderable(product, combined, variant)
            unit_price, _ = catalog.resolve_line_price(product, combined, variant)

            result = await db.execute(
                update(CartItem)
                .where(CartItem.id == existing.id, CartItem.quantity == observed)
                .values(
                    quantity=combined,
                    unit_price=unit_price,
                    total_price=round(unit_price * combined, 2)
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                await self.touch(db, cart.id)
                logger.info(f"Cart {cart.id}: line {existing.id} increased to {combined}")
                return await self.get_item(db, cart.id, existing.id)

            logger.info(f"Cart {cart.id}: line {existing.id} changed concurrently, retrying merge")
            cart = await self.get_cart(db, cart.user_id)

        raise ConflictError("Cart was modified concurrently, please retry")

    async def get_item(self, db: AsyncSession, cart_id: uuid.UUID, item_id: uuid.UUID) -> CartItem:
        result = await db.execute(
            select(CartItem)
            .where(CartItem.id == item_id, CartItem.cart_id == cart_id)
            .execution_options(populate_existing=True)
        )
        item = result.scalar_one_or_none()
        if not item:
            raise NotFoundError("Cart item not found")
        return item

    async def update_item_quantity(self, db: AsyncSession, cart: Cart, item_id: uuid.UUID, quantity: int) -> CartItem:
        """
        Set a line's quantity. It must be positive and stay within the line's
        own bounds; for bid lines the lower bound is the accepted quantity and
        the unit price stays the bid price.
        """
        if quantity < 1:
            raise ValidationError("Quantity must be greater than zero")

        item = await self.get_item(db, cart.id, item_id)

        if quantity < item.min_order_quantity:
            raise ValidationError(f"Minimum order quantity is {item.min_order_quantity}")
        if item.max_order_quantity and quantity > item.max_order_quantity:
            raise ValidationError(f"Maximum order quantity is {item.max_order_quantity}")

        unit_price = item.unit_price
        if item.item_type == "regular":
            product = await catalog.get_product(db, item.product_id)
            variant = catalog.resolve_variant(product, item.variant_id)
            catalog.check_orderable(product, quantity, variant)
            unit_price, _ = catalog.resolve_line_price(product, quantity, variant)

        await db.execute(
            update(CartItem)
            .where(CartItem.id == item.id)
            .values(quantity=quantity, unit_price=unit_price, total_price=round(unit_price * quantity, 2))
            .execution_options(synchronize_session=False)
        )
        await self.touch(db, cart.id)
        return await self.get_item(db, cart.id, item.id)

    async def remove_item(self, db: AsyncSession, cart: Cart, item_id: uuid.UUID) -> None:
        result = await db.execute(
            delete(CartItem)
            .where(CartItem.id == item_id, CartItem.cart_id == cart.id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Cart item not found")
        await self.touch(db, cart.id)

    async def clear(self, db: AsyncSession, cart: Cart, item_ids: Optional[Iterable[uuid.UUID]] = None) -> None:
        """Remove every line, or only the given ones (lines that were checked out)"""
        statement = delete(CartItem).where(CartItem.cart_id == cart.id)
        if item_ids is not None:
            statement = statement.where(CartItem.id.in_(list(item_ids)))
        await db.execute(statement.execution_options(synchronize_session=False))
        await self.touch(db, cart.id)


cart_helpers = CartHelpers()
