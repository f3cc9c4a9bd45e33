from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from models import Product, PriceTier, UserProfile
from config import DEFAULT_VARIANT_STOCK
from utils.errors import NotFoundError, ForbiddenError, ValidationError, ConflictError
from utils.pricing import price_quantity
from utils.variants import expand_variants, find_variant, has_manual_stock
from typing import Any, Dict, List, Optional, Tuple
import logging
import uuid

logger = logging.getLogger(__name__)

VARIANT_REGENERATION_WARNING = (
    "Variants were regenerated from the new options/price; "
    "stock levels set on the previous variants were reset"
)


class CatalogHelpers:
    """Catalog store: product reads, saves and inventory mutations"""

    async def get_product(self, db: AsyncSession, product_id: uuid.UUID) -> Product:
        product = await db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    async def reload_product(self, db: AsyncSession, product_id: uuid.UUID) -> Product:
        """Fresh copy with tiers in min_quantity order, discarding identity-map state"""
        result = await db.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        product = result.scalar_one_or_none()
        if not product:
            raise NotFoundError("Product not found")
        return product

    async def get_owned_product(self, db: AsyncSession, product_id: uuid.UUID, supplier: UserProfile) -> Product:
        product = await self.get_product(db, product_id)
        if product.supplier_id != supplier.id:
            raise ForbiddenError("You can only manage your own products")
        return product

    async def save_product(self, db: AsyncSession, product: Product) -> Product:
        db.add(product)
        await db.flush()
        return product

    def build_variants(self, options: Optional[List[Dict[str, Any]]], price: float, default_stock: Optional[int] = None) -> List[Dict[str, Any]]:
        stock = DEFAULT_VARIANT_STOCK if default_stock is None else default_stock
        return expand_variants(options, price, default_stock=stock)

    def apply_update(self, product: Product, changes: Dict[str, Any]) -> bool:
        """
        Apply a partial update. Returns True when the variant list was regenerated,
        which happens whenever the options or the base price change.
        """
        default_stock = changes.pop("default_variant_stock", None)
        options_changed = "options" in changes and changes["options"] != (product.options or [])
        price_changed = "price" in changes and changes["price"] != product.price

        for field, value in changes.items():
            setattr(product, field, value)

        if not (options_changed or price_changed):
            return False

        previous = product.variants or []
        product.variants = self.build_variants(product.options, product.price, default_stock)
        if has_manual_stock(previous, DEFAULT_VARIANT_STOCK if default_stock is None else default_stock):
            logger.warning(f"Product {product.id}: variant regeneration discarded manually set stock")
        logger.info(f"Product {product.id}: regenerated {len(product.variants)} variants")
        return True

    def update_variant(self, product: Product, variant_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        variants = [dict(variant) for variant in product.variants or []]
        variant = find_variant(variants, variant_id)
        if variant is None:
            raise NotFoundError("Variant not found")
        variant.update(changes)
        # Reassign so the JSON column is flagged dirty
        product.variants = variants
        return variant

    async def replace_price_tiers(self, db: AsyncSession, product: Product, tiers: List[Dict[str, Any]]) -> None:
        product.price_tiers.clear()
        await db.flush()
        for tier in tiers:
            product.price_tiers.append(PriceTier(**tier))
        await db.flush()

    def resolve_line_price(self, product: Product, quantity: int, variant: Optional[Dict[str, Any]] = None) -> Tuple[float, Optional[PriceTier]]:
        """
        Tier-resolved unit price for the quantity. A variant adds its price
        difference from the base price on top of the resolved tier price.
        """
        unit_price, _, tier = price_quantity(quantity, product.price_tiers, product.price)
        if variant is not None:
            unit_price += float(variant.get("price", product.price)) - float(product.price)
        return round(unit_price, 2), tier

    def resolve_variant(self, product: Product, variant_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not variant_id:
            return None
        variant = find_variant(product.variants, variant_id)
        if variant is None:
            raise ValidationError(f"Variant {variant_id} does not exist for {product.title}")
        if not variant.get("available", True):
            raise ValidationError(f"Variant {variant_id} is not available")
        return variant

    def check_orderable(
        self,
        product: Product,
        quantity: int,
        variant: Optional[Dict[str, Any]] = None,
        minimum: Optional[int] = None,
        enforce_maximum: bool = True
    ) -> None:
        """
        Validate quantity against MOQ, max order quantity and stock.
        `minimum` overrides the product MOQ (bid lines use the accepted quantity);
        negotiated lines skip the max order quantity.
        """
        if quantity is None or quantity <= 0:
            raise ValidationError("Quantity must be greater than zero")
        if product.status != "active":
            raise ValidationError(f"{product.title} is not available for ordering")

        moq = minimum if minimum is not None else (product.moq or 1)
        if quantity < moq:
            raise ValidationError(f"Minimum order quantity is {moq}")
        if enforce_maximum and product.max_order_quantity and quantity > product.max_order_quantity:
            raise ValidationError(f"Maximum order quantity is {product.max_order_quantity}")
        if quantity > product.available:
            raise ValidationError(f"Only {product.available} {product.unit} available for {product.title}")
        if variant is not None and quantity > variant.get("stock", quantity):
            raise ValidationError(f"Only {variant['stock']} {product.unit} available for this variant")

    async def decrement_availability(self, db: AsyncSession, product_id: uuid.UUID, quantity: int) -> None:
        """Conditional decrement; fails instead of letting available go negative"""
        result = await db.execute(
            update(Product)
            .where(Product.id == product_id, Product.available >= quantity)
            .values(available=Product.available - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(f"Oversell prevented for product {product_id} (requested {quantity})")
            raise ConflictError("Insufficient stock: the product sold out while the order was being placed")

    async def increment_sold(self, db: AsyncSession, product_id: uuid.UUID, quantity: int) -> None:
        await db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(sold=Product.sold + quantity)
            .execution_options(synchronize_session=False)
        )


catalog = CatalogHelpers()
