from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from config import get_db
from models import Product, PriceTier
from routers.auth.auth import get_current_actor
from routers.auth.helpers import auth_helpers, Actor
from dependencies.rbac import require_product_write, require_product_delete, require_catalog_access
from utils.errors import MarketplaceError, NotFoundError, ForbiddenError, ValidationError
from utils.pricing import tiers_overlap
from utils.response_helpers import product_to_dict, price_tier_to_dict
from .helpers import catalog, VARIANT_REGENERATION_WARNING
from .schemas import (
    ProductCreate, ProductUpdate, ProductResponse, ProductListResponse,
    PriceTierCreate, PriceTierReplace, PriceTierResponse,
    VariantUpdate, VariantResponse, PriceCalculationResponse
)
from typing import Optional
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["Products"])


def _product_response(product: Product, regenerated: bool = False) -> ProductResponse:
    product_dict = product_to_dict(product)
    product_dict["variants_regenerated"] = regenerated
    if regenerated:
        product_dict["warning"] = VARIANT_REGENERATION_WARNING
    return ProductResponse.model_validate(product_dict)


async def _get_supplier(db: AsyncSession, actor: Actor):
    actor.require_role("supplier")
    return await auth_helpers.get_profile(db, actor)


# =================
# PRODUCT ROUTES
# =================

@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_product_write)
):
    """Create a new product (suppliers only); variants are expanded from the options once here"""
    try:
        supplier = await _get_supplier(db, actor)

        values = product_data.model_dump(mode="json", exclude={"price_tiers", "default_variant_stock"})
        product = Product(
            supplier_id=supplier.id,
            supplier_name=supplier.public_name,
            **values
        )
        product.variants = catalog.build_variants(values["options"], product_data.price, product_data.default_variant_stock)
        product.price_tiers = [PriceTier(**tier.model_dump()) for tier in product_data.price_tiers]

        await catalog.save_product(db, product)
        await db.commit()

        logger.info(f"Product {product.id} created by supplier {supplier.id} with {len(product.variants)} variants")
        product = await catalog.reload_product(db, product.id)
        return _product_response(product)

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating product: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create product"
        )


@router.get("/", response_model=ProductListResponse)
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    category: Optional[str] = Query(None),
    supplier_id: Optional[uuid.UUID] = Query(None),
    product_status: str = Query("active", alias="status"),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db)
):
    """Browse the catalog with pagination and filtering"""
    try:
        filters = [Product.status == product_status]
        if category:
            filters.append(Product.category == category)
        if supplier_id:
            filters.append(Product.supplier_id == supplier_id)
        if min_price is not None:
            filters.append(Product.price >= min_price)
        if max_price is not None:
            filters.append(Product.price <= max_price)

        total_result = await db.execute(select(func.count(Product.id)).where(*filters))
        total = total_result.scalar()

        offset = (page - 1) * limit
        result = await db.execute(
            select(Product)
            .where(*filters)
            .order_by(Product.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        products = result.scalars().all()

        return ProductListResponse(
            products=[_product_response(product) for product in products],
            page=page,
            limit=limit,
            total=total
        )

    except Exception as e:
        logger.error(f"Error listing products: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get products"
        )


@router.get("/my-products", response_model=ProductListResponse)
async def get_my_products(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Get current supplier's products in every status"""
    try:
        supplier = await _get_supplier(db, actor)

        total_result = await db.execute(
            select(func.count(Product.id)).where(Product.supplier_id == supplier.id)
        )
        total = total_result.scalar()

        offset = (page - 1) * limit
        result = await db.execute(
            select(Product)
            .where(Product.supplier_id == supplier.id)
            .order_by(Product.created_at.desc())
            .offset(offset)
            .limit(limit)
        )

        return ProductListResponse(
            products=[_product_response(product) for product in result.scalars().all()],
            page=page,
            limit=limit,
            total=total
        )

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error getting supplier products: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get products"
        )


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db)
):
    """Get product with tiers and materialized variants"""
    try:
        product = await catalog.get_product(db, product_id)
        return _product_response(product)

    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error getting product: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get product"
        )


@router.get("/{product_id}/price", response_model=PriceCalculationResponse)
async def calculate_price(
    product_id: uuid.UUID,
    quantity: int = Query(..., ge=0),
    variant_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Resolve the unit and total price for a quantity"""
    try:
        product = await catalog.get_product(db, product_id)
        variant = catalog.resolve_variant(product, variant_id)
        unit_price, tier = catalog.resolve_line_price(product, quantity, variant)

        return PriceCalculationResponse(
            product_id=str(product.id),
            quantity=quantity,
            variant_id=variant["sku"] if variant else None,
            price_per_unit=unit_price,
            total_price=round(unit_price * quantity, 2),
            meets_moq=quantity >= (product.moq or 1),
            tier_used=PriceTierResponse.model_validate(price_tier_to_dict(tier)) if tier else None
        )

    except MarketplaceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error calculating price: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to calculate price"
        )


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    product_update: ProductUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_product_write)
):
    """
    Update product (only by owner supplier).
    Changing options or price regenerates every variant; manual stock is reset.
    """
    try:
        supplier = await _get_supplier(db, actor)
        product = await catalog.get_owned_product(db, product_id, supplier)

        changes = product_update.model_dump(mode="json", exclude_unset=True)
        regenerated = catalog.apply_update(product, changes)

        await db.commit()
        product = await catalog.reload_product(db, product.id)
        return _product_response(product, regenerated=regenerated)

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating product: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update product"
        )


@router.delete("/{product_id}")
async def delete_product(
    product_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_product_delete)
):
    """Delist product (only by owner supplier); orders keep referencing it"""
    try:
        supplier = await _get_supplier(db, actor)
        product = await catalog.get_owned_product(db, product_id, supplier)

        product.status = "inactive"
        await db.commit()

        logger.info(f"Product {product_id} delisted by supplier {supplier.id}")
        return {"message": "Product deleted successfully"}

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error deleting product: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete product"
        )


# =================
# VARIANT ROUTES
# =================

@router.patch("/{product_id}/variants/{variant_id}", response_model=VariantResponse)
async def update_variant(
    product_id: uuid.UUID,
    variant_id: str,
    variant_update: VariantUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_catalog_access)
):
    """Set stock or availability of one generated variant"""
    try:
        supplier = await _get_supplier(db, actor)
        product = await catalog.get_owned_product(db, product_id, supplier)

        variant = catalog.update_variant(product, variant_id, variant_update.model_dump(exclude_unset=True))
        await db.commit()

        return VariantResponse.model_validate(variant)

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating variant: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update variant"
        )


# =================
# PRICE TIER ROUTES
# =================

@router.put("/{product_id}/price-tiers", response_model=ProductResponse)
async def replace_price_tiers(
    product_id: uuid.UUID,
    tier_data: PriceTierReplace,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_catalog_access)
):
    """Replace the whole tier table of a product"""
    try:
        supplier = await _get_supplier(db, actor)
        product = await catalog.get_owned_product(db, product_id, supplier)

        await catalog.replace_price_tiers(db, product, [tier.model_dump() for tier in tier_data.price_tiers])
        await db.commit()

        logger.info(f"Product {product_id}: price tiers replaced ({len(tier_data.price_tiers)} tiers)")
        product = await catalog.reload_product(db, product_id)
        return _product_response(product)

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error replacing price tiers: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update pricing tiers"
        )


@router.post("/{product_id}/price-tiers", response_model=PriceTierResponse, status_code=status.HTTP_201_CREATED)
async def add_price_tier(
    product_id: uuid.UUID,
    tier_data: PriceTierCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_catalog_access)
):
    """Add one pricing tier to a product"""
    try:
        supplier = await _get_supplier(db, actor)
        product = await catalog.get_owned_product(db, product_id, supplier)

        if tiers_overlap([*product.price_tiers, tier_data]):
            raise ValidationError("Pricing tier overlaps with existing tier")

        pricing_tier = PriceTier(product_id=product.id, **tier_data.model_dump())
        db.add(pricing_tier)
        await db.commit()

        return PriceTierResponse.model_validate(price_tier_to_dict(pricing_tier))

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error adding pricing tier: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add pricing tier"
        )


@router.delete("/price-tiers/{tier_id}")
async def delete_price_tier(
    tier_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_catalog_access)
):
    """Delete pricing tier"""
    try:
        supplier = await _get_supplier(db, actor)

        tier = await db.get(PriceTier, tier_id)
        if not tier:
            raise NotFoundError("Pricing tier not found")

        product = await catalog.get_product(db, tier.product_id)
        if product.supplier_id != supplier.id:
            raise ForbiddenError("You can only manage pricing for your own products")

        product.price_tiers.remove(tier)
        await db.commit()

        return {"message": "Pricing tier deleted successfully"}

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error deleting pricing tier: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete pricing tier"
        )
