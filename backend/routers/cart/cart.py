from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from routers.auth.auth import get_current_actor
from routers.auth.helpers import auth_helpers, Actor
from routers.products.helpers import catalog
from dependencies.rbac import require_cart_read, require_cart_write, require_cart_delete
from utils.errors import MarketplaceError
from utils.response_helpers import cart_to_dict, cart_item_to_dict
from .helpers import cart_helpers
from .schemas import CartItemAdd, CartItemUpdate, CartItemResponse, CartResponse
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cart", tags=["Cart"])


async def _get_buyer_cart(db: AsyncSession, actor: Actor):
    buyer = await auth_helpers.get_profile(db, actor)
    return await cart_helpers.upsert_cart_for_user(db, buyer.id)


async def _cart_response(db: AsyncSession, user_id: uuid.UUID) -> CartResponse:
    cart = await cart_helpers.get_cart(db, user_id)
    return CartResponse.model_validate(cart_to_dict(cart))


# =================
# CART ROUTES
# =================

@router.get("/", response_model=CartResponse)
async def get_cart(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_cart_read)
):
    """Get the caller's cart, creating an empty one on first access"""
    try:
        cart = await _get_buyer_cart(db, actor)
        await db.commit()
        return await _cart_response(db, cart.user_id)

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error getting cart: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get cart"
        )


@router.post("/items", response_model=CartResponse, status_code=status.HTTP_201_CREATED)
async def add_cart_item(
    item_data: CartItemAdd,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_cart_write)
):
    """Add a catalog product to the cart, merging into a matching line"""
    try:
        cart = await _get_buyer_cart(db, actor)
        product = await catalog.get_product(db, item_data.product_id)

        selectors = item_data.model_dump(
            mode="json",
            include={"color", "size", "material", "style", "variation_attributes"}
        )
        await cart_helpers.merge_or_increment_item(
            db, cart, product, item_data.quantity,
            variant_id=item_data.variant_id,
            selectors=selectors
        )
        await db.commit()

        return await _cart_response(db, cart.user_id)

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error adding to cart: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add item to cart"
        )


@router.patch("/items/{item_id}", response_model=CartItemResponse)
async def update_cart_item(
    item_id: uuid.UUID,
    item_update: CartItemUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_cart_write)
):
    """Change a line's quantity; bid lines cannot go below the accepted quantity"""
    try:
        cart = await _get_buyer_cart(db, actor)
        item = await cart_helpers.update_item_quantity(db, cart, item_id, item_update.quantity)
        await db.commit()

        return CartItemResponse.model_validate(cart_item_to_dict(item))

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating cart item: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update cart item"
        )


@router.delete("/items/{item_id}")
async def remove_cart_item(
    item_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_cart_delete)
):
    try:
        cart = await _get_buyer_cart(db, actor)
        await cart_helpers.remove_item(db, cart, item_id)
        await db.commit()

        return {"message": "Item removed from cart"}

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error removing cart item: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to remove cart item"
        )


@router.delete("/")
async def clear_cart(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_cart_delete)
):
    try:
        cart = await _get_buyer_cart(db, actor)
        await cart_helpers.clear(db, cart)
        await db.commit()

        return {"message": "Cart cleared"}

    except HTTPException:
        raise
    except MarketplaceError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error clearing cart: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to clear cart"
        )
