from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
import uuid


class VariationAttribute(BaseModel):
    name: str
    value: Optional[str] = None


class CartItemAdd(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., ge=1)
    variant_id: Optional[str] = None  # variant SKU or id
    color: Optional[str] = None
    size: Optional[str] = None
    material: Optional[str] = None
    style: Optional[str] = None
    variation_attributes: List[VariationAttribute] = []


class CartItemUpdate(BaseModel):
    quantity: int


class CartItemResponse(BaseModel):
    id: str
    item_type: str
    product_id: str
    product_name: str
    product_image: Optional[str] = None
    supplier_id: str
    supplier_name: Optional[str] = None
    quantity: int
    unit_price: float
    total_price: float
    is_bulk_order: bool = False
    min_order_quantity: int = 1
    max_order_quantity: Optional[int] = None
    bulk_discount: List[Dict[str, Any]] = []
    variant_id: Optional[str] = None
    variant_name: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    material: Optional[str] = None
    style: Optional[str] = None
    variation_attributes: List[VariationAttribute] = []
    request_id: Optional[str] = None
    bid_id: Optional[str] = None
    original_price: Optional[float] = None
    discount_percent: Optional[int] = None
    added_at: datetime


class CartResponse(BaseModel):
    id: str
    user_id: str
    items: List[CartItemResponse]
    total_items: int
    total_amount: float
    updated_at: datetime
