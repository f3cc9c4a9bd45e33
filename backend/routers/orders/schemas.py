from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum
from routers.cart.schemas import VariationAttribute
import uuid


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ShippingAddress(BaseModel):
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)


class OrderLineCreate(BaseModel):
    product_id: uuid.UUID
    quantity: int
    variant_id: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    material: Optional[str] = None
    style: Optional[str] = None
    variation_attributes: List[VariationAttribute] = []


class OrderCreate(BaseModel):
    products: List[OrderLineCreate] = Field(..., min_length=1)
    shipping_address: ShippingAddress
    shipping_method: str = Field("standard", min_length=1, max_length=100)
    notes: Optional[str] = None


class CheckoutRequest(BaseModel):
    shipping_address: ShippingAddress
    shipping_method: str = Field("standard", min_length=1, max_length=100)
    notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None


class OrderItemResponse(BaseModel):
    id: str
    product_id: str
    product_name: str
    product_image: Optional[str] = None
    quantity: int
    unit_price: float
    total_price: float
    variant_id: Optional[str] = None
    variant_name: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    material: Optional[str] = None
    style: Optional[str] = None
    variation_attributes: List[VariationAttribute] = []
    specifications: Optional[str] = None
    bid_id: Optional[str] = None
    request_id: Optional[str] = None


class OrderResponse(BaseModel):
    id: str
    order_number: str
    buyer_id: str
    buyer_name: Optional[str] = None
    buyer_email: Optional[str] = None
    supplier_id: str
    supplier_name: Optional[str] = None
    supplier_email: Optional[str] = None
    products: List[OrderItemResponse]
    total_amount: float
    status: str
    payment_status: str
    shipping_address: ShippingAddress
    shipping_method: str
    estimated_delivery: Optional[str] = None
    delivered_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    page: int
    limit: int
    total: int


class CheckoutResponse(BaseModel):
    """One order per supplier in the checked-out cart"""
    orders: List[OrderResponse]
    total_amount: float
