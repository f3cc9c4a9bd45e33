from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum
from routers.requests.schemas import SourcingRequestResponse
from routers.cart.schemas import CartItemResponse
import uuid


class BidStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class BidCreate(BaseModel):
    request_id: uuid.UUID
    product_id: uuid.UUID
    bid_price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    delivery_time: int = Field(..., ge=1, le=365)  # days
    message: str = Field("", max_length=500)


class BidAction(BaseModel):
    # Checked by the ledger so an unknown action is a 400, not a 422
    action: str


class BidResponse(BaseModel):
    id: str
    request_id: str
    supplier_id: str
    product_id: str
    supplier_name: Optional[str] = None
    product_name: Optional[str] = None
    bid_price: float
    original_price: float
    quantity: int
    delivery_time: int
    message: str = ""
    status: str
    accepted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    withdrawn_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class BidListResponse(BaseModel):
    bids: List[BidResponse]
    page: int
    limit: int
    total: int


class BidAcceptanceResponse(BaseModel):
    """Everything the acceptance touched, read back after commit"""
    bid: BidResponse
    request: SourcingRequestResponse
    cart_item: CartItemResponse
    rejected_bids: int
