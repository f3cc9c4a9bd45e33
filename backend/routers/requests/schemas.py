from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime
from enum import Enum


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class RequestStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    FULFILLED = "fulfilled"


class SourcingRequestCreate(BaseModel):
    product_name: str = Field(..., min_length=1, max_length=200)
    category: Optional[str] = Field(None, max_length=100)
    quantity: int = Field(..., ge=1)
    unit: str = Field("pieces", min_length=1, max_length=50)
    target_price: float = Field(..., ge=0)
    max_budget: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    specifications: List[str] = []
    preferred_brands: List[str] = []
    location: Optional[str] = Field(None, max_length=200)
    urgency: Urgency = Urgency.MEDIUM
    contact_method: Optional[Literal["email", "phone", "chat"]] = None


class SourcingRequestResponse(BaseModel):
    id: str
    request_number: str
    buyer_id: str
    buyer_name: Optional[str] = None
    buyer_email: Optional[str] = None
    product_name: str
    category: Optional[str] = None
    quantity: int
    unit: str
    target_price: float
    max_budget: float
    description: Optional[str] = None
    specifications: List[str] = []
    preferred_brands: List[str] = []
    location: Optional[str] = None
    contact_method: Optional[str] = None
    urgency: str
    priority: str
    status: str
    display_status: str
    bid_count: int
    view_count: int
    accepted_bid_id: Optional[str] = None
    accepted_at: Optional[datetime] = None
    expires_at: datetime
    created_at: datetime
    updated_at: datetime


class SourcingRequestListResponse(BaseModel):
    requests: List[SourcingRequestResponse]
    page: int
    limit: int
    total: int
