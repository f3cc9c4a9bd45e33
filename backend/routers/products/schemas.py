from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime
from enum import Enum
from utils.pricing import tiers_overlap


class OptionType(str, Enum):
    COLOR = "color"
    SIZE = "size"
    MATERIAL = "material"
    STYLE = "style"
    DROPDOWN = "dropdown"


ProductStatus = Literal["active", "inactive", "draft", "outofstock"]


# Option Schemas
class ProductOptionValue(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    value: Optional[str] = None
    color: Optional[str] = None  # hex code for color swatches
    price_modifier: float = 0
    image: Optional[str] = None


class ProductOption(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    type: OptionType = OptionType.DROPDOWN
    values: List[ProductOptionValue] = []
    required: bool = False


# Price Tier Schemas
class PriceTierCreate(BaseModel):
    min_quantity: int = Field(..., gt=0)
    max_quantity: Optional[int] = Field(None, ge=0)  # 0 or null means no upper bound
    price_per_unit: float = Field(..., ge=0)
    label: Optional[str] = Field(None, max_length=100)

    @validator('max_quantity')
    def validate_max_quantity(cls, v, values):
        if v and 'min_quantity' in values and v < values['min_quantity']:
            raise ValueError('max_quantity must not be lower than min_quantity')
        return v


def _sorted_without_overlap(tiers: List[PriceTierCreate]) -> List[PriceTierCreate]:
    sorted_tiers = sorted(tiers, key=lambda tier: tier.min_quantity)
    if tiers_overlap(sorted_tiers):
        raise ValueError('Pricing tiers cannot have overlapping quantity ranges')
    return sorted_tiers


class PriceTierReplace(BaseModel):
    price_tiers: List[PriceTierCreate] = []

    @validator('price_tiers')
    def validate_price_tiers(cls, v):
        return _sorted_without_overlap(v)


class PriceTierResponse(BaseModel):
    id: str
    product_id: str
    min_quantity: int
    max_quantity: Optional[int] = None
    price_per_unit: float
    label: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# Variant Schemas
class VariantAttribute(BaseModel):
    name: str
    value: Optional[str] = None


class VariantResponse(BaseModel):
    id: str
    sku: str
    attributes: List[VariantAttribute]
    price: float
    stock: int
    moq: int = 1
    available: bool = True
    lead_time: Optional[str] = None
    price_tiers: List[Dict[str, Any]] = []


class VariantUpdate(BaseModel):
    stock: Optional[int] = Field(None, ge=0)
    available: Optional[bool] = None


# Product Schemas
class ProductCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    images: List[str] = []
    price: float = Field(..., ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    unit: str = Field("pieces", min_length=1, max_length=50)
    moq: int = Field(1, ge=1)
    max_order_quantity: Optional[int] = Field(None, ge=1)
    available: int = Field(0, ge=0)
    status: ProductStatus = "active"
    price_tiers: List[PriceTierCreate] = []
    options: List[ProductOption] = []
    default_variant_stock: Optional[int] = Field(None, ge=0)

    @validator('price_tiers')
    def validate_price_tiers(cls, v):
        return _sorted_without_overlap(v)


class ProductUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    images: Optional[List[str]] = None
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    unit: Optional[str] = Field(None, min_length=1, max_length=50)
    moq: Optional[int] = Field(None, ge=1)
    max_order_quantity: Optional[int] = Field(None, ge=1)
    available: Optional[int] = Field(None, ge=0)
    status: Optional[ProductStatus] = None
    options: Optional[List[ProductOption]] = None
    default_variant_stock: Optional[int] = Field(None, ge=0)


class ProductResponse(BaseModel):
    id: str
    supplier_id: str
    supplier_name: Optional[str] = None
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    images: List[str] = []
    price: float
    original_price: Optional[float] = None
    unit: str
    moq: int = 1
    max_order_quantity: Optional[int] = None
    available: int
    sold: int = 0
    options: List[ProductOption] = []
    variants: List[VariantResponse] = []
    default_variant: Optional[str] = None
    price_tiers: List[PriceTierResponse] = []
    status: str
    created_at: datetime
    updated_at: datetime
    variants_regenerated: bool = False
    warning: Optional[str] = None


class ProductListResponse(BaseModel):
    """Response schema for product listing"""
    products: List[ProductResponse]
    page: int
    limit: int
    total: int


# Price calculation schemas
class PriceCalculationResponse(BaseModel):
    product_id: str
    quantity: int
    variant_id: Optional[str] = None
    price_per_unit: float
    total_price: float
    meets_moq: bool
    tier_used: Optional[PriceTierResponse] = None
