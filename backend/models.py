from sqlalchemy import (
    Boolean,
    String,
    Text,
    DateTime,
    CheckConstraint,
    UniqueConstraint,
    Index,
    text,
    ForeignKey,
    Float,
    Integer,
    JSON,
    Uuid
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship, declarative_base
from typing import Optional, List
from datetime import datetime
from utils.clock import utcnow
import uuid

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON anywhere else
JSONType = JSON().with_variant(JSONB(), "postgresql")


class UserProfile(Base):
    """
    Application profile for an identity issued by the auth provider.
    Buyers and suppliers share this table and differ by role.
    """
    __tablename__ = "user_profiles"
    __table_args__ = (
        CheckConstraint("role IN ('buyer', 'supplier', 'admin')", name="user_profiles_role_check"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Subject of the auth provider's token
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, unique=True, nullable=False)

    display_name: Mapped[Optional[str]] = mapped_column(String(100))
    company_name: Mapped[Optional[str]] = mapped_column(String(200))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone_number: Mapped[Optional[str]] = mapped_column(String(20))
    location: Mapped[Optional[str]] = mapped_column(String(200))
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    role: Mapped[str] = mapped_column(String(50), default="buyer", nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    @property
    def public_name(self) -> str:
        return self.company_name or self.display_name or "Supplier"


class Product(Base):
    """
    Catalog product listed by a supplier.
    `variants` is the materialized expansion of `options` at the current base price.
    """
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="products_price_check"),
        CheckConstraint("available >= 0", name="products_available_check"),
        CheckConstraint("moq >= 1", name="products_moq_check"),
        CheckConstraint("status IN ('active', 'inactive', 'draft', 'outofstock')", name="products_status_check"),
        Index("ix_products_supplier_id", "supplier_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False
    )
    # Supplier name at listing time
    supplier_name: Mapped[Optional[str]] = mapped_column(String(200))

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    images: Mapped[Optional[list]] = mapped_column(JSONType, default=list)

    price: Mapped[float] = mapped_column(Float, nullable=False)
    original_price: Mapped[Optional[float]] = mapped_column(Float)

    unit: Mapped[str] = mapped_column(String(50), default="pieces", nullable=False)
    moq: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    max_order_quantity: Mapped[Optional[int]] = mapped_column(Integer)
    available: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    options: Mapped[Optional[list]] = mapped_column(JSONType, default=list)
    variants: Mapped[Optional[list]] = mapped_column(JSONType, default=list)

    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    price_tiers: Mapped[List["PriceTier"]] = relationship(
        "PriceTier",
        cascade="all, delete-orphan",
        order_by="PriceTier.min_quantity",
        lazy="selectin"
    )


class PriceTier(Base):
    """
    Quantity band with its own unit price.
    Example: 1-99 units = 100/unit, 100+ units = 80/unit
    """
    __tablename__ = "price_tiers"
    __table_args__ = (
        CheckConstraint("min_quantity > 0", name="price_tiers_min_quantity_check"),
        CheckConstraint("price_per_unit >= 0", name="price_tiers_price_check"),
        UniqueConstraint("product_id", "min_quantity", name="unique_product_min_quantity"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False
    )

    min_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    max_quantity: Mapped[Optional[int]] = mapped_column(Integer)  # NULL or 0 means unbounded
    price_per_unit: Mapped[float] = mapped_column(Float, nullable=False)
    label: Mapped[Optional[str]] = mapped_column(String(100))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class SourcingRequest(Base):
    """
    A buyer's sourcing need that suppliers bid on
    """
    __tablename__ = "sourcing_requests"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="sourcing_requests_quantity_check"),
        CheckConstraint("bid_count >= 0", name="sourcing_requests_bid_count_check"),
        CheckConstraint("status IN ('open', 'closed', 'fulfilled')", name="sourcing_requests_status_check"),
        Index("ix_sourcing_requests_buyer_id", "buyer_id"),
        Index("ix_sourcing_requests_status_created", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    request_number: Mapped[str] = mapped_column(String(40), unique=True, nullable=False)

    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False
    )
    buyer_name: Mapped[Optional[str]] = mapped_column(String(200))
    buyer_email: Mapped[Optional[str]] = mapped_column(String(255))

    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit: Mapped[str] = mapped_column(String(50), default="pieces", nullable=False)
    target_price: Mapped[float] = mapped_column(Float, nullable=False)
    max_budget: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    specifications: Mapped[Optional[list]] = mapped_column(JSONType, default=list)
    preferred_brands: Mapped[Optional[list]] = mapped_column(JSONType, default=list)
    location: Mapped[Optional[str]] = mapped_column(String(200))
    contact_method: Mapped[Optional[str]] = mapped_column(String(50))
    urgency: Mapped[str] = mapped_column(String(20), default="medium", nullable=False)
    priority: Mapped[str] = mapped_column(String(20), default="low", nullable=False)

    status: Mapped[str] = mapped_column(String(20), default="open", nullable=False)
    bid_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    accepted_bid_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(True), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class Bid(Base):
    """
    A supplier's offer against a sourcing request.
    A supplier holds at most one bid per request.
    """
    __tablename__ = "bids"
    __table_args__ = (
        UniqueConstraint("request_id", "supplier_id", name="unique_bid_per_request_supplier"),
        CheckConstraint("bid_price >= 0", name="bids_bid_price_check"),
        CheckConstraint("quantity >= 1", name="bids_quantity_check"),
        CheckConstraint("delivery_time BETWEEN 1 AND 365", name="bids_delivery_time_check"),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'withdrawn')",
            name="bids_status_check"
        ),
        Index("ix_bids_request_status", "request_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("sourcing_requests.id", ondelete="CASCADE"),
        nullable=False
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False
    )

    # Snapshots taken when the bid is placed
    supplier_name: Mapped[Optional[str]] = mapped_column(String(200))
    product_name: Mapped[Optional[str]] = mapped_column(String(200))
    original_price: Mapped[float] = mapped_column(Float, nullable=False)

    bid_price: Mapped[float] = mapped_column(Float, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    delivery_time: Mapped[int] = mapped_column(Integer, nullable=False)  # days
    message: Mapped[str] = mapped_column(String(500), default="", nullable=False)

    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(True))
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(True))
    withdrawn_at: Mapped[Optional[datetime]] = mapped_column(DateTime(True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class Cart(Base):
    """
    One cart per buyer, created lazily on first read or write
    """
    __tablename__ = "carts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    items: Mapped[List["CartItem"]] = relationship(
        "CartItem",
        cascade="all, delete-orphan",
        order_by="CartItem.added_at",
        lazy="selectin"
    )


class CartItem(Base):
    """
    A cart line. Lines are rows of their own so that concurrent writers
    append and increment rows instead of rewriting the whole cart.

    item_type 'regular': a catalog product, optionally a variant.
    item_type 'bid': created by accepting a bid; quantity may not drop below
    min_order_quantity.
    """
    __tablename__ = "cart_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="cart_items_quantity_check"),
        CheckConstraint("item_type IN ('regular', 'bid')", name="cart_items_item_type_check"),
        # One cart line per accepted bid
        UniqueConstraint("bid_id", name="unique_cart_item_bid"),
        Index("ix_cart_items_cart_product", "cart_id", "product_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cart_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("carts.id", ondelete="CASCADE"),
        nullable=False
    )
    item_type: Mapped[str] = mapped_column(String(20), default="regular", nullable=False)

    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    product_image: Mapped[Optional[str]] = mapped_column(String(500))
    supplier_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    supplier_name: Mapped[Optional[str]] = mapped_column(String(200))

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[float] = mapped_column(Float, nullable=False)
    total_price: Mapped[float] = mapped_column(Float, nullable=False)

    is_bulk_order: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    min_order_quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    max_order_quantity: Mapped[Optional[int]] = mapped_column(Integer)
    bulk_discount: Mapped[Optional[list]] = mapped_column(JSONType, default=list)

    # Variant selectors (regular lines)
    variant_id: Mapped[Optional[str]] = mapped_column(String(50))
    variant_name: Mapped[Optional[str]] = mapped_column(String(200))
    color: Mapped[Optional[str]] = mapped_column(String(100))
    size: Mapped[Optional[str]] = mapped_column(String(100))
    material: Mapped[Optional[str]] = mapped_column(String(100))
    style: Mapped[Optional[str]] = mapped_column(String(100))
    variation_attributes: Mapped[Optional[list]] = mapped_column(JSONType, default=list)

    # Bid provenance (bid lines)
    request_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    bid_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    original_price: Mapped[Optional[float]] = mapped_column(Float)
    discount_percent: Mapped[Optional[int]] = mapped_column(Integer)

    added_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class Order(Base):
    """
    Order placed by a buyer with a single supplier.
    Buyer and supplier details are copied at creation so later profile edits
    do not rewrite order history.
    """
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="orders_total_amount_check"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'processing', 'shipped', 'delivered', 'cancelled')",
            name="orders_status_check"
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed', 'refunded')",
            name="orders_payment_status_check"
        ),
        Index("ix_orders_buyer_id", "buyer_id"),
        Index("ix_orders_supplier_id", "supplier_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(String(40), unique=True, nullable=False)

    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False
    )
    buyer_name: Mapped[Optional[str]] = mapped_column(String(200))
    buyer_email: Mapped[Optional[str]] = mapped_column(String(255))
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False
    )
    supplier_name: Mapped[Optional[str]] = mapped_column(String(200))
    supplier_email: Mapped[Optional[str]] = mapped_column(String(255))

    total_amount: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    payment_status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)

    shipping_address: Mapped[dict] = mapped_column(JSONType, nullable=False)
    shipping_method: Mapped[str] = mapped_column(String(100), nullable=False)
    estimated_delivery: Mapped[Optional[str]] = mapped_column(String(100))
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(True))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        cascade="all, delete-orphan",
        lazy="selectin"
    )


class OrderItem(Base):
    """
    Ordered line. Prices are the ones resolved when the order was placed.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="order_items_quantity_check"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False
    )
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    product_image: Mapped[Optional[str]] = mapped_column(String(500))

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[float] = mapped_column(Float, nullable=False)
    total_price: Mapped[float] = mapped_column(Float, nullable=False)

    variant_id: Mapped[Optional[str]] = mapped_column(String(50))
    variant_name: Mapped[Optional[str]] = mapped_column(String(200))
    color: Mapped[Optional[str]] = mapped_column(String(100))
    size: Mapped[Optional[str]] = mapped_column(String(100))
    material: Mapped[Optional[str]] = mapped_column(String(100))
    style: Mapped[Optional[str]] = mapped_column(String(100))
    variation_attributes: Mapped[Optional[list]] = mapped_column(JSONType, default=list)
    specifications: Mapped[Optional[str]] = mapped_column(String(200))

    bid_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    request_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
