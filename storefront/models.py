"""
SQLAlchemy Database Models

Catalog and order tables for the storefront:
- Categories and products (the menu)
- Order headers with fulfillment and payment status
- Order line items carrying price-at-time snapshots

Author: Storefront Team
Version: 1.0.0
"""

import enum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storefront.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class OrderStatus(str, enum.Enum):
    """Fulfillment status workflow."""
    PENDING = "Pending"
    COOKING = "Cooking"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class PaymentStatus(str, enum.Enum):
    """Payment status workflow, independent of fulfillment."""
    UNPAID = "Unpaid"
    PAID = "Paid"
    REFUNDED = "Refunded"


class PaymentMethod(str, enum.Enum):
    """How the customer intends to pay."""
    CASHIER = "cashier"
    WA_CHECKOUT = "wa_checkout"


class Category(Base):
    """Menu category, shown as a tab on the storefront."""
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True, index=True)
    icon = Column(String(50), nullable=False, default="restaurant")
    description = Column(Text, nullable=False, default="")
    display_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<Category {self.slug} ({self.display_order})>"


class Product(Base):
    """Menu item as stored in the catalog."""
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=_new_id)
    category_id = Column(
        String(36),
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(12, 2), nullable=False)
    image_url = Column(String(500), nullable=False, default="")

    # Optional merchandising metadata
    badge = Column(String(50), nullable=True)
    rating = Column(Float, nullable=True)
    calories = Column(Integer, nullable=True)
    tags = Column(JSON, nullable=True)

    is_available = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    category = relationship("Category", back_populates="products")

    def __repr__(self):
        return f"<Product {self.name} - {self.price}>"


class Order(Base):
    """
    Order header.

    Line items live in order_items and are written in a second call,
    after the header exists.
    """
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_new_id)
    order_number = Column(String(32), nullable=False, unique=True, index=True)

    # =========================================================================
    # CUSTOMER
    # =========================================================================
    customer_name = Column(String(100), nullable=False)
    table_number = Column(String(20), nullable=True)

    # =========================================================================
    # MONEY
    # =========================================================================
    total_amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(
        Enum(PaymentMethod, values_callable=_enum_values, name="payment_method"),
        default=PaymentMethod.CASHIER,
        nullable=False,
    )
    payment_status = Column(
        Enum(PaymentStatus, values_callable=_enum_values, name="payment_status"),
        default=PaymentStatus.UNPAID,
        nullable=False,
        index=True,
    )

    # =========================================================================
    # FULFILLMENT
    # =========================================================================
    status = Column(
        Enum(OrderStatus, values_callable=_enum_values, name="order_status"),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItem.line_index",
    )

    def __repr__(self):
        return f"<Order {self.order_number} - {self.customer_name} - {self.status.value}>"


class OrderItem(Base):
    """
    One line of an order.

    name, description, image_url and price_at_time are copied from the
    product when the order is placed; product_id is kept for reference only.
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    line_index = Column(Integer, nullable=False, default=0)
    product_id = Column(String(36), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=False, default="")
    image_url = Column(String(500), nullable=False, default="")
    quantity = Column(Integer, nullable=False)
    price_at_time = Column(Numeric(12, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.quantity}x {self.name}>"
