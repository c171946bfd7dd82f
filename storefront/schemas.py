"""
Pydantic Schemas for Request/Response Validation

Typed records used at every service boundary:
- Catalog records (MenuItem, CategoryRecord)
- Cart lines and order lines with price-at-time snapshots
- Order records shared by the history cache and the invoice renderer
- API request/response bodies

Author: Storefront Team
Version: 1.0.0
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.models import OrderStatus, PaymentMethod, PaymentStatus


# =============================================================================
# CATALOG RECORDS
# =============================================================================

class CategoryRecord(BaseModel):
    """A menu category."""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    slug: str
    icon: str = "restaurant"
    description: str = ""
    display_order: int = 0

    @classmethod
    def from_row(cls, row) -> "CategoryRecord":
        return cls(
            id=row.id,
            label=row.name,
            slug=row.slug,
            icon=row.icon,
            description=row.description or "",
            display_order=row.display_order or 0,
        )


class MenuItem(BaseModel):
    """Menu item snapshot; immutable once loaded into a session."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    price: Decimal = Field(..., ge=0)
    image: str = ""
    category_id: str
    rating: Optional[float] = None
    calories: Optional[int] = None
    tags: Optional[tuple[str, ...]] = None
    badge: Optional[str] = None
    is_available: bool = True

    @classmethod
    def from_row(cls, row) -> "MenuItem":
        return cls(
            id=row.id,
            name=row.name,
            description=row.description or "",
            price=row.price,
            image=row.image_url or "",
            category_id=row.category_id,
            rating=row.rating,
            calories=row.calories,
            tags=tuple(row.tags) if row.tags else None,
            badge=row.badge,
            is_available=bool(row.is_available),
        )


# =============================================================================
# CART & ORDER LINES
# =============================================================================

class CartLine(BaseModel):
    """One distinct menu item plus its requested quantity."""
    item: MenuItem
    quantity: int = Field(..., ge=1)

    @property
    def line_total(self) -> Decimal:
        return self.item.price * self.quantity


class OrderLine(BaseModel):
    """An order line item, frozen at the price the customer saw."""
    model_config = ConfigDict(frozen=True)

    item_id: str
    name: str
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0)
    description: str = ""
    image: str = ""

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @classmethod
    def from_cart_line(cls, line: CartLine) -> "OrderLine":
        return cls(
            item_id=line.item.id,
            name=line.item.name,
            quantity=line.quantity,
            unit_price=line.item.price,
            description=line.item.description,
            image=line.item.image,
        )


class OrderHeaderCreate(BaseModel):
    """Fields written to the order header before any line item."""
    order_number: str
    customer_name: str
    table_number: str
    total_amount: Decimal
    payment_method: PaymentMethod
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    created_at: datetime


class OrderRecord(BaseModel):
    """
    Denormalized order: the header plus its line items.

    This is the confirmation handed back by checkout, the entry stored in
    the local history cache and the input to every invoice presentation.
    """
    id: str
    order_number: str
    created_at: datetime
    items: List[OrderLine]
    total: Decimal
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    payment_method: PaymentMethod = PaymentMethod.CASHIER
    customer_name: Optional[str] = None
    table_number: Optional[str] = None

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)

    def items_summary(self) -> str:
        """Compact one-line summary, e.g. '2x Cheeseburger, 1x Iced Tea'."""
        return ", ".join(f"{line.quantity}x {line.name}" for line in self.items)

    @classmethod
    def from_row(cls, row) -> "OrderRecord":
        return cls(
            id=row.id,
            order_number=row.order_number,
            created_at=row.created_at,
            items=[
                OrderLine(
                    item_id=item.product_id,
                    name=item.name,
                    quantity=item.quantity,
                    unit_price=item.price_at_time,
                    description=item.description or "",
                    image=item.image_url or "",
                )
                for item in row.items
            ],
            total=row.total_amount,
            status=row.status,
            payment_status=row.payment_status,
            payment_method=row.payment_method,
            customer_name=row.customer_name,
            table_number=row.table_number,
        )


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class AddCartItemRequest(BaseModel):
    """Add a catalog item to the session cart."""
    item_id: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1, le=99, examples=[2])


class UpdateCartItemRequest(BaseModel):
    """Set the quantity of an existing cart line."""
    quantity: int = Field(..., le=99, examples=[3])


class CheckoutRequest(BaseModel):
    """Customer details submitted with the cart."""
    customer_name: str = Field(default="", max_length=100, examples=["Dina"])
    table_number: str = Field(default="", max_length=20, examples=["7"])
    payment_method: PaymentMethod = Field(
        default=PaymentMethod.CASHIER,
        examples=["cashier", "wa_checkout"],
    )


class TableLockRequest(BaseModel):
    """Table id read from a QR code."""
    table_number: str = Field(..., min_length=1, max_length=20)

    @field_validator("table_number")
    @classmethod
    def strip_table(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Table number must not be blank")
        return v


class StatusUpdateRequest(BaseModel):
    status: OrderStatus


class PaymentStatusUpdateRequest(BaseModel):
    payment_status: PaymentStatus


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class CartResponse(BaseModel):
    """Current cart contents with derived totals."""
    lines: List[CartLine]
    subtotal: Decimal
    item_count: int
    subtotal_display: str


class ProductPageResponse(BaseModel):
    """One page of a filtered product list."""
    items: List[MenuItem]
    page: int
    total_pages: int
    total: int


class SideEffectResponse(BaseModel):
    """Outcome of a post-commit side effect."""
    name: str
    success: bool
    url: Optional[str] = None
    error_message: Optional[str] = None


class CheckoutResponse(BaseModel):
    """Response after a checkout attempt."""
    success: bool
    message: str
    order: Optional[OrderRecord] = None
    error_code: Optional[str] = None
    invoice_url: Optional[str] = None
    side_effects: List[SideEffectResponse] = Field(default_factory=list)


class SessionResponse(BaseModel):
    """Remembered customer details for a session."""
    session_id: str
    customer_name: Optional[str] = None
    table_number: Optional[str] = None
    table_locked: bool = False


class OrderHistoryResponse(BaseModel):
    total: int
    load_failed: bool = False
    orders: List[OrderRecord]


class OrderListResponse(BaseModel):
    """Paginated back-office order list."""
    total: int
    page: int
    total_pages: int
    orders: List[OrderRecord]


class RecentOrderSummary(BaseModel):
    order_number: str
    customer_name: str
    items: str
    total: str
    status: OrderStatus
    time: str


class DashboardResponse(BaseModel):
    """Back-office dashboard statistics."""
    total_revenue: Decimal
    total_revenue_display: str
    total_orders: int
    orders_by_status: dict[str, int]
    categories_count: int
    products_count: int
    unavailable_count: int
    recent_orders: List[RecentOrderSummary]


class ShareLinkResponse(BaseModel):
    message: str
    url: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    environment: str
    order_repository: str
    catalog_service: str
    redis: str
    timestamp: datetime
