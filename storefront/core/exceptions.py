"""
Storefront Exceptions

Errors raised by the service layer. The API layer translates them into
HTTP responses; the checkout workflow translates persistence errors into
a recoverable CheckoutResult.
"""

from typing import Optional


class StorefrontError(Exception):
    """Base class for all storefront errors."""


class CartValidationError(StorefrontError, ValueError):
    """A cart precondition was violated (e.g. non-positive quantity)."""


class OrderPersistenceError(StorefrontError):
    """
    Writing an order header or its line items failed.

    Attributes:
        stage: "header" or "lines"
        order_id: Backend id of the header when it was already written.
            A non-None value on a "lines" failure marks an orphaned header.
    """

    def __init__(
        self,
        message: str,
        stage: str = "header",
        order_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.stage = stage
        self.order_id = order_id


class OrderNotFoundError(StorefrontError, LookupError):
    """No order exists with the requested id."""

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class InvalidTransitionError(StorefrontError, ValueError):
    """A fulfillment or payment status change is not allowed."""

    def __init__(self, kind: str, current: str, requested: str):
        super().__init__(
            f"Cannot move {kind} status from {current} to {requested}"
        )
        self.kind = kind
        self.current = current
        self.requested = requested
