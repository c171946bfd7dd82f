"""
Order status state machines.

Fulfillment: Pending → Cooking → Completed, with Cancelled reachable from
Pending or Cooking. Payment: Unpaid → Paid → Refunded. Both are
forward-only; setting the current status again is a no-op.
"""

from storefront.core.exceptions import InvalidTransitionError
from storefront.models import OrderStatus, PaymentStatus

FULFILLMENT_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.COOKING, OrderStatus.CANCELLED}),
    OrderStatus.COOKING: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.UNPAID: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}


def is_terminal(status: OrderStatus) -> bool:
    return not FULFILLMENT_TRANSITIONS[status]


def ensure_fulfillment_transition(current: OrderStatus, requested: OrderStatus) -> None:
    """Raise InvalidTransitionError unless current → requested is allowed."""
    current, requested = OrderStatus(current), OrderStatus(requested)
    if current == requested:
        return
    if requested not in FULFILLMENT_TRANSITIONS[current]:
        raise InvalidTransitionError("fulfillment", current.value, requested.value)


def ensure_payment_transition(current: PaymentStatus, requested: PaymentStatus) -> None:
    """Raise InvalidTransitionError unless current → requested is allowed."""
    current, requested = PaymentStatus(current), PaymentStatus(requested)
    if current == requested:
        return
    if requested not in PAYMENT_TRANSITIONS[current]:
        raise InvalidTransitionError("payment", current.value, requested.value)
