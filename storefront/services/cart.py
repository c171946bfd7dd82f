"""
Cart Aggregate

In-memory mapping from item id to (item snapshot, quantity).
Pure synchronous mutations; the only failure mode is a precondition
violation on add_item.

Invariants:
    - at most one line per item id (adding again increments quantity)
    - every line has quantity >= 1
    - subtotal is recomputed on every read
"""

import logging
from decimal import Decimal
from typing import Optional

from storefront.core.exceptions import CartValidationError
from storefront.schemas import CartLine, MenuItem

logger = logging.getLogger(__name__)


class Cart:
    """A customer's in-progress order."""

    def __init__(self):
        # dict preserves insertion order, which is the display order
        self._lines: dict[str, CartLine] = {}

    def add_item(self, item: MenuItem, quantity: int = 1) -> CartLine:
        """
        Add quantity units of item.

        Raises:
            CartValidationError: If quantity is not a positive integer
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise CartValidationError(
                f"Quantity must be a positive integer, got {quantity!r}"
            )

        existing = self._lines.get(item.id)
        if existing is not None:
            line = existing.model_copy(update={"quantity": existing.quantity + quantity})
        else:
            line = CartLine(item=item, quantity=quantity)
        self._lines[item.id] = line

        logger.debug(f"Cart: {item.name} x{line.quantity}")
        return line

    def update_quantity(self, item_id: str, new_quantity: int) -> Optional[CartLine]:
        """
        Set a line's quantity.

        Quantities below 1 are ignored; deleting a line takes an explicit
        remove_item call. Unknown ids are ignored too.

        Returns:
            The line after the call, or None if no such line exists
        """
        existing = self._lines.get(item_id)
        if existing is None:
            return None
        if not isinstance(new_quantity, int) or isinstance(new_quantity, bool) or new_quantity < 1:
            return existing

        line = existing.model_copy(update={"quantity": new_quantity})
        self._lines[item_id] = line
        return line

    def remove_item(self, item_id: str) -> bool:
        """Delete a line. Returns True if a line was removed."""
        return self._lines.pop(item_id, None) is not None

    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self._lines.values()), Decimal("0"))

    def item_count(self) -> int:
        """Total units across lines (the cart badge)."""
        return sum(line.quantity for line in self._lines.values())

    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    def get(self, item_id: str) -> Optional[CartLine]:
        return self._lines.get(item_id)

    def clear(self) -> None:
        self._lines.clear()

    def deduct(self, submitted: list[CartLine]) -> None:
        """
        Take a submitted snapshot out of the cart.

        Quantities added after the snapshot was taken stay in the cart.
        """
        for line in submitted:
            current = self._lines.get(line.item.id)
            if current is None:
                continue
            remaining = current.quantity - line.quantity
            if remaining >= 1:
                self._lines[line.item.id] = current.model_copy(update={"quantity": remaining})
            else:
                del self._lines[line.item.id]

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._lines
