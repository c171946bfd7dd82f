"""
Order Submission Workflow

Turns a session's cart into a persisted order:

    1. Validate customer name, table id and cart locally (no backend call)
    2. Generate the order number
    3. Persist the header, then the line items, one after the other
    4. Take the submitted lines out of the cart, record the order in the
       session history and remember the customer's details
    5. Run post-commit hooks (messaging checkout deep link, ledger export)

A persistence failure leaves the cart untouched so the customer can
resubmit; nothing is retried automatically. A line-item failure after the
header was written reports the orphaned header id. Hook failures are
reported next to the confirmation and never undo the order. Storage
writes and hooks run in worker threads, off the event loop.

Author: Storefront Team
Version: 1.0.0
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from storefront.core.config import Settings, get_settings
from storefront.core.exceptions import OrderPersistenceError
from storefront.models import OrderStatus, PaymentMethod, PaymentStatus
from storefront.schemas import OrderHeaderCreate, OrderLine, OrderRecord
from storefront.services.invoice import (
    DeepLinkLauncher,
    InvoiceRenderer,
    RecordingLauncher,
    build_checkout_message,
    build_deep_link,
)
from storefront.services.order_number import generate_order_number
from storefront.services.orders.base import BaseOrderRepository
from storefront.services.session import CustomerSession
from storefront.services.storage import StorageError

logger = logging.getLogger(__name__)


@dataclass
class SideEffectResult:
    """
    Outcome of one post-commit side effect.

    Attributes:
        name: Side effect identifier (e.g. "messaging_checkout")
        success: Whether it completed
        url: Deep link produced by the side effect, if any
        error_message: Error description if it failed
    """
    name: str
    success: bool
    url: Optional[str] = None
    error_message: Optional[str] = None


PostCommitHook = Callable[[OrderRecord], SideEffectResult]


@dataclass
class CheckoutResult:
    """
    Standardized result of a checkout attempt.

    Attributes:
        success: Whether the order was persisted
        order: Confirmation record, handed to the invoice renderer
        error_code: validation_error, empty_cart, checkout_in_progress
            or persistence_error
        error_message: Human-readable reason
        orphaned_order_id: Header id written without its line items
        side_effects: Post-commit side effect outcomes
    """
    success: bool
    order: Optional[OrderRecord] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    orphaned_order_id: Optional[str] = None
    side_effects: list[SideEffectResult] = field(default_factory=list)

    @classmethod
    def failure(cls, error_code: str, error_message: str, **kwargs) -> "CheckoutResult":
        return cls(success=False, error_code=error_code, error_message=error_message, **kwargs)

    def side_effect(self, name: str) -> Optional[SideEffectResult]:
        for effect in self.side_effects:
            if effect.name == name:
                return effect
        return None


class OrderSubmissionWorkflow:
    """
    Checkout orchestration over an order repository.

    Args:
        repository: Order persistence service
        renderer: Used to format amounts in the messaging draft
        launcher: Opens the messaging deep link
        hooks: Extra post-commit hooks run for every order
        settings: Source of the order-number prefix and support contact
    """

    def __init__(
        self,
        repository: BaseOrderRepository,
        renderer: Optional[InvoiceRenderer] = None,
        launcher: Optional[DeepLinkLauncher] = None,
        hooks: Optional[list[PostCommitHook]] = None,
        settings: Optional[Settings] = None,
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.renderer = renderer or InvoiceRenderer(self.settings)
        self.launcher = launcher or RecordingLauncher()
        self.hooks = list(hooks or [])

    async def submit(
        self,
        session: CustomerSession,
        customer_name: str,
        table_number: str,
        payment_method: PaymentMethod = PaymentMethod.CASHIER,
    ) -> CheckoutResult:
        customer_name = (customer_name or "").strip()
        table_number = await asyncio.to_thread(
            session.resolve_table, (table_number or "").strip()
        )

        if not customer_name or not table_number:
            return CheckoutResult.failure(
                "validation_error",
                "Please fill in your name and table number",
            )
        if session.cart.is_empty:
            return CheckoutResult.failure("empty_cart", "Your cart is empty")
        if session.submitting:
            logger.warning(f"Session {session.session_id}: checkout already in progress")
            return CheckoutResult.failure(
                "checkout_in_progress",
                "Your order is already being submitted",
            )

        session.submitting = True
        try:
            return await self._submit(session, customer_name, table_number, PaymentMethod(payment_method))
        finally:
            session.submitting = False

    async def _submit(
        self,
        session: CustomerSession,
        customer_name: str,
        table_number: str,
        payment_method: PaymentMethod,
    ) -> CheckoutResult:
        snapshot = session.cart.lines()
        lines = [OrderLine.from_cart_line(line) for line in snapshot]
        total = sum((line.line_total for line in snapshot), Decimal("0"))
        created_at = datetime.now().astimezone()
        order_number = generate_order_number(self.settings.order_number_prefix, created_at)

        header = OrderHeaderCreate(
            order_number=order_number,
            customer_name=customer_name,
            table_number=table_number,
            total_amount=total,
            payment_method=payment_method,
            created_at=created_at,
        )

        logger.info(
            f"Checkout {order_number}: {len(lines)} lines, total {total} "
            f"({payment_method.value}, table {table_number})"
        )

        order_id = None
        try:
            order_id = await self.repository.create_order_header(header)
            await self.repository.create_order_lines(order_id, lines)
        except OrderPersistenceError as e:
            orphan = e.order_id or order_id
            if orphan:
                logger.error(f"Checkout {order_number}: lines failed, header {orphan} orphaned: {e}")
            else:
                logger.error(f"Checkout {order_number}: header write failed: {e}")
            return CheckoutResult.failure(
                "persistence_error",
                "We could not place your order. Please try again.",
                orphaned_order_id=orphan,
            )

        order = OrderRecord(
            id=order_id,
            order_number=order_number,
            created_at=created_at,
            items=lines,
            total=total,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.UNPAID,
            payment_method=payment_method,
            customer_name=customer_name,
            table_number=table_number,
        )

        session.cart.deduct(snapshot)
        result = CheckoutResult(success=True, order=order)

        try:
            await asyncio.to_thread(session.history.record, order)
        except StorageError as e:
            logger.error(f"Checkout {order_number}: history not saved: {e}")
            result.side_effects.append(
                SideEffectResult(name="history", success=False, error_message=str(e))
            )

        try:
            await asyncio.to_thread(session.remember_customer, customer_name, table_number)
        except StorageError as e:
            logger.warning(f"Checkout {order_number}: customer details not saved: {e}")

        logger.info(f"Checkout {order_number}: placed as {order_id}")

        result.side_effects.extend(await self._run_post_commit(order))
        return result

    # =========================================================================
    # POST-COMMIT SIDE EFFECTS
    # =========================================================================

    def messaging_link(self, order: OrderRecord) -> str:
        message = build_checkout_message(
            order.customer_name or "",
            order.table_number or "",
            order.items,
            order.total,
            money=self.renderer.money,
        )
        return build_deep_link(
            self.settings.messaging_base_url,
            self.settings.whatsapp_number,
            message,
        )

    def _open_messaging_checkout(self, order: OrderRecord) -> SideEffectResult:
        url = self.messaging_link(order)
        self.launcher.open(url)
        return SideEffectResult(name="messaging_checkout", success=True, url=url)

    async def _run_post_commit(self, order: OrderRecord) -> list[SideEffectResult]:
        hooks: list[tuple[str, PostCommitHook]] = []
        if order.payment_method == PaymentMethod.WA_CHECKOUT:
            hooks.append(("messaging_checkout", self._open_messaging_checkout))
        hooks.extend((getattr(hook, "__name__", type(hook).__name__), hook) for hook in self.hooks)

        results = []
        for name, hook in hooks:
            try:
                results.append(await asyncio.to_thread(hook, order))
            except Exception as e:
                logger.exception(f"Post-commit hook {name} failed for {order.order_number}")
                results.append(SideEffectResult(name=name, success=False, error_message=str(e)))
        return results
