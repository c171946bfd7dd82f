"""
FastAPI Application Entry Point

PAYPYA Storefront - restaurant ordering with a back-office.
Runs on in-memory services (development) or the SQL database
(staging / production).

Endpoints:
    - GET  /api/categories, /api/products: Menu browsing
    - POST /api/sessions: Open a customer session (optionally QR table-locked)
    - /api/sessions/{id}/cart: Cart management
    - POST /api/sessions/{id}/checkout: Place the order
    - /api/sessions/{id}/orders: Local order history and invoices
    - /api/orders: Back-office order management
    - GET  /api/dashboard-data: Back-office statistics
    - GET  /health: System health check

Author: Storefront Team
Version: 1.0.0
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
import redis

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from storefront.core.config import get_settings, setup_logging
from storefront.core.exceptions import (
    CartValidationError,
    InvalidTransitionError,
    OrderNotFoundError,
    OrderPersistenceError,
)
from storefront.database import async_session_maker, engine, init_db
from storefront.schemas import (
    AddCartItemRequest,
    CartResponse,
    CategoryRecord,
    CheckoutRequest,
    CheckoutResponse,
    DashboardResponse,
    ErrorResponse,
    HealthResponse,
    MenuItem,
    OrderHistoryResponse,
    OrderListResponse,
    OrderRecord,
    PaymentStatusUpdateRequest,
    ProductPageResponse,
    RecentOrderSummary,
    SessionResponse,
    ShareLinkResponse,
    SideEffectResponse,
    StatusUpdateRequest,
    TableLockRequest,
    UpdateCartItemRequest,
)
from storefront.services.catalog import (
    BaseCatalogService,
    CatalogStore,
    ProductFilter,
    get_catalog_service,
    paginate,
)
from storefront.services.checkout import OrderSubmissionWorkflow
from storefront.services.invoice import InvoiceRenderer, get_launcher
from storefront.services.invoice.formatting import format_time
from storefront.services.orders import BaseOrderRepository, get_order_repository
from storefront.services.orders.backoffice import compute_order_stats, filter_orders
from storefront.services.session import CustomerSession, SessionRegistry
from storefront.tasks import ledger_export

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

CHECKOUT_STATUS_CODES = {
    "validation_error": 400,
    "empty_cart": 400,
    "checkout_in_progress": 409,
    "persistence_error": 503,
}


# =============================================================================
# SERVICE PROVIDERS
# =============================================================================

@lru_cache()
def get_session_registry() -> SessionRegistry:
    return SessionRegistry(
        settings.sessions_path,
        lock_timeout=settings.file_lock_timeout,
        max_sessions=settings.max_sessions,
    )


@lru_cache()
def get_catalog_store() -> CatalogStore:
    return CatalogStore(get_catalog_service())


@lru_cache()
def get_invoice_renderer() -> InvoiceRenderer:
    return InvoiceRenderer(settings)


@lru_cache()
def get_checkout_workflow() -> OrderSubmissionWorkflow:
    return OrderSubmissionWorkflow(
        repository=get_order_repository(),
        renderer=get_invoice_renderer(),
        launcher=get_launcher(settings.open_deep_links),
        hooks=[ledger_export],
        settings=settings,
    )


async def get_loaded_catalog(
    store: CatalogStore = Depends(get_catalog_store),
) -> CatalogStore:
    """Catalog store, fetched on first use; a failed fetch is retried next time."""
    await store.ensure_loaded()
    return store


def get_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> CustomerSession:
    try:
        return registry.get(session_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def get_editable_session(session: CustomerSession = Depends(get_session)) -> CustomerSession:
    """The session, provided no checkout is in flight for it."""
    if session.submitting:
        raise HTTPException(status_code=409, detail="Your order is being submitted")
    return session


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    if settings.use_database:
        from storefront.services.catalog.sql import seed_catalog

        await init_db()
        logger.info("✅ Database initialized")
        seeded = await seed_catalog(async_session_maker)
        if seeded:
            logger.info(f"✅ Seeded {seeded} menu items")

        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info(f"✅ Order Repository: {get_order_repository().provider_name}")
    logger.info(f"✅ Catalog Service: {get_catalog_service().provider_name}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant storefront: menu, cart, checkout, invoices and a "
        "back-office for order management."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def cart_response(session: CustomerSession, renderer: InvoiceRenderer) -> CartResponse:
    subtotal = session.cart.subtotal()
    return CartResponse(
        lines=session.cart.lines(),
        subtotal=subtotal,
        item_count=session.cart.item_count(),
        subtotal_display=renderer.money(subtotal),
    )


def session_response(session: CustomerSession) -> SessionResponse:
    return SessionResponse(
        session_id=session.session_id,
        customer_name=session.customer_name,
        table_number=session.table_number,
        table_locked=session.table_locked,
    )


def history_order(session: CustomerSession, order_number: str) -> OrderRecord:
    order = session.history.find_by_order_number(order_number)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_number} not found")
    return order


def invoice_document_response(order: OrderRecord, renderer: InvoiceRenderer) -> FileResponse:
    result = renderer.export_document(order, settings.invoices_path)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error_message or "Export failed")
    return FileResponse(result.path, media_type=XLSX_MEDIA_TYPE, filename=result.filename)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"☕ Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "dashboard": "/api/dashboard-data",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    repository: BaseOrderRepository = Depends(get_order_repository),
    catalog: BaseCatalogService = Depends(get_catalog_service),
) -> HealthResponse:
    """Verify the order repository, the catalog and the task broker are reachable."""
    repository_status = "healthy" if await repository.health_check() else "unhealthy"
    catalog_status = "healthy" if await catalog.health_check() else "unhealthy"

    # Development runs Celery tasks inline, without a broker
    redis_status = "not_used"
    if not settings.is_development:
        redis_status = "healthy"
        try:
            r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
            r.ping()
            r.close()
        except redis.RedisError as e:
            redis_status = f"unhealthy: {str(e)}"
            logger.error(f"Redis health check failed: {e}")

    overall = "operational" if all(
        s in ("healthy", "not_used") for s in [repository_status, catalog_status, redis_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        environment=settings.env_mode.value,
        order_repository=repository_status,
        catalog_service=catalog_status,
        redis=redis_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# CATALOG ENDPOINTS
# =============================================================================

@app.get(
    "/api/categories",
    response_model=list[CategoryRecord],
    responses={503: {"model": ErrorResponse}},
    tags=["Catalog"],
)
async def list_categories(
    store: CatalogStore = Depends(get_loaded_catalog),
) -> list[CategoryRecord]:
    if store.load_failed:
        raise HTTPException(status_code=503, detail=store.error_message)
    return store.categories()


@app.get(
    "/api/products",
    response_model=ProductPageResponse,
    responses={503: {"model": ErrorResponse}},
    tags=["Catalog"],
    summary="Browse the Menu",
)
async def list_products(
    category_id: Optional[str] = Query(None),
    q: Optional[str] = Query(None, description="Search name, description and tags"),
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=100),
    store: CatalogStore = Depends(get_loaded_catalog),
) -> ProductPageResponse:
    """
    One page of the menu. A search term spans every category; without one
    the requested (or first) category is listed.
    """
    if store.load_failed:
        raise HTTPException(status_code=503, detail=store.error_message)
    result = store.page(category_id, q, page, per_page or settings.products_per_page)
    return ProductPageResponse(
        items=result.items,
        page=result.page,
        total_pages=result.total_pages,
        total=result.total,
    )


@app.get("/api/products/{item_id}", response_model=MenuItem, tags=["Catalog"])
async def get_product(
    item_id: str,
    store: CatalogStore = Depends(get_loaded_catalog),
) -> MenuItem:
    item = store.get(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Product {item_id} not found")
    return item


# =============================================================================
# SESSION ENDPOINTS
# =============================================================================

@app.post(
    "/api/sessions",
    response_model=SessionResponse,
    status_code=201,
    tags=["Sessions"],
    summary="Open a Customer Session",
)
def create_session(
    table: Optional[str] = Query(None, max_length=20, description="Table id from a QR code"),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    session = registry.get(registry.new_session_id())
    if table and table.strip():
        session.lock_table(table.strip())
    return session_response(session)


@app.get("/api/sessions/{session_id}", response_model=SessionResponse, tags=["Sessions"])
def read_session(session: CustomerSession = Depends(get_session)) -> SessionResponse:
    return session_response(session)


@app.post("/api/sessions/{session_id}/table", response_model=SessionResponse, tags=["Sessions"])
def lock_table(
    body: TableLockRequest,
    session: CustomerSession = Depends(get_session),
) -> SessionResponse:
    """Pin the table id scanned from a QR code."""
    session.lock_table(body.table_number)
    return session_response(session)


# =============================================================================
# CART ENDPOINTS
# =============================================================================

@app.get("/api/sessions/{session_id}/cart", response_model=CartResponse, tags=["Cart"])
async def read_cart(
    session: CustomerSession = Depends(get_session),
    renderer: InvoiceRenderer = Depends(get_invoice_renderer),
) -> CartResponse:
    return cart_response(session, renderer)


@app.post(
    "/api/sessions/{session_id}/cart/items",
    response_model=CartResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Cart"],
)
async def add_cart_item(
    body: AddCartItemRequest,
    session: CustomerSession = Depends(get_editable_session),
    store: CatalogStore = Depends(get_loaded_catalog),
    renderer: InvoiceRenderer = Depends(get_invoice_renderer),
) -> CartResponse:
    item = store.get(body.item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Product {body.item_id} not found")
    session.cart.add_item(item, body.quantity)
    return cart_response(session, renderer)


@app.patch(
    "/api/sessions/{session_id}/cart/items/{item_id}",
    response_model=CartResponse,
    tags=["Cart"],
)
async def update_cart_item(
    item_id: str,
    body: UpdateCartItemRequest,
    session: CustomerSession = Depends(get_editable_session),
    renderer: InvoiceRenderer = Depends(get_invoice_renderer),
) -> CartResponse:
    """Set a line's quantity; quantities below 1 are ignored."""
    session.cart.update_quantity(item_id, body.quantity)
    return cart_response(session, renderer)


@app.delete(
    "/api/sessions/{session_id}/cart/items/{item_id}",
    response_model=CartResponse,
    tags=["Cart"],
)
async def remove_cart_item(
    item_id: str,
    session: CustomerSession = Depends(get_editable_session),
    renderer: InvoiceRenderer = Depends(get_invoice_renderer),
) -> CartResponse:
    session.cart.remove_item(item_id)
    return cart_response(session, renderer)


@app.delete("/api/sessions/{session_id}/cart", response_model=CartResponse, tags=["Cart"])
async def clear_cart(
    session: CustomerSession = Depends(get_editable_session),
    renderer: InvoiceRenderer = Depends(get_invoice_renderer),
) -> CartResponse:
    session.cart.clear()
    return cart_response(session, renderer)


# =============================================================================
# CHECKOUT ENDPOINT
# =============================================================================

@app.post(
    "/api/sessions/{session_id}/checkout",
    response_model=CheckoutResponse,
    status_code=201,
    tags=["Checkout"],
    summary="Place the Order",
)
async def checkout(
    body: CheckoutRequest,
    response: Response,
    session: CustomerSession = Depends(get_session),
    workflow: OrderSubmissionWorkflow = Depends(get_checkout_workflow),
) -> CheckoutResponse:
    """
    Submit the session cart.

    On failure the cart is kept and the customer can resubmit. A
    messaging checkout returns the deep link under side_effects.
    """
    result = await workflow.submit(
        session,
        body.customer_name,
        body.table_number,
        body.payment_method,
    )

    side_effects = [SideEffectResponse(**asdict(effect)) for effect in result.side_effects]

    if not result.success:
        response.status_code = CHECKOUT_STATUS_CODES.get(result.error_code, 500)
        return CheckoutResponse(
            success=False,
            message=result.error_message or "Checkout failed",
            error_code=result.error_code,
            side_effects=side_effects,
        )

    order = result.order
    return CheckoutResponse(
        success=True,
        message="Order placed successfully!",
        order=order,
        invoice_url=f"/api/sessions/{session.session_id}/orders/{order.order_number}/invoice",
        side_effects=side_effects,
    )


# =============================================================================
# ORDER HISTORY & INVOICE ENDPOINTS
# =============================================================================

@app.get(
    "/api/sessions/{session_id}/orders",
    response_model=OrderHistoryResponse,
    tags=["History"],
)
def order_history(session: CustomerSession = Depends(get_session)) -> OrderHistoryResponse:
    """Orders placed from this session, most recent first."""
    orders = session.history.list()
    return OrderHistoryResponse(
        total=len(orders),
        load_failed=session.history.load_failed,
        orders=orders,
    )


@app.get(
    "/api/sessions/{session_id}/orders/{order_number}",
    response_model=OrderRecord,
    tags=["History"],
)
def history_entry(
    order_number: str,
    session: CustomerSession = Depends(get_session),
) -> OrderRecord:
    return history_order(session, order_number)


@app.get(
    "/api/sessions/{session_id}/orders/{order_number}/invoice",
    response_class=HTMLResponse,
    tags=["Invoices"],
)
def invoice_page(
    order_number: str,
    print_view: bool = Query(False, alias="print"),
    session: CustomerSession = Depends(get_session),
    renderer: InvoiceRenderer = Depends(get_invoice_renderer),
) -> HTMLResponse:
    """Printable invoice; ?print=true drops navigation and decoration."""
    order = history_order(session, order_number)
    base = f"/api/sessions/{session.session_id}/orders/{order_number}"
    html = renderer.render_printable(
        order,
        for_print=print_view,
        document_url=f"{base}/invoice/document",
        back_url=f"/api/sessions/{session.session_id}/orders",
    )
    return HTMLResponse(html)


@app.get(
    "/api/sessions/{session_id}/orders/{order_number}/invoice/document",
    tags=["Invoices"],
)
def invoice_document(
    order_number: str,
    session: CustomerSession = Depends(get_session),
    renderer: InvoiceRenderer = Depends(get_invoice_renderer),
) -> FileResponse:
    return invoice_document_response(history_order(session, order_number), renderer)


@app.get(
    "/api/sessions/{session_id}/orders/{order_number}/invoice/share",
    response_model=ShareLinkResponse,
    tags=["Invoices"],
)
def invoice_share(
    order_number: str,
    session: CustomerSession = Depends(get_session),
    renderer: InvoiceRenderer = Depends(get_invoice_renderer),
) -> ShareLinkResponse:
    order = history_order(session, order_number)
    return ShareLinkResponse(
        message=renderer.message_draft(order),
        url=renderer.share_link(order),
    )


# =============================================================================
# BACK-OFFICE ORDER ENDPOINTS
# =============================================================================

@app.get(
    "/api/orders",
    response_model=OrderListResponse,
    tags=["Back-office"],
    summary="List Orders",
)
async def list_orders(
    status: Optional[str] = Query(None, description="Fulfillment status or 'all'"),
    q: Optional[str] = Query(None, description="Order number or customer name"),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    repository: BaseOrderRepository = Depends(get_order_repository),
) -> OrderListResponse:
    """Orders newest first, filtered and paginated."""
    orders = filter_orders(await repository.list_orders(), status=status, search=q)
    result = paginate(orders, page, per_page)
    return OrderListResponse(
        total=result.total,
        page=result.page,
        total_pages=result.total_pages,
        orders=result.items,
    )


@app.get("/api/orders/{order_id}", response_model=OrderRecord, tags=["Back-office"])
async def get_order(
    order_id: str,
    repository: BaseOrderRepository = Depends(get_order_repository),
) -> OrderRecord:
    return await repository.get_order(order_id)


@app.patch("/api/orders/{order_id}/status", response_model=OrderRecord, tags=["Back-office"])
async def update_order_status(
    order_id: str,
    body: StatusUpdateRequest,
    repository: BaseOrderRepository = Depends(get_order_repository),
) -> OrderRecord:
    order = await repository.update_status(order_id, body.status)
    logger.info(f"Order {order.order_number} status -> {order.status.value}")
    return order


@app.patch(
    "/api/orders/{order_id}/payment-status",
    response_model=OrderRecord,
    tags=["Back-office"],
)
async def update_payment_status(
    order_id: str,
    body: PaymentStatusUpdateRequest,
    repository: BaseOrderRepository = Depends(get_order_repository),
) -> OrderRecord:
    order = await repository.update_payment_status(order_id, body.payment_status)
    logger.info(f"Order {order.order_number} payment -> {order.payment_status.value}")
    return order


@app.delete("/api/orders/{order_id}", status_code=204, tags=["Back-office"])
async def delete_order(
    order_id: str,
    repository: BaseOrderRepository = Depends(get_order_repository),
) -> Response:
    await repository.delete_order(order_id)
    logger.info(f"Order {order_id} deleted")
    return Response(status_code=204)


@app.get("/api/orders/{order_id}/invoice", response_class=HTMLResponse, tags=["Back-office"])
async def order_invoice_page(
    order_id: str,
    print_view: bool = Query(False, alias="print"),
    repository: BaseOrderRepository = Depends(get_order_repository),
    renderer: InvoiceRenderer = Depends(get_invoice_renderer),
) -> HTMLResponse:
    order = await repository.get_order(order_id)
    return HTMLResponse(renderer.render_printable(
        order,
        for_print=print_view,
        document_url=f"/api/orders/{order_id}/invoice/document",
        back_url="/api/orders",
    ))


@app.get("/api/orders/{order_id}/invoice/document", tags=["Back-office"])
async def order_invoice_document(
    order_id: str,
    repository: BaseOrderRepository = Depends(get_order_repository),
    renderer: InvoiceRenderer = Depends(get_invoice_renderer),
) -> FileResponse:
    order = await repository.get_order(order_id)
    return await run_in_threadpool(invoice_document_response, order, renderer)


# =============================================================================
# DASHBOARD ENDPOINT
# =============================================================================

@app.get(
    "/api/dashboard-data",
    response_model=DashboardResponse,
    tags=["Dashboard"],
)
async def dashboard_data(
    repository: BaseOrderRepository = Depends(get_order_repository),
    catalog: BaseCatalogService = Depends(get_catalog_service),
    renderer: InvoiceRenderer = Depends(get_invoice_renderer),
) -> DashboardResponse:
    """Get aggregated dashboard statistics."""
    stats = compute_order_stats(await repository.list_orders())
    categories = await catalog.list_categories()
    products = await catalog.list_products(ProductFilter())

    return DashboardResponse(
        total_revenue=stats.total_revenue,
        total_revenue_display=renderer.money(stats.total_revenue),
        total_orders=stats.total_orders,
        orders_by_status=stats.orders_by_status,
        categories_count=len(categories),
        products_count=len(products),
        unavailable_count=sum(1 for p in products if not p.is_available),
        recent_orders=[
            RecentOrderSummary(
                order_number=o.order_number,
                customer_name=o.customer_name or "Guest",
                items=o.items_summary(),
                total=renderer.money(o.total),
                status=o.status,
                time=format_time(o.created_at),
            )
            for o in stats.recent_orders
        ],
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def error_response(status_code: int, error: str, detail: Optional[str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(),
    )


@app.exception_handler(OrderNotFoundError)
async def order_not_found_handler(request: Request, exc: OrderNotFoundError) -> JSONResponse:
    return error_response(404, "Not Found", str(exc))


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
    logger.warning(f"Rejected status change: {exc}")
    return error_response(409, "Invalid Status Transition", str(exc))


@app.exception_handler(CartValidationError)
async def cart_validation_handler(request: Request, exc: CartValidationError) -> JSONResponse:
    return error_response(400, "Invalid Cart Operation", str(exc))


@app.exception_handler(OrderPersistenceError)
async def persistence_error_handler(request: Request, exc: OrderPersistenceError) -> JSONResponse:
    logger.error(f"Order storage error: {exc}")
    return error_response(503, "Order Storage Unavailable", str(exc) if settings.debug else None)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    content: dict[str, Any] = {
        "success": False,
        "error": "Internal Server Error",
        "detail": str(exc) if settings.debug else "An unexpected error occurred",
    }
    return JSONResponse(status_code=500, content=content)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
