"""
FastAPI Application Entry Point

Old Rao Restaurant Ordering System

Endpoints:
    - GET  /api/menu: Browse the menu
    - POST /api/orders: Checkout (guest or logged-in customer)
    - POST /api/reservations: Book a table
    - POST /api/contact: Contact form
    - /api/auth/*, /api/profile: Accounts
    - /api/admin/*: Menu, order, reservation and message management
    - GET  /events/order/{id}: Live status of one order (SSE)
    - GET  /events/admin/orders: Live admin feed (SSE)
    - GET  /dashboard, /orders/{id}: Server-rendered pages
    - GET  /health: System health check

Version: 1.0.0
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import redis.asyncio as aioredis
from fastapi import FastAPI, HTTPException, Depends, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.sessions import SessionMiddleware

from oldrao.core.config import get_settings, setup_logging
from oldrao.core.security import (
    SessionUser,
    get_session_user,
    hash_password,
    login_session,
    logout_session,
    require_admin,
    require_login,
    verify_password,
)
from oldrao.database import get_db, init_db, engine
from oldrao.models import (
    ContactMessage,
    MenuCategory,
    MenuItem,
    Order,
    OrderStatus,
    Reservation,
    ReservationStatus,
    User,
    UserRole,
)
from oldrao.schemas import (
    ContactCreate,
    ContactResponse,
    ErrorResponse,
    HealthResponse,
    LoginRequest,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MessageResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusResponse,
    OrderStatusUpdate,
    ProfileUpdate,
    ReservationCreate,
    ReservationResponse,
    ReservationStatusUpdate,
    SignupRequest,
    UserResponse,
)
from oldrao.services.events import (
    BroadcastRegistry,
    admin_channel,
    get_broadcaster,
    notify_new_contact,
    notify_new_order,
    notify_order_status,
    order_channel,
    sse_response,
)
from oldrao.tasks import export_order_to_excel

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

# Template configuration
templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


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

    await init_db()
    logger.info("✅ Database initialized")

    app.state.broadcaster = BroadcastRegistry()
    logger.info(f"✅ Live updates: heartbeat every {settings.sse_heartbeat_seconds:g}s")

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    app.state.broadcaster.close()
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant ordering: menu, checkout, reservations, contact messages "
        "and an admin dashboard with live order updates."
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

# Signed cookie session
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    session_cookie="oldrao_session",
    max_age=settings.session_max_age,
    same_site="lax",
    https_only=settings.is_production,
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def order_export_data(order: Order) -> dict[str, Any]:
    """Serialize an order for the Excel export task."""
    return {
        "order_id": order.id,
        "name": order.name,
        "phone": order.phone,
        "address": order.address,
        "items": order.items,
        "total": order.total,
        "payment": order.payment,
        "status": order.status.value,
        "user_id": order.user_id,
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }


def _enqueue_export(order_data: dict[str, Any]) -> None:
    try:
        export_order_to_excel.delay(order_data)
    except Exception as e:
        logger.warning(f"Could not queue Excel export for Order #{order_data['order_id']}: {e}")


def queue_order_export(order: Order) -> Optional[asyncio.Future]:
    """
    Queue the Excel export without waiting on the broker.

    Publishing to Celery is blocking I/O, so it runs in the default
    executor and the response does not wait for it.
    """
    if not settings.excel_export_enabled:
        return None
    loop = asyncio.get_running_loop()
    return loop.run_in_executor(None, _enqueue_export, order_export_data(order))


async def get_order_or_404(db: AsyncSession, order_id: int) -> Order:
    order = await db.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")
    return order


def ensure_order_access(order: Order, user: Optional[SessionUser]) -> None:
    """Guest orders are visible by id; customer orders only to owner or admin."""
    if order.is_guest:
        return
    if user is None:
        raise HTTPException(status_code=401, detail="Login required")
    if not user.is_admin and user.id != order.user_id:
        raise HTTPException(status_code=403, detail="Access denied")


async def build_order_items(db: AsyncSession, order_data: OrderCreate) -> tuple[list[dict], float]:
    """Snapshot menu prices for each cart line and compute the total."""
    ids = {line.id for line in order_data.items}
    result = await db.execute(select(MenuItem).where(MenuItem.id.in_(ids)))
    menu = {item.id: item for item in result.scalars().all()}

    unknown = sorted(ids - set(menu))
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown menu item(s): {unknown}")

    items = []
    for line in order_data.items:
        item = menu[line.id]
        items.append({
            "id": item.id,
            "name": item.name,
            "price": item.price,
            "qty": line.qty,
            "img": item.img,
        })
    total = round(sum(i["price"] * i["qty"] for i in items), 2)
    return items, total


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍛 Welcome to {settings.restaurant_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "menu": "/api/menu",
        "dashboard": "/dashboard",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    broadcaster: BroadcastRegistry = Depends(get_broadcaster),
) -> HealthResponse:
    """Verify all system components are operational."""

    # Check database
    db_status = "healthy"
    try:
        await db.execute(select(func.count(MenuItem.id)))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    # Check Redis
    redis_status = "healthy"
    try:
        r = aioredis.from_url(settings.redis_url, socket_timeout=2, socket_connect_timeout=2)
        try:
            await r.ping()
        finally:
            await r.aclose()
    except Exception as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    overall = "operational" if db_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        live_subscribers=broadcaster.total_subscribers,
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

@app.get("/api/menu", response_model=list[MenuItemResponse], tags=["Menu"])
async def list_menu(
    category: Optional[MenuCategory] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> list[MenuItemResponse]:
    """Full menu, optionally restricted to one category."""
    query = select(MenuItem).order_by(MenuItem.category, MenuItem.name)
    if category:
        query = query.where(MenuItem.category == category)
    result = await db.execute(query)
    return [MenuItemResponse.model_validate(i) for i in result.scalars().all()]


@app.get(
    "/api/menu/{item_id}",
    response_model=MenuItemResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def get_menu_item(
    item_id: int,
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    item = await db.get(MenuItem, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Menu item not found")
    return MenuItemResponse.model_validate(item)


# =============================================================================
# AUTH & PROFILE ENDPOINTS
# =============================================================================

@app.post("/api/auth/signup", response_model=UserResponse, status_code=201, tags=["Auth"])
async def signup(
    data: SignupRequest,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Create a customer account."""
    existing = await db.execute(select(User).where(User.email == data.email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="User already exists")

    user = User(
        name=data.name,
        email=data.email,
        phone=data.phone,
        password_hash=hash_password(data.password),
        role=UserRole.CUSTOMER,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"New customer account #{user.id}")
    return UserResponse.model_validate(user)


@app.post("/api/auth/login", response_model=UserResponse, tags=["Auth"])
async def login(
    data: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    result = await db.execute(select(User).where(User.email == data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    login_session(request, user)
    logger.info(f"User #{user.id} logged in ({user.role.value})")
    return UserResponse.model_validate(user)


@app.post("/api/auth/logout", response_model=MessageResponse, tags=["Auth"])
async def logout(request: Request) -> MessageResponse:
    logout_session(request)
    return MessageResponse(message="Logged out")


async def _current_user_record(db: AsyncSession, user: SessionUser) -> User:
    record = await db.get(User, user.id)
    if not record:
        raise HTTPException(status_code=401, detail="Account no longer exists")
    return record


@app.get("/api/profile", response_model=UserResponse, tags=["Auth"])
async def get_profile(
    user: SessionUser = Depends(require_login),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    return UserResponse.model_validate(await _current_user_record(db, user))


@app.patch("/api/profile", response_model=UserResponse, tags=["Auth"])
async def update_profile(
    data: ProfileUpdate,
    request: Request,
    user: SessionUser = Depends(require_login),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    record = await _current_user_record(db, user)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(record, field, value)
    await db.commit()
    await db.refresh(record)

    # Keep the display name in the session current
    login_session(request, record)
    return UserResponse.model_validate(record)


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderCreateResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Place Order",
)
async def create_order(
    order_data: OrderCreate,
    db: AsyncSession = Depends(get_db),
    user: Optional[SessionUser] = Depends(get_session_user),
    broadcaster: BroadcastRegistry = Depends(get_broadcaster),
) -> OrderCreateResponse:
    """
    Place an order from the cart.

    Works for guests as well as logged-in customers; prices come from the
    menu, not from the client.
    """
    logger.info(f"Creating order for: {order_data.name}")

    items, total = await build_order_items(db, order_data)

    new_order = Order(
        items=items,
        total=total,
        user_id=user.id if user else None,
        name=order_data.name,
        phone=order_data.phone,
        address=order_data.address,
        payment=order_data.payment,
        status=OrderStatus.PENDING,
    )

    db.add(new_order)
    await db.commit()
    await db.refresh(new_order)

    logger.info(f"Order #{new_order.id} created successfully ({'guest' if new_order.is_guest else f'user #{new_order.user_id}'})")

    notify_new_order(broadcaster, new_order)
    queue_order_export(new_order)

    return OrderCreateResponse(
        success=True,
        message="Order placed!",
        order_id=new_order.id,
        total=new_order.total,
        status=new_order.status,
    )


@app.get("/api/orders/{order_id}", response_model=OrderResponse, tags=["Orders"])
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    user: Optional[SessionUser] = Depends(get_session_user),
) -> OrderResponse:
    """Get a specific order by ID."""
    order = await get_order_or_404(db, order_id)
    ensure_order_access(order, user)
    return OrderResponse.model_validate(order)


@app.get("/api/orders/{order_id}/status", response_model=OrderStatusResponse, tags=["Orders"])
async def get_order_status(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    user: Optional[SessionUser] = Depends(get_session_user),
) -> OrderStatusResponse:
    """Latest status, for clients reconciling after a reconnect."""
    order = await get_order_or_404(db, order_id)
    ensure_order_access(order, user)
    return OrderStatusResponse(id=order.id, status=order.status)


@app.get("/api/my-orders", response_model=OrderListResponse, tags=["Orders"])
async def my_orders(
    user: SessionUser = Depends(require_login),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Order history of the logged-in customer, newest first."""
    result = await db.execute(
        select(Order)
        .where(Order.user_id == user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    orders = result.scalars().all()
    return OrderListResponse(
        total=len(orders),
        orders=[OrderResponse.model_validate(o) for o in orders],
    )


# =============================================================================
# RESERVATION & CONTACT ENDPOINTS
# =============================================================================

@app.post(
    "/api/reservations",
    response_model=ReservationResponse,
    status_code=201,
    tags=["Reservations"],
)
async def create_reservation(
    data: ReservationCreate,
    db: AsyncSession = Depends(get_db),
) -> ReservationResponse:
    reservation = Reservation(**data.model_dump())
    db.add(reservation)
    await db.commit()
    await db.refresh(reservation)

    logger.info(f"Reservation #{reservation.id} for {reservation.guests} on {reservation.date} {reservation.time}")
    return ReservationResponse.model_validate(reservation)


@app.post(
    "/api/contact",
    response_model=ContactResponse,
    status_code=201,
    tags=["Contact"],
)
async def create_contact_message(
    data: ContactCreate,
    db: AsyncSession = Depends(get_db),
    broadcaster: BroadcastRegistry = Depends(get_broadcaster),
) -> ContactResponse:
    message = ContactMessage(**data.model_dump())
    db.add(message)
    await db.commit()
    await db.refresh(message)

    logger.info(f"Contact message #{message.id} received")
    notify_new_contact(broadcaster, message)
    return ContactResponse.model_validate(message)


# =============================================================================
# ADMIN: MENU
# =============================================================================

@app.get("/api/admin/menu", response_model=list[MenuItemResponse], tags=["Admin"])
async def admin_list_menu(
    _: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[MenuItemResponse]:
    result = await db.execute(select(MenuItem).order_by(MenuItem.id))
    return [MenuItemResponse.model_validate(i) for i in result.scalars().all()]


@app.post("/api/admin/menu", response_model=MenuItemResponse, status_code=201, tags=["Admin"])
async def admin_create_menu_item(
    data: MenuItemCreate,
    _: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    item = MenuItem(**data.model_dump())
    db.add(item)
    await db.commit()
    await db.refresh(item)
    logger.info(f"Menu item #{item.id} added: {item.name}")
    return MenuItemResponse.model_validate(item)


@app.put("/api/admin/menu/{item_id}", response_model=MenuItemResponse, tags=["Admin"])
async def admin_update_menu_item(
    item_id: int,
    data: MenuItemUpdate,
    _: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    item = await db.get(MenuItem, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Menu item not found")
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(item, field, value)
    await db.commit()
    await db.refresh(item)
    return MenuItemResponse.model_validate(item)


@app.delete("/api/admin/menu/{item_id}", status_code=204, tags=["Admin"])
async def admin_delete_menu_item(
    item_id: int,
    _: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Response:
    item = await db.get(MenuItem, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Menu item not found")
    await db.delete(item)
    await db.commit()
    logger.info(f"Menu item #{item_id} deleted")
    return Response(status_code=204)


# =============================================================================
# ADMIN: ORDERS
# =============================================================================

@app.get("/api/admin/orders", response_model=OrderListResponse, tags=["Admin"])
async def admin_list_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    status: Optional[OrderStatus] = Query(None),
    _: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Retrieve paginated list of orders, newest first."""

    query = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    count_query = select(func.count(Order.id))

    if status:
        query = query.where(Order.status == status)
        count_query = count_query.where(Order.status == status)

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    result = await db.execute(query.offset(skip).limit(limit))
    orders = result.scalars().all()

    return OrderListResponse(
        total=total,
        orders=[OrderResponse.model_validate(o) for o in orders],
    )


@app.get("/api/admin/orders/{order_id}", response_model=OrderResponse, tags=["Admin"])
async def admin_get_order(
    order_id: int,
    _: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    return OrderResponse.model_validate(await get_order_or_404(db, order_id))


@app.patch(
    "/api/admin/orders/{order_id}/status",
    response_model=OrderStatusResponse,
    tags=["Admin"],
    summary="Update Order Status",
)
async def admin_update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    admin: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    broadcaster: BroadcastRegistry = Depends(get_broadcaster),
) -> OrderStatusResponse:
    """
    Change an order's status.

    After the commit, the order's viewers and all admin dashboards get a
    ``status-update`` event.
    """
    order = await get_order_or_404(db, order_id)
    previous = order.status
    order.status = data.status
    await db.commit()
    await db.refresh(order)

    logger.info(f"Order #{order.id}: {previous.value} -> {order.status.value} (admin #{admin.id})")

    notify_order_status(broadcaster, order)
    queue_order_export(order)

    return OrderStatusResponse(id=order.id, status=order.status)


# =============================================================================
# ADMIN: RESERVATIONS
# =============================================================================

@app.get("/api/admin/reservations", response_model=list[ReservationResponse], tags=["Admin"])
async def admin_list_reservations(
    status: Optional[ReservationStatus] = Query(None),
    _: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[ReservationResponse]:
    query = select(Reservation).order_by(Reservation.date, Reservation.time)
    if status:
        query = query.where(Reservation.status == status)
    result = await db.execute(query)
    return [ReservationResponse.model_validate(r) for r in result.scalars().all()]


@app.patch(
    "/api/admin/reservations/{reservation_id}/status",
    response_model=ReservationResponse,
    tags=["Admin"],
)
async def admin_update_reservation_status(
    reservation_id: int,
    data: ReservationStatusUpdate,
    _: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ReservationResponse:
    reservation = await db.get(Reservation, reservation_id)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    reservation.status = data.status
    await db.commit()
    await db.refresh(reservation)
    logger.info(f"Reservation #{reservation.id} -> {reservation.status.value}")
    return ReservationResponse.model_validate(reservation)


@app.delete("/api/admin/reservations/{reservation_id}", status_code=204, tags=["Admin"])
async def admin_delete_reservation(
    reservation_id: int,
    _: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Response:
    reservation = await db.get(Reservation, reservation_id)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    await db.delete(reservation)
    await db.commit()
    return Response(status_code=204)


# =============================================================================
# ADMIN: CONTACT MESSAGES
# =============================================================================

@app.get("/api/admin/contacts", response_model=list[ContactResponse], tags=["Admin"])
async def admin_list_contacts(
    responded: Optional[bool] = Query(None),
    _: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[ContactResponse]:
    query = select(ContactMessage).order_by(ContactMessage.created_at.desc(), ContactMessage.id.desc())
    if responded is not None:
        query = query.where(ContactMessage.responded == responded)
    result = await db.execute(query)
    return [ContactResponse.model_validate(m) for m in result.scalars().all()]


@app.patch("/api/admin/contacts/{message_id}/responded", response_model=ContactResponse, tags=["Admin"])
async def admin_mark_contact_responded(
    message_id: int,
    _: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ContactResponse:
    message = await db.get(ContactMessage, message_id)
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    if not message.responded:
        message.responded = True
        message.responded_at = datetime.now(timezone.utc)
        await db.commit()
        await db.refresh(message)
    return ContactResponse.model_validate(message)


@app.delete("/api/admin/contacts/{message_id}", status_code=204, tags=["Admin"])
async def admin_delete_contact(
    message_id: int,
    _: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Response:
    message = await db.get(ContactMessage, message_id)
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    await db.delete(message)
    await db.commit()
    return Response(status_code=204)


# =============================================================================
# ADMIN: DASHBOARD
# =============================================================================

@app.get("/api/admin/dashboard-data", tags=["Admin"])
async def dashboard_data(
    _: SessionUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    broadcaster: BroadcastRegistry = Depends(get_broadcaster),
) -> dict[str, Any]:
    """Get aggregated dashboard statistics."""

    async def count(*conditions) -> int:
        result = await db.execute(select(func.count(Order.id)).where(*conditions))
        return result.scalar() or 0

    total_orders = await count()
    pending_orders = await count(Order.status == OrderStatus.PENDING)
    active_orders = await count(
        Order.status.in_([OrderStatus.PREPARING, OrderStatus.OUT_FOR_DELIVERY])
    )
    completed_orders = await count(Order.status == OrderStatus.COMPLETED)
    cancelled_orders = await count(Order.status == OrderStatus.CANCELLED)

    # Today's revenue (cancelled orders excluded)
    today_start = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    revenue_result = await db.execute(
        select(func.sum(Order.total)).where(
            Order.created_at >= today_start,
            Order.status != OrderStatus.CANCELLED,
        )
    )
    today_revenue = revenue_result.scalar() or 0.0

    avg_result = await db.execute(
        select(func.avg(Order.total)).where(Order.status != OrderStatus.CANCELLED)
    )
    avg_order_value = avg_result.scalar() or 0.0

    pending_reservations = (await db.execute(
        select(func.count(Reservation.id)).where(Reservation.status == ReservationStatus.PENDING)
    )).scalar() or 0

    unanswered_messages = (await db.execute(
        select(func.count(ContactMessage.id)).where(ContactMessage.responded.is_(False))
    )).scalar() or 0

    recent_result = await db.execute(
        select(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(10)
    )
    recent_orders = recent_result.scalars().all()

    return {
        "total_orders": total_orders,
        "pending_orders": pending_orders,
        "active_orders": active_orders,
        "completed_orders": completed_orders,
        "cancelled_orders": cancelled_orders,
        "today_revenue": round(today_revenue, 2),
        "avg_order_value": round(avg_order_value, 2),
        "pending_reservations": pending_reservations,
        "unanswered_messages": unanswered_messages,
        "live_subscribers": broadcaster.total_subscribers,
        "recent_orders": [
            {
                "id": o.id,
                "name": o.name,
                "phone": o.phone,
                "total": o.total,
                "status": o.status.value,
                "created_at": o.created_at.isoformat() if o.created_at else None,
            }
            for o in recent_orders
        ],
    }


# =============================================================================
# LIVE UPDATE STREAMS (SERVER-SENT EVENTS)
# =============================================================================

@app.get("/events/order/{order_id}", tags=["Live Updates"])
async def order_events(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    user: Optional[SessionUser] = Depends(get_session_user),
    broadcaster: BroadcastRegistry = Depends(get_broadcaster),
):
    """
    Stream ``status-update`` events for one order.

    A customer's order streams only to its owner or an admin, like
    ``/orders/{id}``. Guest orders and ids that match no order open
    without checks; an unknown id simply never receives anything but
    keep-alives.
    """
    if order_id.isascii() and order_id.isdigit() and len(order_id) <= 18:
        order = await db.get(Order, int(order_id))
        if order:
            ensure_order_access(order, user)
    # Release the connection before the long-lived stream starts
    await db.close()

    return sse_response(
        broadcaster,
        order_channel(order_id),
        heartbeat_seconds=settings.sse_heartbeat_seconds,
        max_pending=settings.sse_max_pending_events,
    )


@app.get("/events/admin/orders", tags=["Live Updates"])
async def admin_events(
    _: SessionUser = Depends(require_admin),
    broadcaster: BroadcastRegistry = Depends(get_broadcaster),
):
    """Stream ``status-update``, ``new-order`` and ``new-contact`` events to admins."""
    return sse_response(
        broadcaster,
        admin_channel(),
        heartbeat_seconds=settings.sse_heartbeat_seconds,
        max_pending=settings.sse_max_pending_events,
    )


# =============================================================================
# PAGES
# =============================================================================

@app.get("/dashboard", response_class=HTMLResponse, tags=["Pages"])
async def dashboard_page(
    request: Request,
    admin: SessionUser = Depends(require_admin),
) -> HTMLResponse:
    """Admin dashboard; data is loaded from /api/admin/dashboard-data."""
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"settings": settings, "user": admin},
    )


@app.get("/orders/{order_id}", response_class=HTMLResponse, tags=["Pages"])
async def order_page(
    order_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    user: Optional[SessionUser] = Depends(get_session_user),
) -> HTMLResponse:
    """Order detail page; reloads itself when the status changes."""
    order = await get_order_or_404(db, order_id)
    ensure_order_access(order, user)
    return templates.TemplateResponse(
        request,
        "order.html",
        {"settings": settings, "user": user, "order": order},
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "oldrao.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
