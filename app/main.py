# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# Main entry point for the Spraxe commerce API.
# Configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import asyncio
import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.websocket import websocket_manager, WEBSOCKET_CHANNEL
from app.exceptions import (
    SpraxeException,
    spraxe_exception_handler,
    validation_exception_handler,
)
from app.routers import (
    health,
    catalog,
    wishlist,
    orders,
    account,
    support,
    seller,
    admin_dashboard,
    admin_inventory,
    admin_featured,
    admin_support,
    admin_orders,
    reports,
    notifications,
    tasks,
)
from app.auth import routes as auth_routes
from app.websocket import routes as websocket_routes
from lib.supabase_client import SupabaseClientError

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

_redis_listener_task = None
_shutdown_event = None


async def redis_pubsub_listener():
    """
    Relay change events published to Redis onto WebSocket subscribers.

    Services and Celery workers publish {"topic", "type", "data"} messages;
    the topic is removed and the rest is broadcast to that topic's sockets.
    """
    import redis.asyncio as aioredis

    logger.info("Starting Redis pub/sub listener for WebSocket broadcasts")

    redis_client = None
    pubsub = None
    try:
        redis_client = aioredis.from_url(settings.REDIS_URL)
        pubsub = redis_client.pubsub()
        await pubsub.subscribe(WEBSOCKET_CHANNEL)

        async for message in pubsub.listen():
            if _shutdown_event and _shutdown_event.is_set():
                break

            if message["type"] != "message":
                continue

            try:
                data = json.loads(message["data"])
                topic = data.pop("topic", None)
                if topic:
                    await websocket_manager.broadcast(topic, data)
                    logger.debug(f"Broadcast {data.get('type')} to {topic}")
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid JSON in Redis message: {e}")
            except Exception as e:
                logger.error(f"Error processing Redis message: {e}")

    except asyncio.CancelledError:
        logger.info("Redis pub/sub listener cancelled")
    except Exception as e:
        logger.error(f"Redis pub/sub listener error: {e}")
    finally:
        try:
            if pubsub is not None:
                await pubsub.unsubscribe(WEBSOCKET_CHANNEL)
            if redis_client is not None:
                await redis_client.close()
        except Exception as e:
            logger.debug(f"Redis listener cleanup failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the realtime relay on startup and stop it on shutdown."""
    global _redis_listener_task, _shutdown_event

    logger.info(f"Starting Spraxe API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    _shutdown_event = asyncio.Event()
    _redis_listener_task = asyncio.create_task(redis_pubsub_listener())

    yield

    logger.info("Shutting down Spraxe API")

    if _shutdown_event:
        _shutdown_event.set()
    if _redis_listener_task:
        _redis_listener_task.cancel()
        try:
            await _redis_listener_task
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title="Spraxe Commerce API",
    description="""
## Spraxe storefront, seller and admin API

Backend for a Bangladesh-focused marketplace on Supabase (Postgres, Auth,
Storage). Customers browse and order, sellers manage their listings, and
admins run inventory, homepage media, orders, reports and the support inbox.

### Authentication

Send the Supabase access token as `Authorization: Bearer <token>`. Roles
(customer, seller, admin) come from `profiles.role`.

### Realtime

Connect to `/api/v1/ws/{topic}?token=...` for change notifications on
`support-tickets`, `inventory`, `featured` or `ticket:<id>`.
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "Current user and role"},
        {"name": "Catalog", "description": "Homepage, search and product lists"},
        {"name": "Wishlist", "description": "Customer wishlist"},
        {"name": "Orders", "description": "Checkout, tracking and invoices"},
        {"name": "Account", "description": "Profile, address and seller application"},
        {"name": "Support", "description": "Customer support tickets"},
        {"name": "Seller", "description": "Seller dashboard and products"},
        {"name": "Admin", "description": "Dashboard, inventory, media, orders and support inbox"},
        {"name": "Reports", "description": "Sales reports and monthly snapshots"},
        {"name": "Notifications", "description": "Transactional email"},
        {"name": "Tasks", "description": "Background task status"},
        {"name": "WebSocket", "description": "Realtime change notifications"},
        {"name": "Health", "description": "API health and readiness checks"},
    ],
)


# =============================================================================
# Middleware
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(SpraxeException)
async def handle_spraxe_exception(request: Request, exc: SpraxeException):
    return await spraxe_exception_handler(request, exc)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    return await validation_exception_handler(request, exc)


@app.exception_handler(SupabaseClientError)
async def handle_supabase_error(request: Request, exc: SupabaseClientError):
    """Backend failures that escaped a service wrapper."""
    logger.error(f"Supabase error on {request.url.path}: {exc}")
    content = {"detail": exc.message, "code": exc.code}
    if exc.suggestion:
        content["suggestion"] = exc.suggestion
    return JSONResponse(status_code=503, content=content)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

app.include_router(auth_routes.router, prefix=f"{API_PREFIX}/auth", tags=["Auth"])
app.include_router(health.router, prefix=API_PREFIX, tags=["Health"])

# Storefront
app.include_router(catalog.router, prefix=f"{API_PREFIX}/catalog", tags=["Catalog"])
app.include_router(wishlist.router, prefix=f"{API_PREFIX}/wishlist", tags=["Wishlist"])
app.include_router(orders.router, prefix=f"{API_PREFIX}/orders", tags=["Orders"])
app.include_router(account.router, prefix=f"{API_PREFIX}/account", tags=["Account"])
app.include_router(support.router, prefix=f"{API_PREFIX}/support", tags=["Support"])

# Seller portal
app.include_router(seller.router, prefix=f"{API_PREFIX}/seller", tags=["Seller"])

# Admin portal
app.include_router(admin_dashboard.router, prefix=f"{API_PREFIX}/admin", tags=["Admin"])
app.include_router(admin_inventory.router, prefix=f"{API_PREFIX}/admin/inventory", tags=["Admin"])
app.include_router(admin_featured.router, prefix=f"{API_PREFIX}/admin/featured", tags=["Admin"])
app.include_router(admin_support.router, prefix=f"{API_PREFIX}/admin/support", tags=["Admin"])
app.include_router(admin_orders.router, prefix=f"{API_PREFIX}/admin/orders", tags=["Admin"])
app.include_router(reports.router, prefix=f"{API_PREFIX}/admin/reports", tags=["Reports"])

# Email and background tasks
app.include_router(notifications.router, prefix=f"{API_PREFIX}/notifications", tags=["Notifications"])
app.include_router(tasks.router, prefix=f"{API_PREFIX}/tasks", tags=["Tasks"])

app.include_router(websocket_routes.router, prefix=API_PREFIX, tags=["WebSocket"])


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    return {
        "name": "Spraxe Commerce API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": f"{API_PREFIX}/health",
    }
