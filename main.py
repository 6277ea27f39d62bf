"""
GiftShop - Application Entry Point
====================================
FastAPI app initialization, middleware, exception handlers, and router registration.
"""

import logging
import time as _time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from config.database import Base, engine
from common.exceptions import GiftShopError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("giftshop")
request_logger = logging.getLogger("giftshop.request")


# ==========================================
# Import ALL models so Alembic/Base can see them
# ==========================================
from modules.order.models import Order  # noqa: F401
from modules.coupon.models import Coupon, CouponUsage  # noqa: F401

# ==========================================
# Import routers
# ==========================================
from modules.coupon.routes import router as coupon_router
from modules.coupon.admin_routes import router as coupon_admin_router
from modules.order.routes import router as order_router
from modules.order.admin_routes import router as order_admin_router
from modules.payment.routes import router as payment_router


@asynccontextmanager
async def lifespan(app):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=engine)
    logger.info(f"GiftShop API {settings.APP_VERSION} started")
    yield
    logger.info("GiftShop API stopped")


# ==========================================
# Create App
# ==========================================
app = FastAPI(
    title="GiftShop API",
    description="Gift shop storefront backend: coupons, orders, payments",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# ==========================================
# Exception handlers
# ==========================================

async def business_exception_handler(request: Request, exc: GiftShopError):
    """Render business errors as {"success": false, "error": message}."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse({"success": False, "error": exc.message}, status_code=exc.status_code)


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """Datastore failures surface as 500 with the driver message passed through."""
    logger.exception(f"Database error on {request.method} {request.url.path}")
    detail = str(getattr(exc, "orig", None) or exc)
    return JSONResponse({"success": False, "error": detail}, status_code=500)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies answer 400 in the same shape as business errors."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"Invalid {field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"

    if request.url.path == "/api/coupons/validate":
        return JSONResponse({"valid": False, "message": message}, status_code=400)
    return JSONResponse({"success": False, "error": message}, status_code=400)


app.add_exception_handler(GiftShopError, business_exception_handler)
app.add_exception_handler(SQLAlchemyError, database_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)


# ==========================================
# Middleware: Request Log
# ==========================================
_SKIP_PATHS = ("/health", "/favicon.ico")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and elapsed time of every request."""
    path = request.url.path
    if any(path.startswith(p) for p in _SKIP_PATHS):
        return await call_next(request)

    start = _time.time()
    response = await call_next(request)
    elapsed_ms = int((_time.time() - start) * 1000)
    request_logger.info(f"{request.method} {path} -> {response.status_code} ({elapsed_ms} ms)")
    return response


# ==========================================
# Register Routers
# ==========================================
app.include_router(coupon_router)
app.include_router(coupon_admin_router)
app.include_router(order_router)
app.include_router(order_admin_router)
app.include_router(payment_router)


# ==========================================
# Health check
# ==========================================
@app.get("/health")
async def health():
    return {"status": "ok", "version": settings.APP_VERSION}
