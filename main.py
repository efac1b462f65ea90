"""
EShop - Application Entry Point
================================
FastAPI app initialization, exception handlers, middleware, and router registration.
"""

import logging
import time
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from apscheduler.schedulers.background import BackgroundScheduler

from config import settings
from config.database import SessionLocal, Base, engine
from common.exceptions import EShopError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
scheduler_logger = logging.getLogger("eshop.scheduler")
error_logger = logging.getLogger("eshop.errors")
http_logger = logging.getLogger("eshop.http")


# ==========================================
# Import ALL models so Alembic/Base can see them
# ==========================================
from modules.user.models import User  # noqa: F401
from modules.address.models import UserAddress  # noqa: F401
from modules.wishlist.models import wishlist_items  # noqa: F401
from modules.catalog.models import Category, SubCategory, Brand, Product  # noqa: F401
from modules.review.models import Review  # noqa: F401
from modules.cart.models import Cart, CartItem  # noqa: F401
from modules.coupon.models import Coupon  # noqa: F401
from modules.order.models import Order, OrderItem  # noqa: F401

# ==========================================
# Import routers
# ==========================================
from modules.auth.routes import router as auth_router
from modules.user.routes import router as user_router
from modules.catalog.routes import router as catalog_router
from modules.review.routes import router as review_router
from modules.wishlist.routes import router as wishlist_router
from modules.address.routes import router as address_router
from modules.coupon.routes import router as coupon_router
from modules.cart.routes import router as cart_router
from modules.order.routes import router as order_router
from modules.payment.routes import router as payment_router


# ==========================================
# Background Scheduler: Expired Reset Codes
# ==========================================
def _cleanup_expired_reset_codes():
    """Background job: clear password-reset codes past their expiry."""
    db = SessionLocal()
    try:
        from modules.auth.service import auth_service
        count = auth_service.cleanup_expired_reset_codes(db)
        db.commit()
        if count:
            scheduler_logger.info(f"Cleared {count} expired password reset codes")
    except Exception as e:
        db.rollback()
        scheduler_logger.error(f"Reset code cleanup error: {e}")
    finally:
        db.close()


scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=engine)

    scheduler.add_job(_cleanup_expired_reset_codes, 'interval', minutes=30, id='reset_code_cleanup')
    scheduler.start()
    scheduler_logger.info("Background scheduler started (reset codes: 30m)")
    yield
    scheduler.shutdown()
    scheduler_logger.info("Background scheduler stopped")


# ==========================================
# Create App
# ==========================================
app = FastAPI(
    title="EShop",
    description="E-commerce REST API",
    version="1.0.0",
    docs_url="/docs" if settings.is_development() else None,
    redoc_url=None,
    lifespan=lifespan,
)


# ==========================================
# Exception handlers
# ==========================================

def _error_body(status_code: int, message: str) -> dict:
    return {"status": "fail" if 400 <= status_code < 500 else "error", "message": message}


@app.exception_handler(EShopError)
async def eshop_error_handler(request: Request, exc: EShopError):
    if exc.status_code >= 500:
        error_logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(_error_body(exc.status_code, exc.message), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    body = _error_body(400, errors[0]["message"] if errors else "Invalid input data.")
    body["errors"] = errors
    return JSONResponse(body, status_code=400)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and message == "Not Found":
        message = f"Can't find this route: {request.url.path}"
    return JSONResponse(_error_body(exc.status_code, message), status_code=exc.status_code)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    detail = str(exc.orig).lower()
    if "unique" in detail or "duplicate" in detail:
        message = "Duplicate field value: please use another value."
    else:
        message = "Operation conflicts with existing data."
    error_logger.warning(f"{request.method} {request.url.path}: integrity error: {exc.orig}")
    return JSONResponse(_error_body(400, message), status_code=400)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    error_logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    if settings.is_development():
        return JSONResponse({
            "status": "error",
            "message": str(exc),
            "error": exc.__class__.__name__,
            "stack": traceback.format_exception(type(exc), exc, exc.__traceback__),
        }, status_code=500)
    return JSONResponse(
        {"status": "error", "message": "Something went very wrong!"},
        status_code=500,
    )


# ==========================================
# Middleware
# ==========================================
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
app.add_middleware(GZipMiddleware, minimum_size=1000)

_SKIP_PATHS = ("/health",)


@app.middleware("http")
async def request_logger(request: Request, call_next):
    """Log method, path, status and elapsed time for every request."""
    path = request.url.path
    if path in _SKIP_PATHS:
        return await call_next(request)

    start = time.time()
    response = await call_next(request)
    elapsed_ms = int((time.time() - start) * 1000)
    http_logger.info(f"{request.method} {path} -> {response.status_code} ({elapsed_ms} ms)")
    return response


# ==========================================
# Register Routers
# ==========================================
for _router in (
    auth_router,
    user_router,
    catalog_router,
    review_router,
    wishlist_router,
    address_router,
    coupon_router,
    cart_router,
    order_router,
):
    app.include_router(_router, prefix=settings.API_PREFIX)

app.include_router(payment_router)


# ==========================================
# Root & health check
# ==========================================
@app.get("/")
async def root():
    return {"message": "Welcome to the E-shop API"}


@app.get("/health")
async def health():
    return {"status": "ok", "version": "1.0.0"}
