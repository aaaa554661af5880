# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi import FastAPI, Request
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import get_settings
from app.core.errors import ShopError, ValidationError
from app.database import create_db_and_tables, translate_storage_error

# Import models so SQLModel metadata is populated before create_all()
from app.models import user as _user_models  # noqa: F401
from app.models import product as _product_models  # noqa: F401
from app.models import address as _address_models  # noqa: F401
from app.models import cart as _cart_models  # noqa: F401
from app.models import order as _order_models  # noqa: F401


# Routers
from app.routers.cart import router as cart_router
from app.routers.orders import router as orders_router
from app.routers.order_items import router as order_items_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    logger.info("Startup: connecting to database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except SQLAlchemyError:
        logger.exception("Startup: DB connection FAILED")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error rendering ---


def _error_response(err: ShopError) -> JSONResponse:
    return JSONResponse(status_code=err.status_code, content={"error": err.to_dict()})


@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, err: ShopError):
    log = logger.error if err.status_code >= 500 else logger.warning
    log(
        "%s %s -> %s: %s",
        request.method,
        request.url.path,
        err.code,
        err.message,
    )
    return _error_response(err)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, err: RequestValidationError):
    errors = err.errors()
    first = errors[0] if errors else {}
    field = ".".join(
        str(part)
        for part in first.get("loc", ())
        if part not in ("body", "query", "path")
    )
    message = first.get("msg", "malformed input")
    return _error_response(
        ValidationError(f"Invalid {field or 'request'}: {message}", field=field)
    )


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, err: SQLAlchemyError):
    # Reads outside an explicit transaction land here
    return _error_response(translate_storage_error(err))


# Versioned API prefix, e.g. /api/v1
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(orders_router, prefix=settings.API_V1_STR)
app.include_router(order_items_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "shop-orders"}
