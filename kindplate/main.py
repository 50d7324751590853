from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse
from sqlalchemy import text

from kindplate.core.config import settings
from kindplate.core.exceptions import KindPlateError
from kindplate.core.redis import async_redis
from kindplate.db import engine, init_db
from kindplate.routers import cart_router, offer_router, order_router, payment_router

import uvicorn

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# status codes of plain HTTPExceptions (routing, identity headers)
HTTP_ERROR_CODES = {
    400: "INVALID_REQUEST",
    401: "UNAUTHORIZED",
    403: "NO_AUTHORITY",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "TOO_MANY_REQUESTS",
}


def error_response(status_code: int, error: str, message, details=None) -> JSONResponse:
    """The {success: false, error, message[, details]} envelope every failure uses"""
    content = {"success": False, "error": error, "message": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def check_database():
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))


async def check_redis() -> bool:
    try:
        await async_redis.ping()
        return True
    except Exception as e:
        logger.warning(f"Redis unavailable: {e}")
        return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting KindPlate API...")

    try:
        check_database()
        logger.info("Database connection successful")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise

    if settings.AUTO_CREATE_TABLES:
        init_db()
        logger.info("Database tables created")

    if await check_redis():
        logger.info(f"Redis connected, carts stored in {settings.CART_BACKEND}")
    else:
        logger.warning("Running without cache and locks, carts stored in the database")

    yield

    logger.info("Shutting down KindPlate API...")

app = FastAPI(
    title="KindPlate API",
    description="Surplus food marketplace: carts, orders, payments and pickup",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for api_router in (
    cart_router.router,
    offer_router.customer_router,
    offer_router.business_router,
    order_router.router,
    order_router.business_router,
    payment_router.router,
):
    app.include_router(api_router, prefix=API_PREFIX)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Validation error on {request.url.path}: {exc.errors()}")
    return error_response(
        422, "VALIDATION_ERROR", "Request validation failed", jsonable_encoder(exc.errors())
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc, KindPlateError):
        logger.warning(f"{request.url.path} rejected: {exc.error_code} - {exc.detail}")
        return error_response(exc.status_code, exc.error_code, exc.detail, exc.details)

    if exc.status_code >= 500:
        logger.error(f"HTTP error on {request.url.path}: {exc.status_code} - {exc.detail}")
    return error_response(
        exc.status_code, HTTP_ERROR_CODES.get(exc.status_code, "INTERNAL_ERROR"), exc.detail
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error on {request.url.path}: {exc}", exc_info=True)
    return error_response(500, "INTERNAL_ERROR", "Internal server error")


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "kindplate",
        "version": app.version,
    }


@app.get("/")
async def read_root():
    return {
        "message": "KindPlate API",
        "api": API_PREFIX,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    uvicorn.run(
        "kindplate.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
