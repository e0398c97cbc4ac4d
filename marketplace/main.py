"""
Marketplace API application entry point.
"""
import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_database_manager, get_settings, lifespan
from .routers import (
    addresses_router,
    bids_router,
    cart_router,
    categories_router,
    coupons_router,
    feedback_router,
    messages_router,
    orders_router,
    payments_router,
    products_router,
    returns_router,
    reviews_router,
    shipping_router,
    stores_router,
)
from .schemas import ErrorResponse, HealthCheckResponse, RootResponse

settings = get_settings()

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description=settings.app_description,
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (
    categories_router,
    products_router,
    stores_router,
    addresses_router,
    cart_router,
    coupons_router,
    orders_router,
    bids_router,
    messages_router,
    payments_router,
    shipping_router,
    reviews_router,
    returns_router,
    feedback_router,
):
    app.include_router(router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    body = ErrorResponse(
        error="internal_server_error",
        message="An unexpected error occurred",
        detail=str(exc),
        timestamp=datetime.utcnow(),
    )
    return JSONResponse(status_code=500, content=body.model_dump(mode="json"))


@app.get("/", response_model=RootResponse, tags=["Root"])
async def root():
    """Root endpoint - Always accessible"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
        "status": "running",
        "timestamp": datetime.utcnow().isoformat(),
    }


@app.get("/health", response_model=HealthCheckResponse, tags=["Health"])
async def health_check():
    """Health check endpoint - Always accessible"""
    manager = get_database_manager()
    try:
        if manager.is_connected():
            await manager.get_database().command("ping")
            db_status = "connected"
        else:
            db_status = "disconnected"
    except Exception as e:
        db_status = f"error: {str(e)}"

    return {
        "status": "healthy",
        "database": db_status,
        "timestamp": datetime.utcnow().isoformat(),
        "version": settings.app_version,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("marketplace.main:app", host=settings.host, port=settings.port, reload=settings.reload)
