import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from linksnap_app.config import settings
from linksnap_app.logging_config import configure_logging
from linksnap_app.services.short_code import ShortCodeGenerationError
from linksnap_app.storage.exceptions import DuplicateCode, StorageError
from linksnap_app.storage.factory import StorageFactory
from linksnap_app.api.v1 import urls, redirect

logger = logging.getLogger("linksnap_app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create and initialize the storage backend once; release it on shutdown."""
    configure_logging()
    await StorageFactory.get_storage()
    yield
    await StorageFactory.reset()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="A URL shortener with pluggable JSON file / PostgreSQL storage",
    debug=settings.debug,
    lifespan=lifespan,
)


@app.exception_handler(DuplicateCode)
async def duplicate_code_handler(request: Request, exc: DuplicateCode):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"error": str(exc)})


@app.exception_handler(ShortCodeGenerationError)
async def code_exhausted_handler(request: Request, exc: ShortCodeGenerationError):
    logger.warning("Short code space exhausted on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"error": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": "Storage unavailable"},
    )


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    storage = await StorageFactory.get_storage()
    return {
        "status": "healthy",
        "environment": settings.environment,
        "storage": storage.name,
    }




######## Include routers
app.include_router(urls.router, prefix="/api/v1")
app.include_router(redirect.api_router, prefix="/api/v1")
app.include_router(redirect.router)
