"""Main FastAPI application."""
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portal.api import auth, developer, internal, projects
from portal.config import settings
from portal.storage.kv import KeyValueStore, close_kv_store, get_kv_store
from portal.utils.exceptions import AppException, UnavailableError, app_exception_handler
from portal.utils.logger import logger


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    if not settings.developer_password_list:
        logger.warning("No developer passwords configured, developer login is disabled")
    if settings.allow_passwordless_access:
        logger.warning("Projects without a password are accessible without one (ALLOW_PASSWORDLESS_ACCESS)")

    yield

    await close_kv_store()
    logger.info("Key-value store connection closed")


app = FastAPI(
    title="Webstability Project Portal API",
    description="Project lifecycle, client access and payment reconciliation",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppException, app_exception_handler)

# Include routers
app.include_router(auth.router)
app.include_router(projects.router)
app.include_router(internal.router)
app.include_router(developer.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Webstability Project Portal API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check(kv: KeyValueStore = Depends(get_kv_store)):
    """Health check endpoint, including the key-value store."""
    try:
        await kv.ping()
    except UnavailableError:
        return {"status": "degraded", "store": "unavailable"}
    return {"status": "healthy", "store": "ok"}
