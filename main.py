import logging

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from tracker_app.config import settings
from tracker_app.database.connection import engine, Base
from tracker_app.logging_config import setup_logging
from tracker_app.middleware import TrackingSnippetMiddleware
from tracker_app.api import admin
from tracker_app.api.v1 import settings as settings_api
from tracker_app.store.strategies import SettingsStoreError

# Import models to ensure they're registered with Base
from tracker_app.models import Option

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Injects the Umami analytics tracker into pages served to anonymous visitors",
    debug=settings.debug
)

app.add_middleware(TrackingSnippetMiddleware)


@app.exception_handler(SettingsStoreError)
async def settings_store_error_handler(request: Request, exc: SettingsStoreError):
    """Store outages surface as 503 on admin pages and the settings API"""
    logger.error("Settings store unavailable on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Settings store unavailable"},
    )


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "admin": "/admin/settings"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers
app.include_router(settings_api.router, prefix="/api/v1")
app.include_router(admin.router)


if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
