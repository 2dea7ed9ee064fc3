"""Main application entry point."""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from richmenu_manager import __version__
from richmenu_manager.api.rich_menus import router as rich_menu_router
from richmenu_manager.config import settings, setup_logging
from richmenu_manager.exceptions import RichMenuApiError
from richmenu_manager.services.rich_menu_client import reset_rich_menu_client

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="LINE Rich Menu Manager",
    description="REST API for creating, configuring and linking LINE rich menus",
    version=__version__,
    debug=settings.debug
)

app.include_router(rich_menu_router)


@app.exception_handler(RichMenuApiError)
async def rich_menu_error_handler(request: Request, error: RichMenuApiError) -> JSONResponse:
    """Return client errors with their status code and LINE's details."""
    logger.error(f"{request.method} {request.url.path} failed: {error.message} (HTTP {error.status_code})")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.on_event("startup")
async def startup_event():
    """Log the configuration state on startup."""
    if not settings.has_access_token:
        logger.warning("LINE_CHANNEL_ACCESS_TOKEN is not set; set it with POST /api/token")
    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    """Close the shared LINE client."""
    await reset_rich_menu_client()


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "LINE Rich Menu Manager"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug
    )
