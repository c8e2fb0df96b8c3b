"""
Markbin - Main FastAPI application.
"""
import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from fastapi.responses import HTMLResponse

from markbin.routes import health, pastes
from markbin.database import db  # Initialize database
from markbin.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent

# Create FastAPI app
app = FastAPI(
    title="Markbin",
    description="A paste host that renders pastes as markdown",
    version="1.0.0",
)

# Mount static files
app.mount("/static", StaticFiles(directory=str(PACKAGE_DIR / "static")), name="static")

# Include route modules
app.include_router(health.router)
app.include_router(pastes.router)


@app.on_event("startup")
async def startup_event():
    """Startup event handler."""
    logger.info("Markbin application starting...")

    # Log database status
    if db.using_fallback:
        logger.warning("DATABASE: Using IN-MEMORY storage (Redis not available)")
        logger.warning("   Data will NOT persist across server restarts!")
    else:
        logger.info("DATABASE: Connected to Redis")

    if settings.VIEW_PASSWORD:
        logger.info("View passwords are enforced")


@app.on_event("shutdown")
async def shutdown_event():
    """Shutdown event handler."""
    logger.info("Markbin application shutting down...")


@app.get("/", response_class=HTMLResponse)
async def homepage(request: Request):
    """Serve the homepage."""
    return pastes.templates.TemplateResponse(request, "homepage.html", {})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "markbin.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
