import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api.dependencies import get_backend_client, get_omdb_client
from app.api.routes_api import router as api_router
from app.api.routes_ui import render_page, router as ui_router
from app.core.auth import SessionRefreshMiddleware
from app.core.config import get_settings
from app.services.notifications import Notifier

load_dotenv()

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Paths
BASE_DIR = Path(__file__).resolve().parent
STATIC_DIR = BASE_DIR / "static"


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    """Application lifespan context manager."""
    try:
        yield
    finally:
        # Teardown remote clients
        for client in (get_omdb_client(), get_backend_client()):
            try:
                await client.aclose()
            except Exception as e:
                logger.error(f"Error closing {type(client).__name__}: {e}")


app = FastAPI(
    title="Reelshelf",
    description="Search movies and curate public or private watchlists",
    version="0.1.0",
    lifespan=app_lifespan,
)

# Mount static files
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

app.add_middleware(SessionRefreshMiddleware)


@app.exception_handler(404)
async def not_found(request: Request, exc: HTTPException):
    """JSON 404s under /api, the not-found page everywhere else."""
    if request.url.path.startswith("/api"):
        return JSONResponse({"detail": exc.detail}, status_code=404)
    logger.info("404 for %s", request.url.path)
    return render_page(
        request, "not_found.html", Notifier(), status_code=404, page_title="Not Found"
    )


# Include routers
app.include_router(ui_router)
app.include_router(api_router, prefix="/api")
