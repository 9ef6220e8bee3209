"""
Stock Vision - Main FastAPI Application

Dashboard and JSON API over the batch analysis results.

Run with:
    uvicorn stock_vision.main:app
"""

from fastapi import Depends, FastAPI, Request, HTTPException
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from . import __version__
from .config import PROJECT_ROOT, AppConfig, get_config, load_config
from .formatting import format_value
from .storage.store import ResultsStore
from .api import results, stocks, settings, tasks

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Stock Vision...")
    config = load_config()
    config.data_dir.mkdir(parents=True, exist_ok=True)
    config.screenshots_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Data directory: {config.data_dir}")

    yield

    logger.info("Shutting down Stock Vision...")


# Create FastAPI application
app = FastAPI(
    title="Stock Vision",
    description="Screenshot-based stock analysis with multi-provider LLM fallback",
    version=__version__,
    lifespan=lifespan
)

# Add CORS middleware for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:8000", "http://127.0.0.1:8000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Screenshots are served so the detail page can show the source image
screenshots_path = PROJECT_ROOT / "public" / "screenshots"
if screenshots_path.exists():
    app.mount("/screenshots", StaticFiles(directory=str(screenshots_path)), name="screenshots")

# Set up templates
templates_path = PROJECT_ROOT / "templates"
templates = Jinja2Templates(directory=str(templates_path))
templates.env.filters["format_value"] = format_value


# ===========================================
# Include API Routers
# ===========================================

app.include_router(results.router, prefix="/api/results", tags=["Results"])
app.include_router(stocks.router, prefix="/api/stocks", tags=["Stocks"])
app.include_router(settings.router, prefix="/api/settings", tags=["Settings"])
app.include_router(tasks.router, prefix="/api/tasks", tags=["Background Tasks"])


# ===========================================
# HTML Page Routes
# ===========================================

def _load_results(config: AppConfig):
    return ResultsStore(config.results_path).load()


@app.get("/", response_class=HTMLResponse)
async def dashboard(request: Request, config: AppConfig = Depends(get_config)):
    """Dashboard page - latest analysis of every stock."""
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"page": "dashboard", "results": _load_results(config)}
    )


@app.get("/stock/{code}", response_class=HTMLResponse)
async def stock_detail_page(request: Request, code: str, config: AppConfig = Depends(get_config)):
    """Detail page for a single stock."""
    results_doc = _load_results(config)
    record = results_doc.get_stock(code) if results_doc else None
    if record is None:
        raise HTTPException(status_code=404, detail=f"No analysis found for {code.upper()}")
    return templates.TemplateResponse(
        request,
        "stock_detail.html",
        {"page": "stock", "stock": record, "last_updated": results_doc.last_updated}
    )


# ===========================================
# Error Handlers
# ===========================================

@app.exception_handler(404)
async def not_found_handler(request: Request, exc: HTTPException):
    """Handle 404 errors."""
    if request.url.path.startswith("/api/"):
        return JSONResponse(
            status_code=404,
            content={"success": False, "message": getattr(exc, "detail", None) or "Resource not found"}
        )
    return templates.TemplateResponse(
        request,
        "404.html",
        {"page": "error"},
        status_code=404
    )


@app.exception_handler(500)
async def server_error_handler(request: Request, exc: Exception):
    """Handle 500 errors."""
    logger.error(f"Server error: {exc}")
    if request.url.path.startswith("/api/"):
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal server error"}
        )
    return templates.TemplateResponse(
        request,
        "500.html",
        {"page": "error"},
        status_code=500
    )


# ===========================================
# Health Check
# ===========================================

@app.get("/health")
async def health_check(config: AppConfig = Depends(get_config)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "results": "available" if config.results_path.exists() else "not generated"
    }
