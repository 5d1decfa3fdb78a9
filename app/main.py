"""
FastAPI main application.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .ai_routes import router as ai_router
from .database import init_db
from .dependencies import get_config
from .message_routes import router as message_router
from .task_routes import router as task_router

# ============================================================================
# LOGGING CONFIGURATION
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger(__name__)


# ============================================================================
# APP SETUP
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database and upload directory on startup."""
    logger.info("🚀 Notes AI backend starting up...")
    logger.info("📊 Initializing database...")
    init_db()
    get_config().ensure_directories()
    logger.info("✅ Database initialized successfully")
    yield
    logger.info("👋 Notes AI backend shutting down...")


app = FastAPI(
    title="Notes AI",
    description="Notes backend with rich-text aware AI enhancement",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(ai_router)
app.include_router(message_router)
app.include_router(task_router)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error | {request.method} {request.url.path} | Error: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/api/health")
async def health():
    return {"status": "ok"}
