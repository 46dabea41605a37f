"""FastAPI backend for pose extraction and pose image generation tasks."""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from posegen.config import get_settings
from posegen.service import shutdown_pose_service

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # In-flight background work is abandoned on shutdown; tasks are best-effort
    shutdown_pose_service(wait=False)


app = FastAPI(
    title="posegen API",
    description="Pose extraction from episode scripts and pose reference image generation.",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------
cors_origins = settings.cors_origin_list
cors_origin_regex = settings.cors_origin_regex
logger.info("CORS configured for origins: %s", cors_origins)
if cors_origin_regex:
    logger.info("CORS origin regex: %s", cors_origin_regex)

logger.info(
    "Storage: %s",
    "Postgres" if settings.posegen_database_url else f"file-based ({settings.data_dir})",
)
cors_kw: dict = {
    "allow_origins": cors_origins,
    "allow_credentials": True,
    "allow_methods": ["*"],
    "allow_headers": ["*"],
}
if cors_origin_regex:
    cors_kw["allow_origin_regex"] = cors_origin_regex
app.add_middleware(CORSMiddleware, **cors_kw)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
class HealthResponse(BaseModel):
    status: str
    data_dir: str


@app.get("/health", response_model=HealthResponse)
@app.get("/api/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return HealthResponse(status="ok", data_dir=str(settings.data_dir))


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
from backend.routes import poses, styles, tasks  # noqa: E402

app.include_router(poses.router, prefix="/api", tags=["poses"])
app.include_router(tasks.router, prefix="/api", tags=["tasks"])
app.include_router(styles.router, prefix="/api", tags=["styles"])
