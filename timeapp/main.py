"""
TIME App – Backend API
Start with: uvicorn timeapp.main:app --reload
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from timeapp import __version__
from timeapp.config import settings
from timeapp.db import init_db
from timeapp.logging_config import setup_logging
from timeapp.routers import analytics, exports, sessions, timer, view_state
from timeapp.routers import settings as settings_router

setup_logging(settings.log_level, settings.log_file)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("TIME App API started (env=%s, tz=%s)", settings.app_env, settings.timezone)
    yield


app = FastAPI(
    title="TIME App API",
    description="Personal time tracking: session timer, history, analytics and exports",
    version=__version__,
    lifespan=lifespan,
)

# Allow the web frontend to call this API
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions.router)
app.include_router(timer.router)
app.include_router(analytics.router)
app.include_router(exports.router)
app.include_router(settings_router.router)
app.include_router(view_state.router)


@app.get("/health")
def health():
    """Check that the API is running. Frontend can call this first."""
    return {"status": "ok", "message": "TIME App API is running"}


@app.get("/")
def root():
    """Root welcome."""
    return {"app": "TIME App", "docs": "/docs"}
