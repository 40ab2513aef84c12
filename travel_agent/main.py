"""Main FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from travel_agent.config import settings
from travel_agent.core.session_manager import session_manager
from travel_agent.core.tools import build_registry
from travel_agent.middleware.session import SessionMiddleware
import logging

# Import routers individually to avoid circular imports
from travel_agent.api.chat import router as chat_router
from travel_agent.api.session import router as session_router

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manages application startup and shutdown events."""
    logger.info(
        f"Starting Travel Agent API (model {settings.gemini_model}, "
        f"platform {settings.client_platform})"
    )
    await session_manager.start()

    yield

    logger.info("Shutting down Travel Agent API")
    await session_manager.stop()


app = FastAPI(
    title="Travel Agent API",
    description="Conversational trip planning with itinerary, destination and map tools",
    version="1.0.0",
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(SessionMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Session-ID"],
)

app.include_router(chat_router)
app.include_router(session_router)


@app.get("/")
async def root():
    """Provides basic information about the running API and its features."""
    return {
        "message": "Travel Agent API",
        "status": "running",
        "model": settings.gemini_model,
        "platform": settings.client_platform,
        "tools": [tool.name for tool in build_registry(settings.client_platform)],
    }


@app.get("/health")
async def health_check():
    """Performs a health check of the API."""
    return {
        "status": "healthy",
        "active_sessions": session_manager.active_sessions,
    }


@app.get("/sessions")
async def get_sessions():
    """(Admin) Gets information about all active user sessions."""
    return session_manager.get_session_info()
