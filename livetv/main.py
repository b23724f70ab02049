"""
LiveTV Player - FastAPI remote control

Runs the player core (playlist catalog, logo fetcher, playback session)
and exposes it over HTTP for any front end.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from livetv.config import get_settings
from livetv.routers import channels, events, player
from livetv.services.controller import get_controller

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

settings = get_settings()

# Rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("Starting LiveTV player...")
    
    controller = get_controller()
    await controller.start()
    logger.info(f"Player core started (engine: {controller.engine.name})")
    
    yield
    
    logger.info("Shutting down LiveTV player...")
    await controller.stop()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="IPTV playlist player with an HTTP remote",
    lifespan=lifespan
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(channels.router)
app.include_router(player.router)
app.include_router(events.router)


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    controller = get_controller()
    return {
        "status": "healthy",
        "version": settings.app_version,
        "channels": len(controller.catalog),
        "online": controller.monitor.online,
    }


# Error handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


def run():
    """Console entry point."""
    import uvicorn
    uvicorn.run(
        "livetv.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )


if __name__ == "__main__":
    run()
