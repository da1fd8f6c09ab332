"""
FormEase - Backend Application

FastAPI application for voice-driven form filling.
Holds one dialogue per conversation session and exposes the language
understanding operations it is built on.

Features:
    - Multi-turn form-filling dialogue with edits, submit gating and go-back
    - Remote language understanding (OpenAI-compatible) with local fallback
    - One-way circuit breaker on remote quota exhaustion
    - Built-in passport, Aadhaar and voter ID forms
    - Optional ElevenLabs speech for assistant messages and recognizer plumbing

Run:
    python main.py
    # or
    uvicorn main:app --reload
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
import uvicorn

from config.settings import settings
from core.dependencies import get_service_health, get_session_manager, get_understanding_service
from core.schemas import HealthResponse
from services.ai.session_manager import SessionManager
from services.ai.understanding import UnderstandingService
from utils.circuit_breaker import ServiceHealth
from utils.logging import setup_logging, get_logger
from utils.exceptions import FormEaseError
from utils.rate_limit import limiter, rate_limit_exceeded_handler

# Import Routers
from routers import conversation, forms, nlp, speech

# Initialize logging
setup_logging()
logger = get_logger(__name__)


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events:
        - Startup: Create the service health record and understanding service
        - Shutdown: Drop expired sessions
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    get_service_health()
    understanding = get_understanding_service()
    logger.info(f"Remote understanding available: {understanding.remote_available}")

    yield

    # Shutdown
    logger.info("Shutting down application")
    await get_session_manager().cleanup_expired()


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title=settings.APP_NAME,
    description="Voice form-filling assistant API",
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Attach rate limiter to app state
app.state.limiter = limiter


# =============================================================================
# Middleware
# =============================================================================

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(FormEaseError)
async def formease_exception_handler(request: Request, exc: FormEaseError):
    """
    Handle custom FormEase exceptions.

    Returns standardized error response with appropriate status code.
    """
    logger.error(f"FormEaseError: {exc.message}", extra={"details": exc.details})
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


# Rate limit exceeded handler
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


# =============================================================================
# Routers
# =============================================================================

app.include_router(conversation.router)
app.include_router(nlp.router)
app.include_router(forms.router)
app.include_router(speech.router)


# =============================================================================
# Health Check Endpoints
# =============================================================================

@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic health check."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION
    }


@app.get("/health", tags=["Health"], response_model=HealthResponse)
async def health_check(
    health: ServiceHealth = Depends(get_service_health),
    understanding: UnderstandingService = Depends(get_understanding_service),
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Detailed health check endpoint.

    Reports whether remote understanding is usable (configured and not
    tripped) and how many conversations are live. A tripped breaker
    degrades the service but every operation still answers locally.
    """
    return HealthResponse(
        status="healthy" if health.remote_available else "degraded",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        remote_available=understanding.remote_available,
        active_sessions=manager.active_count,
        service_health=health.to_dict(),
    )


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
