"""
Flow Puzzle - FastAPI Application

Backend entry point.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from .config import settings
from .database import init_db, close_redis
from .api import daily, levels, players
from .middleware.security import limiter, add_security_headers
from .services.errors import ParameterError


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


# ============================================
# LIFESPAN
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events."""
    logger.info("Starting %s (%s, debug=%s)", settings.APP_NAME, settings.ENVIRONMENT, settings.DEBUG)

    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down...")
    await close_redis()
    logger.info("Redis closed")


# ============================================
# APP
# ============================================

app = FastAPI(
    title=settings.APP_NAME,
    description="Flow Puzzle API - level generation, validation and uniqueness tracking",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

# Rate limiter state
app.state.limiter = limiter


# ============================================
# MIDDLEWARE
# ============================================

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Security headers
app.middleware("http")(add_security_headers)


# ============================================
# ERROR HANDLERS
# ============================================

@app.exception_handler(ParameterError)
async def parameter_error_handler(request: Request, exc: ParameterError):
    """Generation parameters no level can satisfy."""
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc)}
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests. Please try again later."}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all. Details only in debug mode."""
    logger.exception("[Error] %s %s", request.method, request.url.path)
    detail = str(exc) if settings.DEBUG else "Internal server error"

    return JSONResponse(
        status_code=500,
        content={"detail": detail}
    )


# ============================================
# ROUTES
# ============================================

api_prefix = settings.API_PREFIX

app.include_router(levels.router, prefix=api_prefix)
app.include_router(daily.router, prefix=api_prefix)
app.include_router(players.router, prefix=api_prefix)


# ============================================
# HEALTH CHECK
# ============================================

@app.get("/health")
async def health_check():
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "version": "1.0.0"
    }


@app.get(f"{api_prefix}/health")
async def api_health_check():
    return {
        "status": "ok",
        "version": "1.0.0",
        "debug": settings.DEBUG,
        "attempt_budget": settings.GENERATION_ATTEMPT_BUDGET,
        "unique_attempts": settings.UNIQUE_ATTEMPTS_INTERACTIVE,
    }


# ============================================
# ROOT
# ============================================

@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/health",
    }


# ============================================
# RUN
# ============================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "flow_puzzle.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
