"""
Career Compass - FastAPI Application
Authentication and role-based dashboards backed by Supabase
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from career_compass.config import settings
from career_compass.routes import admin, auth, career, health, pages
from career_compass.routes.auth import OAuthCallbackError
from career_compass.services.session_store import LANDING_PAGE
from career_compass.utils.guards import RedirectRequired
from career_compass.utils.logger import setup_logging
from career_compass.utils.redis_session import (
    RedisSessionManager, close_redis_client, init_redis_client
)
from career_compass.utils.validators import FormValidationError

setup_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events"""
    logger.info("Career Compass starting up")
    settings.log_config()

    # Sessions degrade to anonymous if Redis is down; startup continues
    try:
        redis_client = await init_redis_client()
        await redis_client.ping()
        logger.info("Redis session storage connected")
    except Exception as e:
        logger.error("Redis session storage unavailable", error=str(e))

    yield

    await close_redis_client()
    logger.info("Career Compass shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Career Compass",
    description="Career guidance platform: authentication and role-based dashboards",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def session_cookie(request: Request, call_next):
    """Assign every browser a session id cookie"""
    session_id = request.cookies.get(settings.session_cookie_name)
    is_new = not session_id
    if is_new:
        session_id = RedisSessionManager.new_session_id()
    request.state.session_id = session_id

    response = await call_next(request)

    if is_new:
        response.set_cookie(
            settings.session_cookie_name,
            session_id,
            max_age=settings.session_ttl_seconds,
            httponly=True,
            samesite="lax",
            secure=settings.session_cookie_secure
        )
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests"""
    response = await call_next(request)
    logger.info(
        "Request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code
    )
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Custom HTTP exception handler"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "message": exc.detail,
            "status_code": exc.status_code
        },
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(FormValidationError)
async def form_validation_handler(request: Request, exc: FormValidationError):
    """Client-side form checks failed; nothing was sent to the backend"""
    return JSONResponse(
        status_code=422,
        content={
            "error": True,
            "message": "Validation failed",
            "errors": exc.errors,
            "status_code": 422
        }
    )


@app.exception_handler(RedirectRequired)
async def guard_redirect_handler(request: Request, exc: RedirectRequired):
    """Route guard refused the view"""
    logger.info("Guard redirect", path=request.url.path, location=exc.location)
    return RedirectResponse(url=exc.location, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@app.exception_handler(OAuthCallbackError)
async def oauth_callback_handler(request: Request, exc: OAuthCallbackError):
    """OAuth completion failed; the browser returns to the landing page after 3 seconds"""
    logger.error("OAuth callback failed", error=exc.message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": True,
            "message": "Authentication Error",
            "detail": exc.message,
            "redirect_to": LANDING_PAGE
        },
        headers={"Refresh": f"3; url={LANDING_PAGE}"}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        method=request.method,
        path=request.url.path,
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": True,
            "message": "An unexpected error occurred",
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR
        }
    )


# Include routers; the pages router holds the catch-all and goes last
app.include_router(health.router, tags=["Health"])
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])
app.include_router(career.router, prefix="/career", tags=["Career"])
app.include_router(pages.router, tags=["Pages"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "career_compass.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
