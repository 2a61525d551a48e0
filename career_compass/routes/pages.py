"""
Page routes
Landing page, user dashboard and the catch-all not-found page
"""

import structlog
from fastapi import APIRouter, HTTPException, status

from career_compass.services.auth_service import OAUTH_PROVIDERS
from career_compass.utils.dependencies import AnonymousSession, AuthenticatedSession

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/")
async def landing(ctx: AnonymousSession):
    """Sign-in / sign-up page; signed-in users are sent to their dashboard"""
    return {
        "page": "landing",
        "title": "Career Compass",
        "forms": ["signin", "signup", "forgot-password"],
        "oauth_providers": sorted(OAUTH_PROVIDERS)
    }


@router.get("/dashboard")
async def dashboard(ctx: AuthenticatedSession):
    """User dashboard with profile and career assessments"""
    state = ctx.store.state
    assessments = []
    assessments_error = None

    result = await ctx.careers.get_user_assessments(state.user.id)
    if result.ok:
        assessments = [item.model_dump(mode="json") for item in result.data]
    else:
        assessments_error = result.error.message

    return {
        "page": "dashboard",
        "session": state.summary(),
        "assessments": assessments,
        "assessments_error": assessments_error
    }


@router.get("/{path:path}", include_in_schema=False)
async def not_found(path: str):
    """Catch-all for unmatched routes"""
    logger.info("Unmatched route", path=f"/{path}")
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")
