"""
Career Routes
Career assessments of the signed-in user
"""

import structlog
from fastapi import APIRouter, HTTPException, status

from career_compass.schemas.career import CareerAssessmentCreate
from career_compass.utils.dependencies import AuthenticatedSession

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/assessments")
async def list_assessments(ctx: AuthenticatedSession):
    """Assessments of the current user, newest first"""
    result = await ctx.careers.get_user_assessments(ctx.store.state.user.id)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error.message)
    return {"assessments": [item.model_dump(mode="json") for item in result.data]}


@router.post("/assessments", status_code=status.HTTP_201_CREATED)
async def create_assessment(assessment: CareerAssessmentCreate, ctx: AuthenticatedSession):
    """Save an assessment for the current user"""
    assessment.user_id = ctx.store.state.user.id
    result = await ctx.careers.save_assessment(assessment)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error.message)
    return {"success": True, "assessment": result.data.model_dump(mode="json")}


@router.get("/assessments/{assessment_id}")
async def get_assessment(assessment_id: str, ctx: AuthenticatedSession):
    """One assessment of the current user"""
    result = await ctx.careers.get_assessment_by_id(assessment_id)
    if not result.ok:
        if result.error.code == "not_found":
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assessment not found")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error.message)

    if result.data.user_id != ctx.store.state.user.id and not ctx.store.state.is_admin:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assessment not found")

    return {"assessment": result.data.model_dump(mode="json")}
