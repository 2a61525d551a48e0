"""
Career Service
Career assessment storage
"""

import structlog
from supabase import AsyncClient

from career_compass.models.result import AuthResult, ServiceError, parse_row, parse_rows
from career_compass.schemas.career import CareerAssessment, CareerAssessmentCreate

logger = structlog.get_logger(__name__)

ASSESSMENTS_TABLE = "career_assessments"


class CareerService:
    """Reads and appends rows of ``career_assessments``"""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def save_assessment(self, assessment: CareerAssessmentCreate) -> AuthResult:
        """Save a new career assessment for a user"""
        if not assessment.user_id:
            return AuthResult.failure(ServiceError("Assessment has no user", code="missing_user"))

        try:
            response = await (
                self.client.table(ASSESSMENTS_TABLE)
                .insert(assessment.model_dump(mode="json"))
                .execute()
            )
        except Exception as e:
            logger.error("Error saving assessment", user_id=assessment.user_id, error=str(e))
            return AuthResult.failure(e)

        rows = response.data or []
        if not rows:
            return AuthResult.failure(ServiceError("Assessment was not saved", code="insert_failed"))

        logger.info("Assessment saved", user_id=assessment.user_id)
        return parse_row(CareerAssessment, rows[0])

    async def get_user_assessments(self, user_id: str) -> AuthResult:
        """All assessments of a user, newest first"""
        try:
            response = await (
                self.client.table(ASSESSMENTS_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .order("assessment_date", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error("Error getting user assessments", user_id=user_id, error=str(e))
            return AuthResult.failure(e)

        return parse_rows(CareerAssessment, response.data or [])

    async def get_assessment_by_id(self, assessment_id: str) -> AuthResult:
        """A specific assessment"""
        try:
            response = await (
                self.client.table(ASSESSMENTS_TABLE)
                .select("*")
                .eq("id", assessment_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("Error getting assessment", assessment_id=assessment_id, error=str(e))
            return AuthResult.failure(e)

        if not response.data:
            return AuthResult.failure(ServiceError("Assessment not found", code="not_found"))

        return parse_row(CareerAssessment, response.data[0])
