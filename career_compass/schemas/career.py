"""
Career assessment schemas
"""

from typing import Dict, List, Optional
from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator


class CareerAssessmentCreate(BaseModel):
    """Schema for saving a new career assessment"""
    user_id: Optional[str] = None
    assessment_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    skills_assessment: Dict[str, float] = Field(default_factory=dict)
    recommended_paths: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    areas_to_improve: List[str] = Field(default_factory=list)

    @field_validator('skills_assessment')
    @classmethod
    def validate_scores(cls, v):
        """Skill scores must be non-negative"""
        for skill, score in v.items():
            if score < 0:
                raise ValueError(f'Score for {skill} must be non-negative')
        return v


class CareerAssessment(CareerAssessmentCreate):
    """Row of the ``career_assessments`` table"""
    id: str
    user_id: str

    @field_validator('id', 'user_id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return str(v) if v is not None else v
