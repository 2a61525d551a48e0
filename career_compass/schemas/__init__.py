"""
Data schemas for Career Compass
"""

from .user import (
    UserRole, Identity, UserProfile, ProfileSummary, LoginActivity,
    SignUpForm, SignInForm, ForgotPasswordForm, ResetPasswordForm
)
from .career import CareerAssessment, CareerAssessmentCreate

__all__ = [
    "UserRole",
    "Identity",
    "UserProfile",
    "ProfileSummary",
    "LoginActivity",
    "SignUpForm",
    "SignInForm",
    "ForgotPasswordForm",
    "ResetPasswordForm",
    "CareerAssessment",
    "CareerAssessmentCreate",
]
