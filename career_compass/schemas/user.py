"""
User data schemas for Career Compass

Pydantic models for identities, profiles, login activity and auth forms.
"""

from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserRole(str, Enum):
    """User role enumeration"""
    USER = "user"
    ADMIN = "admin"


class Identity(BaseModel):
    """Backend auth user, independent of the profile row"""
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_user(cls, user: Any) -> "Identity":
        """Build from a Supabase ``User`` object or a plain dict"""
        if isinstance(user, dict):
            return cls.model_validate(user)
        return cls(
            id=str(user.id),
            email=getattr(user, "email", None),
            user_metadata=getattr(user, "user_metadata", None) or {}
        )

    def display_name(self) -> str:
        """Best name available from OAuth/sign-up metadata"""
        for key in ("name", "full_name", "user_name"):
            value = self.user_metadata.get(key)
            if value:
                return str(value)
        if self.email:
            return self.email.split("@")[0]
        return "User"

    def avatar_url(self) -> Optional[str]:
        return self.user_metadata.get("avatar_url") or self.user_metadata.get("picture")


class UserProfile(BaseModel):
    """Row of the ``profiles`` table"""
    id: str
    name: str
    email: str
    avatar_url: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None
    role: UserRole = UserRole.USER

    model_config = ConfigDict(from_attributes=True)

    @field_validator('role', mode='before')
    @classmethod
    def validate_role(cls, v):
        """Anything other than an exact admin role is a regular user"""
        if v == UserRole.ADMIN or v == UserRole.ADMIN.value:
            return UserRole.ADMIN
        return UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class ProfileSummary(BaseModel):
    """Joined ``profiles(name, email)`` columns"""
    name: Optional[str] = None
    email: Optional[str] = None


class LoginActivity(BaseModel):
    """Row of the append-only ``login_activity`` table"""
    id: str
    user_id: str
    login_time: datetime
    ip_address: Optional[str] = None
    profiles: Optional[ProfileSummary] = None

    @field_validator('id', 'user_id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return str(v) if v is not None else v


class SignUpForm(BaseModel):
    """Sign-up form body"""
    email: str = ""
    password: str = ""
    name: str = ""


class SignInForm(BaseModel):
    """Sign-in form body"""
    email: str = ""
    password: str = ""


class ForgotPasswordForm(BaseModel):
    """Password reset request body"""
    email: str = ""


class ResetPasswordForm(BaseModel):
    """OTP verification and new password body"""
    email: str = ""
    otp: str = ""
    password: str = ""
    confirm_password: str = ""
