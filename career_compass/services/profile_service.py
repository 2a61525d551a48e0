"""
Profile Service
Profile and login-activity access keyed by identity id
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from supabase import AsyncClient

from career_compass.models.result import AuthResult, ServiceError, parse_row, parse_rows
from career_compass.schemas.user import Identity, LoginActivity, UserProfile, UserRole

logger = structlog.get_logger(__name__)

PROFILES_TABLE = "profiles"
LOGIN_ACTIVITY_TABLE = "login_activity"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProfileService:
    """Reads and writes the ``profiles`` and ``login_activity`` tables"""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def get_current_user_profile(self) -> AuthResult:
        """
        Resolve the current session, then load its profile row

        Returns:
            AuthResult: ``UserProfile`` on success; error code ``no_session``
            when nobody is signed in, ``profile_not_found`` when the row is missing
        """
        try:
            session = await self.client.auth.get_session()
        except Exception as e:
            logger.error("Error getting session", error=str(e))
            return AuthResult.failure(e)

        if not session or not getattr(session, "user", None):
            return AuthResult.failure(ServiceError("No user logged in", code="no_session"))

        return await self.get_profile(str(session.user.id))

    async def get_profile(self, user_id: str) -> AuthResult:
        """Load exactly one profile row by id"""
        try:
            response = await (
                self.client.table(PROFILES_TABLE)
                .select("*")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("Error getting user profile", user_id=user_id, error=str(e))
            return AuthResult.failure(e)

        if not response.data:
            logger.warning("Profile row missing", user_id=user_id)
            return AuthResult.failure(ServiceError("Profile not found", code="profile_not_found"))

        return parse_row(UserProfile, response.data[0])

    async def create_profile(self, profile: UserProfile) -> AuthResult:
        """Insert a profile row"""
        try:
            response = await (
                self.client.table(PROFILES_TABLE)
                .insert(profile.model_dump(mode="json", exclude_none=True))
                .execute()
            )
        except Exception as e:
            logger.error("Error creating profile", user_id=profile.id, error=str(e))
            return AuthResult.failure(e)

        rows = response.data or []
        logger.info("Profile created", user_id=profile.id)
        return parse_row(UserProfile, rows[0]) if rows else AuthResult(data=profile)

    async def ensure_profile(self, identity: Identity) -> AuthResult:
        """
        Return the identity's profile, creating it from auth metadata if missing

        OAuth sign-ins never pass through sign-up, so their first landing on
        the callback route is where the profile row gets created.
        """
        existing = await self.get_profile(identity.id)
        if existing.ok or existing.error.code != "profile_not_found":
            return existing

        profile = UserProfile(
            id=identity.id,
            name=identity.display_name(),
            email=identity.email or "",
            avatar_url=identity.avatar_url(),
            created_at=utcnow(),
            role=UserRole.USER
        )
        return await self.create_profile(profile)

    async def update_last_login(self, user_id: str, login_time: Optional[datetime] = None) -> AuthResult:
        """Stamp the profile's ``last_login``"""
        login_time = login_time or utcnow()
        try:
            response = await (
                self.client.table(PROFILES_TABLE)
                .update({"last_login": login_time.isoformat()})
                .eq("id", user_id)
                .execute()
            )
        except Exception as e:
            logger.warning("Failed to update last login", user_id=user_id, error=str(e))
            return AuthResult.failure(e)

        return AuthResult(data=response.data)

    async def record_login_activity(
        self,
        user_id: str,
        login_time: Optional[datetime] = None,
        ip_address: Optional[str] = None
    ) -> AuthResult:
        """Append a login activity entry"""
        login_time = login_time or utcnow()
        try:
            response = await (
                self.client.table(LOGIN_ACTIVITY_TABLE)
                .insert({
                    "user_id": user_id,
                    "login_time": login_time.isoformat(),
                    "ip_address": ip_address
                })
                .execute()
            )
        except Exception as e:
            logger.warning("Failed to record login activity", user_id=user_id, error=str(e))
            return AuthResult.failure(e)

        return AuthResult(data=response.data)

    async def get_all_user_profiles(self) -> AuthResult:
        """
        All profiles, newest first.

        Unrestricted read: only the admin route guard (and the backend's
        row-level policies) stand in front of it.
        """
        try:
            response = await (
                self.client.table(PROFILES_TABLE)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error("Error getting all user profiles", error=str(e))
            return AuthResult.failure(e)

        return parse_rows(UserProfile, response.data or [])

    async def get_all_login_activity(self) -> AuthResult:
        """All login activity with the joined profile name/email, newest first"""
        try:
            response = await (
                self.client.table(LOGIN_ACTIVITY_TABLE)
                .select("*, profiles(name, email)")
                .order("login_time", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error("Error getting login activity", error=str(e))
            return AuthResult.failure(e)

        return parse_rows(LoginActivity, response.data or [])
