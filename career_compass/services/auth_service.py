"""
Authentication Service
Wraps Supabase auth calls into uniform data/error results
"""

from typing import Any, Dict, Optional

import structlog
from supabase import AsyncClient

from career_compass.config import settings
from career_compass.models.result import AuthResult, ServiceError
from career_compass.schemas.user import UserProfile, UserRole
from career_compass.services.profile_service import ProfileService, utcnow

logger = structlog.get_logger(__name__)

OAUTH_PROVIDERS = {
    "google": "google",
    "linkedin": "linkedin_oidc",
}


def _user_summary(user: Any, session: Any = None) -> Dict[str, Any]:
    return {
        "user_id": str(user.id),
        "email": getattr(user, "email", None),
        "has_session": session is not None
    }


class AuthService:
    """
    Auth gateway for one browser session.

    No method raises: backend failures come back as ``AuthResult.error``.
    Follow-up writes (profile row, login activity, last login) are not
    transactional with the primary call; their failures are logged and
    listed in ``AuthResult.warnings`` while the primary result stands.
    """

    def __init__(self, client: AsyncClient, profiles: Optional[ProfileService] = None):
        self.client = client
        self.profiles = profiles or ProfileService(client)

    async def sign_up(self, email: str, password: str, name: str) -> AuthResult:
        """
        Create the auth identity, then its profile row

        Args:
            email: User email
            password: User password
            name: Display name, also stored in user metadata
        """
        try:
            response = await self.client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {
                    "data": {"name": name},
                    "email_redirect_to": settings.site_url
                }
            })
        except Exception as e:
            logger.error("Error signing up", email=email, error=str(e))
            return AuthResult.failure(e)

        user = response.user
        if not user:
            logger.error("Sign up returned no user", email=email)
            return AuthResult.failure(ServiceError("Failed to create account", code="signup_failed"))

        warnings = []
        created = await self.profiles.create_profile(UserProfile(
            id=str(user.id),
            name=name,
            email=email,
            created_at=utcnow(),
            role=UserRole.USER
        ))
        if not created.ok:
            # Identity is kept without a profile row
            warnings.append(f"profile_create_failed: {created.error.message}")

        logger.info("User signed up", user_id=str(user.id), email=email)
        return AuthResult(data=_user_summary(user, response.session), warnings=warnings)

    async def sign_in(self, email: str, password: str, ip_address: Optional[str] = None) -> AuthResult:
        """
        Password sign-in, then record login activity and last login

        Args:
            email: User email
            password: User password
            ip_address: Client address stored with the login activity entry
        """
        try:
            response = await self.client.auth.sign_in_with_password({
                "email": email,
                "password": password
            })
        except Exception as e:
            logger.error("Error signing in", email=email, error=str(e))
            return AuthResult.failure(e)

        if not response.user or not response.session:
            logger.error("Sign in returned no session", email=email)
            return AuthResult.failure(ServiceError("Invalid login credentials", code="invalid_credentials"))

        user_id = str(response.user.id)
        login_time = utcnow()
        warnings = []

        activity = await self.profiles.record_login_activity(user_id, login_time, ip_address)
        if not activity.ok:
            warnings.append(f"login_activity_failed: {activity.error.message}")

        touched = await self.profiles.update_last_login(user_id, login_time)
        if not touched.ok:
            warnings.append(f"last_login_failed: {touched.error.message}")

        logger.info("User signed in", user_id=user_id)
        return AuthResult(data=_user_summary(response.user, response.session), warnings=warnings)

    async def sign_in_with_oauth(self, provider: str) -> AuthResult:
        """
        Start an OAuth sign-in

        Returns the provider authorization URL; the flow completes on
        ``/auth/callback`` via ``exchange_code_for_session``.
        """
        backend_provider = OAUTH_PROVIDERS.get(provider)
        if not backend_provider:
            return AuthResult.failure(ServiceError(f"Unsupported provider: {provider}", code="unsupported_provider"))

        try:
            response = await self.client.auth.sign_in_with_oauth({
                "provider": backend_provider,
                "options": {"redirect_to": settings.oauth_redirect_url}
            })
        except Exception as e:
            logger.error("Error starting OAuth sign in", provider=provider, error=str(e))
            return AuthResult.failure(e)

        return AuthResult(data={"provider": provider, "url": response.url})

    async def sign_in_with_google(self) -> AuthResult:
        return await self.sign_in_with_oauth("google")

    async def sign_in_with_linkedin(self) -> AuthResult:
        return await self.sign_in_with_oauth("linkedin")

    async def exchange_code_for_session(self, code: str) -> AuthResult:
        """Complete an OAuth sign-in with the authorization code"""
        try:
            response = await self.client.auth.exchange_code_for_session({
                "auth_code": code,
                "redirect_to": settings.oauth_redirect_url
            })
        except Exception as e:
            logger.error("Error exchanging OAuth code", error=str(e))
            return AuthResult.failure(e)

        if not response.user:
            return AuthResult.failure(ServiceError("OAuth sign in returned no user", code="oauth_failed"))

        return AuthResult(data=_user_summary(response.user, response.session))

    async def forgot_password(self, email: str) -> AuthResult:
        """Ask the backend to email a recovery code"""
        try:
            await self.client.auth.reset_password_for_email(email, {"redirect_to": settings.site_url})
        except Exception as e:
            logger.error("Error sending reset password email", email=email, error=str(e))
            return AuthResult.failure(e)

        logger.info("Password reset code requested", email=email)
        return AuthResult(data={"email": email})

    async def verify_otp_and_reset_password(self, otp: str, email: str, new_password: str) -> AuthResult:
        """
        Verify the recovery code, then set the new password

        The two calls are not atomic: if the update fails the code has
        already been consumed and the result carries an ``otp_verified`` warning.
        """
        try:
            verified = await self.client.auth.verify_otp({
                "email": email,
                "token": otp,
                "type": "recovery"
            })
        except Exception as e:
            logger.error("Error verifying OTP", email=email, error=str(e))
            return AuthResult.failure(e)

        try:
            await self.client.auth.update_user({"password": new_password})
        except Exception as e:
            logger.error("Password update failed after OTP verification", email=email, error=str(e))
            return AuthResult.failure(e, warnings=["otp_verified"])

        logger.info("Password reset completed", email=email)
        user = verified.user
        return AuthResult(data=_user_summary(user, verified.session) if user else {"email": email})

    async def sign_out(self) -> AuthResult:
        """Invalidate the backend session"""
        try:
            await self.client.auth.sign_out()
        except Exception as e:
            logger.error("Error signing out", error=str(e))
            return AuthResult.failure(e)

        return AuthResult(data=None)

    async def get_session(self) -> AuthResult:
        """Current backend session, or ``None``"""
        try:
            session = await self.client.auth.get_session()
        except Exception as e:
            logger.error("Error getting session", error=str(e))
            return AuthResult.failure(e)

        return AuthResult(data=session)
