"""
Authentication Routes
Sign-up, sign-in, OAuth, OTP password reset and sign-out
"""

from typing import Optional

import structlog
from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from career_compass.models.result import AuthResult
from career_compass.schemas.user import (
    ForgotPasswordForm, ResetPasswordForm, SignInForm, SignUpForm
)
from career_compass.services.session_store import LANDING_PAGE
from career_compass.utils.dependencies import SessionDep
from career_compass.utils.redis_session import RedisSessionManager
from career_compass.utils.validators import (
    ensure_valid, validate_forgot_password, validate_password_reset,
    validate_sign_in, validate_sign_up
)

logger = structlog.get_logger(__name__)

router = APIRouter()


class OAuthCallbackError(Exception):
    """OAuth completion failed; the visitor is sent back to the landing page"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def raise_for_error(result: AuthResult, status_code: int = status.HTTP_400_BAD_REQUEST) -> None:
    if not result.ok:
        raise HTTPException(status_code=status_code, detail=result.error.message)


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def sign_up(form: SignUpForm, ctx: SessionDep):
    """
    Register a new user

    Creates the auth identity and the profile row. A failed profile insert
    is reported in ``warnings`` but does not fail the sign-up.
    """
    ensure_valid(validate_sign_up(form.email, form.password, form.name))

    result = await ctx.auth.sign_up(form.email.strip(), form.password, form.name.strip())
    raise_for_error(result)

    state = await ctx.store.settle()
    return {
        "success": True,
        "message": "Sign up successful. Please check your email to verify your account.",
        "user": result.data,
        "warnings": result.warnings,
        "session": state.summary(),
        "redirect_to": ctx.store.take_redirect()
    }


@router.post("/signin")
async def sign_in(form: SignInForm, request: Request, ctx: SessionDep):
    """Password sign-in; answers with the dashboard route for the user's role"""
    ensure_valid(validate_sign_in(form.email, form.password))

    result = await ctx.auth.sign_in(form.email.strip(), form.password, client_ip(request))
    raise_for_error(result, status.HTTP_401_UNAUTHORIZED)

    state = await ctx.store.settle()
    redirect_to = ctx.store.take_redirect() or state.home()
    return {
        "success": True,
        "message": "Welcome back!",
        "user": result.data,
        "warnings": result.warnings,
        "session": state.summary(),
        "redirect_to": redirect_to
    }


@router.get("/oauth/{provider}")
async def oauth_sign_in(provider: str, ctx: SessionDep):
    """Redirect to the OAuth provider (google or linkedin)"""
    if provider == "google":
        result = await ctx.auth.sign_in_with_google()
    elif provider == "linkedin":
        result = await ctx.auth.sign_in_with_linkedin()
    else:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown provider: {provider}")

    raise_for_error(result)
    logger.info("Redirecting to OAuth provider", provider=provider)
    return RedirectResponse(url=result.data["url"], status_code=status.HTTP_302_FOUND)


@router.get("/callback")
async def oauth_callback(
    ctx: SessionDep,
    code: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None
):
    """
    OAuth redirect landing

    Exchanges the code for a session, creates the profile on first sign-in
    and redirects to the dashboard matching the user's role.
    """
    if error:
        raise OAuthCallbackError(error_description or error)
    if not code:
        raise OAuthCallbackError("Missing authorization code")

    result = await ctx.auth.exchange_code_for_session(code)
    if not result.ok:
        raise OAuthCallbackError(result.error.message)

    state = await ctx.store.settle()
    if state.user is None:
        raise OAuthCallbackError("No user session after sign in")

    if state.profile is None:
        ensured = await ctx.profiles.ensure_profile(state.user)
        if not ensured.ok:
            raise OAuthCallbackError(ensured.error.message)
        state = await ctx.store.reload_profile()

    ctx.store.take_redirect()
    logger.info("OAuth sign in completed", user_id=state.user.id, is_admin=state.is_admin)
    return RedirectResponse(url=state.home(), status_code=status.HTTP_303_SEE_OTHER)


@router.post("/forgot-password")
async def forgot_password(form: ForgotPasswordForm, ctx: SessionDep):
    """Send a 6-digit recovery code by email"""
    ensure_valid(validate_forgot_password(form.email))

    result = await ctx.auth.forgot_password(form.email.strip())
    raise_for_error(result)

    return {
        "success": True,
        "message": "Check your email for the 6-digit code to reset your password."
    }


@router.post("/reset-password")
async def reset_password(form: ResetPasswordForm, ctx: SessionDep):
    """Verify the recovery code and set the new password"""
    ensure_valid(validate_password_reset(form.email, form.otp, form.password, form.confirm_password))

    result = await ctx.auth.verify_otp_and_reset_password(form.otp, form.email.strip(), form.password)
    raise_for_error(result)

    state = await ctx.store.settle()
    ctx.store.take_redirect()
    return {
        "success": True,
        "message": "Your password has been reset successfully.",
        "session": state.summary(),
        "redirect_to": state.home() if state.is_authenticated else LANDING_PAGE
    }


@router.post("/signout")
async def sign_out(ctx: SessionDep):
    """Invalidate the backend session and drop its stored tokens"""
    result = await ctx.auth.sign_out()
    raise_for_error(result)
    await RedisSessionManager.clear_session(ctx.session_id)

    state = await ctx.store.settle()
    return {
        "success": True,
        "message": "Signed out successfully",
        "session": state.summary(),
        "redirect_to": ctx.store.take_redirect() or LANDING_PAGE
    }


@router.get("/session")
async def current_session(ctx: SessionDep):
    """Current session state"""
    return ctx.store.state.summary()
