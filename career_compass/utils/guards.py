"""
Route guards
Pure predicates over the session state deciding whether a view may render
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, status

from career_compass.services.session_store import LANDING_PAGE, USER_HOME, SessionState


@dataclass(frozen=True)
class GuardOutcome:
    allowed: bool
    redirect_to: Optional[str] = None
    pending: bool = False


ALLOW = GuardOutcome(allowed=True)
PENDING = GuardOutcome(allowed=False, pending=True)


class RedirectRequired(Exception):
    """Raised by a guard dependency; rendered as a redirect response"""

    def __init__(self, location: str):
        super().__init__(location)
        self.location = location


def authenticated_only(state: SessionState) -> GuardOutcome:
    if state.is_loading:
        return PENDING
    if not state.is_authenticated:
        return GuardOutcome(allowed=False, redirect_to=LANDING_PAGE)
    return ALLOW


def admin_only(state: SessionState) -> GuardOutcome:
    if state.is_loading:
        return PENDING
    if not state.is_authenticated:
        return GuardOutcome(allowed=False, redirect_to=LANDING_PAGE)
    if not state.is_admin:
        return GuardOutcome(allowed=False, redirect_to=USER_HOME)
    return ALLOW


def anonymous_only(state: SessionState) -> GuardOutcome:
    if state.is_loading:
        return PENDING
    if state.is_authenticated:
        return GuardOutcome(allowed=False, redirect_to=state.home())
    return ALLOW


def enforce(outcome: GuardOutcome) -> None:
    """Turn a refusal into the matching exception"""
    if outcome.allowed:
        return
    if outcome.pending:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Checking authentication...",
            headers={"Retry-After": "1"}
        )
    raise RedirectRequired(outcome.redirect_to or LANDING_PAGE)
