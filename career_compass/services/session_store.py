"""
Session Store
Authenticated identity and role flag of one browser session, kept in sync
with the Supabase auth-event stream
"""

import asyncio
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

import structlog
from pydantic import BaseModel

from career_compass.schemas.user import Identity, UserProfile
from career_compass.services.profile_service import ProfileService

logger = structlog.get_logger(__name__)

# Supabase auth events
INITIAL_SESSION = "INITIAL_SESSION"
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"
USER_UPDATED = "USER_UPDATED"
PASSWORD_RECOVERY = "PASSWORD_RECOVERY"

ADMIN_HOME = "/admin"
USER_HOME = "/dashboard"
LANDING_PAGE = "/"


class SessionStatus(str, Enum):
    """Session store states"""
    INITIALIZING = "initializing"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class SessionState(BaseModel):
    """Snapshot of the session store"""
    status: SessionStatus = SessionStatus.INITIALIZING
    user: Optional[Identity] = None
    profile: Optional[UserProfile] = None
    is_admin: bool = False

    @property
    def is_loading(self) -> bool:
        return self.status == SessionStatus.INITIALIZING

    @property
    def is_authenticated(self) -> bool:
        return self.status == SessionStatus.AUTHENTICATED

    def home(self) -> str:
        """Dashboard route for the current role"""
        return ADMIN_HOME if self.is_admin else USER_HOME

    def summary(self) -> dict:
        return {
            "status": self.status.value,
            "user_id": self.user.id if self.user else None,
            "email": self.user.email if self.user else None,
            "is_admin": self.is_admin,
            "profile": self.profile.model_dump(mode="json") if self.profile else None
        }


StateListener = Callable[[SessionState], None]


class SessionStore:
    """
    Owns one ``SessionState`` and changes it only through ``dispatch``.

    The Supabase auth listener registered by ``attach`` does nothing but
    enqueue ``(event, session)`` pairs; ``settle`` applies them in arrival
    order. Each dispatch bumps a generation counter and a profile fetch is
    applied only if no newer event arrived while it was in flight.
    """

    def __init__(self, client: Any, profiles: Optional[ProfileService] = None):
        self.client = client
        self.profiles = profiles or ProfileService(client)
        self._state = SessionState()
        self._events: "asyncio.Queue[Tuple[str, Any]]" = asyncio.Queue()
        self._generation = 0
        self._subscription = None
        self._listeners: List[StateListener] = []
        self._redirect_to: Optional[str] = None

    @property
    def state(self) -> SessionState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` after every state change; returns an unsubscribe function"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def attach(self, auth: Any) -> None:
        """Listen to the auth-event stream of a Supabase auth client"""
        if self._subscription is None:
            self._subscription = auth.on_auth_state_change(self._on_auth_event)

    def detach(self) -> None:
        """Stop listening to auth events"""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def __aenter__(self) -> "SessionStore":
        self.attach(self.client.auth)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.detach()

    def _on_auth_event(self, event: str, session: Any) -> None:
        logger.debug("Auth event received", auth_event=str(event))
        self._events.put_nowait((str(event), session))

    async def initialize(self) -> SessionState:
        """Bootstrap from the backend's existing session"""
        try:
            session = await self.client.auth.get_session()
        except Exception as e:
            logger.error("Error initializing auth", error=str(e))
            session = None

        return await self.dispatch(INITIAL_SESSION, session)

    async def settle(self) -> SessionState:
        """Apply every queued auth event, oldest first"""
        while not self._events.empty():
            event, session = self._events.get_nowait()
            await self.dispatch(event, session)
        return self._state

    async def dispatch(self, event: str, session: Any) -> SessionState:
        """Apply one auth event"""
        self._generation += 1
        generation = self._generation

        user = getattr(session, "user", None) if session is not None else None
        if event == SIGNED_OUT or user is None:
            self._apply(SessionState(status=SessionStatus.ANONYMOUS))
            if event == SIGNED_OUT:
                self._redirect_to = LANDING_PAGE
            return self._state

        identity = Identity.from_user(user)
        result = await self.profiles.get_profile(identity.id)

        if generation != self._generation:
            logger.info("Discarding stale profile fetch", user_id=identity.id, auth_event=event)
            return self._state

        profile = result.data if result.ok else None
        self._apply(SessionState(
            status=SessionStatus.AUTHENTICATED,
            user=identity,
            profile=profile,
            is_admin=bool(profile and profile.is_admin)
        ))

        if event == SIGNED_IN:
            self._redirect_to = self._state.home()

        return self._state

    async def reload_profile(self) -> SessionState:
        """Re-fetch the profile of the current identity"""
        user = self._state.user
        if user is None:
            return self._state

        self._generation += 1
        generation = self._generation
        result = await self.profiles.get_profile(user.id)
        if generation != self._generation:
            return self._state

        profile = result.data if result.ok else None
        self._apply(self._state.model_copy(update={
            "profile": profile,
            "is_admin": bool(profile and profile.is_admin)
        }))
        return self._state

    def take_redirect(self) -> Optional[str]:
        """Navigation requested by the last SIGNED_IN/SIGNED_OUT event, consumed once"""
        redirect_to, self._redirect_to = self._redirect_to, None
        return redirect_to

    def _apply(self, state: SessionState) -> None:
        previous = self._state
        self._state = state
        if previous.status != state.status or previous.is_admin != state.is_admin:
            logger.info(
                "Session state changed",
                status=state.status.value,
                is_admin=state.is_admin,
                user_id=state.user.id if state.user else None
            )
        for listener in list(self._listeners):
            listener(state)
