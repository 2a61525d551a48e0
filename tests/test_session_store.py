"""
Session Store Tests
"""

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from career_compass.models.result import AuthResult, ServiceError
from career_compass.schemas.user import UserProfile
from career_compass.services.session_store import (
    INITIAL_SESSION, SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED, SessionStatus, SessionStore
)


def make_session(user_id, email="a@b.com"):
    return SimpleNamespace(user=SimpleNamespace(id=user_id, email=email, user_metadata={}))


class GatedProfiles:
    """Profile accessor whose fetches wait until released"""

    def __init__(self, roles):
        self.roles = roles
        self.gates = {}

    def gate(self, user_id):
        self.gates[user_id] = asyncio.Event()
        return self.gates[user_id]

    async def get_profile(self, user_id):
        if user_id in self.gates:
            await self.gates[user_id].wait()
        role = self.roles.get(user_id)
        if role is None:
            return AuthResult.failure(ServiceError("Profile not found", code="profile_not_found"))
        return AuthResult(data=UserProfile(
            id=user_id,
            name="Someone",
            email="a@b.com",
            created_at=datetime.now(timezone.utc),
            role=role
        ))


class TestSessionStore:
    def test_starts_initializing(self, fake_supabase):
        store = SessionStore(fake_supabase)
        assert store.state.status == SessionStatus.INITIALIZING
        assert store.state.is_loading

    @pytest.mark.asyncio
    async def test_initialize_without_session(self, fake_supabase):
        store = SessionStore(fake_supabase)
        state = await store.initialize()
        assert state.status == SessionStatus.ANONYMOUS
        assert state.user is None
        assert not state.is_admin

    @pytest.mark.asyncio
    async def test_initialize_with_admin_session(self, fake_supabase):
        user = fake_supabase.add_user("boss@b.com", role="admin")
        fake_supabase.auth._start_session(user)

        state = await SessionStore(fake_supabase).initialize()

        assert state.is_authenticated
        assert state.is_admin
        assert state.home() == "/admin"

    @pytest.mark.asyncio
    async def test_missing_profile_means_non_admin(self, fake_supabase):
        user = fake_supabase.add_user("a@b.com", with_profile=False)
        fake_supabase.auth._start_session(user)

        state = await SessionStore(fake_supabase).initialize()

        assert state.is_authenticated
        assert state.profile is None
        assert not state.is_admin
        assert state.home() == "/dashboard"

    @pytest.mark.asyncio
    async def test_get_session_failure_is_anonymous(self, fake_supabase):
        fake_supabase.auth.failures["get_session"] = RuntimeError("boom")
        state = await SessionStore(fake_supabase).initialize()
        assert state.status == SessionStatus.ANONYMOUS

    @pytest.mark.asyncio
    async def test_events_applied_in_order(self, fake_supabase):
        fake_supabase.add_user("a@b.com")
        store = SessionStore(fake_supabase)

        async with store:
            await store.initialize()
            await fake_supabase.auth.sign_in_with_password({"email": "a@b.com", "password": "secret1"})
            await fake_supabase.auth.sign_out()
            state = await store.settle()

        assert state.status == SessionStatus.ANONYMOUS
        assert store.take_redirect() == "/"
        assert store.take_redirect() is None
        assert state.user is None

    @pytest.mark.asyncio
    async def test_signed_in_requests_role_home(self, fake_supabase):
        fake_supabase.add_user("boss@b.com", role="admin")
        store = SessionStore(fake_supabase)

        async with store:
            await store.initialize()
            await fake_supabase.auth.sign_in_with_password({"email": "boss@b.com", "password": "secret1"})
            await store.settle()

        assert store.state.is_admin
        assert store.take_redirect() == "/admin"

    @pytest.mark.asyncio
    async def test_token_refresh_does_not_redirect(self, fake_supabase):
        user = fake_supabase.add_user("a@b.com")
        store = SessionStore(fake_supabase)

        await store.dispatch(TOKEN_REFRESHED, make_session(user.id))

        assert store.state.is_authenticated
        assert store.take_redirect() is None

    @pytest.mark.asyncio
    async def test_stale_profile_fetch_is_discarded(self, fake_supabase):
        profiles = GatedProfiles({"admin-1": "admin"})
        gate = profiles.gate("admin-1")
        store = SessionStore(fake_supabase, profiles)

        pending = asyncio.create_task(store.dispatch(SIGNED_IN, make_session("admin-1")))
        await asyncio.sleep(0)
        await store.dispatch(SIGNED_OUT, None)
        gate.set()
        await pending

        assert store.state.status == SessionStatus.ANONYMOUS
        assert not store.state.is_admin

    @pytest.mark.asyncio
    async def test_latest_sign_in_wins(self, fake_supabase):
        profiles = GatedProfiles({"admin-1": "admin", "user-2": "user"})
        gate = profiles.gate("admin-1")
        store = SessionStore(fake_supabase, profiles)

        pending = asyncio.create_task(store.dispatch(SIGNED_IN, make_session("admin-1")))
        await asyncio.sleep(0)
        await store.dispatch(SIGNED_IN, make_session("user-2"))
        gate.set()
        await pending

        assert store.state.user.id == "user-2"
        assert not store.state.is_admin

    @pytest.mark.asyncio
    async def test_listeners_notified_until_unsubscribed(self, fake_supabase):
        store = SessionStore(fake_supabase)
        seen = []
        unsubscribe = store.subscribe(lambda state: seen.append(state.status))

        await store.dispatch(INITIAL_SESSION, None)
        unsubscribe()
        await store.dispatch(SIGNED_OUT, None)

        assert seen == [SessionStatus.ANONYMOUS]

    @pytest.mark.asyncio
    async def test_detach_removes_auth_listener(self, fake_supabase):
        store = SessionStore(fake_supabase)

        async with store:
            assert len(fake_supabase.auth.listeners) == 1

        assert fake_supabase.auth.listeners == {}
        await fake_supabase.auth.sign_out()
        await store.settle()
        assert store.state.status == SessionStatus.INITIALIZING

    @pytest.mark.asyncio
    async def test_reload_profile_after_creation(self, fake_supabase):
        user = fake_supabase.add_user("a@b.com", with_profile=False)
        store = SessionStore(fake_supabase)
        await store.dispatch(SIGNED_IN, make_session(user.id))
        assert store.state.profile is None

        fake_supabase.db.tables["profiles"] = [{
            "id": user.id,
            "name": "A",
            "email": "a@b.com",
            "created_at": datetime.now(timezone.utc).isoformat(),
            "role": "admin"
        }]
        state = await store.reload_profile()

        assert state.profile.name == "A"
        assert state.is_admin
