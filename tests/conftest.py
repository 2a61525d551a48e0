"""
Pytest configuration for Career Compass tests

Provides an in-memory stand-in for the parts of the async Supabase client
the service touches: auth (with its event listeners), table queries and
realtime channels.
"""

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient


class FakeBackendError(Exception):
    """Mimics supabase auth / postgrest errors (message, code, status)"""

    def __init__(self, message, code="backend_error", status=400):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.descending = False
        self.limit_count = None

    def select(self, columns="*"):
        self.columns = columns
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = column
        self.descending = desc
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    def _matches(self, row):
        return all(str(row.get(column)) == str(value) for column, value in self.filters)

    async def execute(self):
        self.db.calls.append((self.table, self.op, self.columns, bool(self.filters)))
        if (self.table, self.op) in self.db.failures:
            raise FakeBackendError(f"{self.op} on {self.table} failed", code="42501")

        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            payloads = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for payload in payloads:
                row = dict(payload)
                row.setdefault("id", str(uuid.uuid4()))
                rows.append(row)
                inserted.append(dict(row))
            return SimpleNamespace(data=inserted)

        if self.op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self.payload)
                    updated.append(dict(row))
            return SimpleNamespace(data=updated)

        result = [dict(row) for row in rows if self._matches(row)]
        if "profiles(" in self.columns:
            profiles = {row["id"]: row for row in self.db.tables.get("profiles", [])}
            for row in result:
                joined = profiles.get(row.get("user_id"))
                row["profiles"] = {"name": joined["name"], "email": joined["email"]} if joined else None
        if self.order_by:
            result.sort(key=lambda row: str(row.get(self.order_by) or ""), reverse=self.descending)
        if self.limit_count is not None:
            result = result[:self.limit_count]
        return SimpleNamespace(data=result)


class FakeDatabase:
    def __init__(self):
        self.tables = {}
        self.calls = []
        self.failures = set()

    def fail(self, table, op):
        self.failures.add((table, op))

    def list_reads(self, table):
        """Unfiltered selects, i.e. full-table fetches"""
        return [
            call for call in self.calls
            if call[0] == table and call[1] == "select" and not call[3]
        ]


class FakeAuth:
    def __init__(self):
        self.accounts = {}
        self.session = None
        self.listeners = {}
        self.recovery_codes = {}
        self.oauth_codes = {}
        self.failures = {}
        self.calls = []

    # helpers

    def add_account(self, email, password, metadata=None):
        user = SimpleNamespace(id=str(uuid.uuid4()), email=email, user_metadata=metadata or {})
        self.accounts[email] = {"user": user, "password": password}
        return user

    def _maybe_fail(self, name):
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    def _start_session(self, user, event="SIGNED_IN"):
        self.session = SimpleNamespace(
            user=user,
            access_token=f"access-{user.id}",
            refresh_token=f"refresh-{user.id}"
        )
        self._notify(event, self.session)
        return self.session

    def _notify(self, event, session):
        for callback in list(self.listeners.values()):
            callback(event, session)

    # supabase auth surface

    def on_auth_state_change(self, callback):
        key = str(uuid.uuid4())
        self.listeners[key] = callback
        return SimpleNamespace(unsubscribe=lambda: self.listeners.pop(key, None))

    async def get_session(self):
        self._maybe_fail("get_session")
        return self.session

    async def sign_up(self, credentials):
        self._maybe_fail("sign_up")
        email = credentials["email"]
        if email in self.accounts:
            raise FakeBackendError("User already registered", code="user_already_exists", status=422)
        metadata = credentials.get("options", {}).get("data", {})
        user = self.add_account(email, credentials["password"], metadata)
        return SimpleNamespace(user=user, session=None)

    async def sign_in_with_password(self, credentials):
        self._maybe_fail("sign_in_with_password")
        account = self.accounts.get(credentials["email"])
        if not account or account["password"] != credentials["password"]:
            raise FakeBackendError("Invalid login credentials", code="invalid_credentials")
        session = self._start_session(account["user"])
        return SimpleNamespace(user=account["user"], session=session)

    async def sign_in_with_oauth(self, credentials):
        self._maybe_fail("sign_in_with_oauth")
        provider = credentials["provider"]
        return SimpleNamespace(
            provider=provider,
            url=f"https://fake.supabase.co/auth/v1/authorize?provider={provider}"
        )

    async def exchange_code_for_session(self, params):
        self._maybe_fail("exchange_code_for_session")
        user = self.oauth_codes.pop(params["auth_code"], None)
        if user is None:
            raise FakeBackendError("invalid flow state, no valid flow state found", code="flow_state_not_found")
        session = self._start_session(user)
        return SimpleNamespace(user=user, session=session)

    async def reset_password_for_email(self, email, options=None):
        self._maybe_fail("reset_password_for_email")
        if email in self.accounts:
            self.recovery_codes[email] = "123456"

    async def verify_otp(self, params):
        self._maybe_fail("verify_otp")
        email = params["email"]
        if self.recovery_codes.get(email) != params["token"]:
            raise FakeBackendError("Token has expired or is invalid", code="otp_expired", status=403)
        del self.recovery_codes[email]
        user = self.accounts[email]["user"]
        session = self._start_session(user)
        return SimpleNamespace(user=user, session=session)

    async def update_user(self, attributes):
        self._maybe_fail("update_user")
        if self.session is None:
            raise FakeBackendError("Auth session missing!", code="session_not_found", status=401)
        account = self.accounts[self.session.user.email]
        if "password" in attributes:
            account["password"] = attributes["password"]
        self._notify("USER_UPDATED", self.session)
        return SimpleNamespace(user=self.session.user)

    async def sign_out(self):
        self._maybe_fail("sign_out")
        self.session = None
        self._notify("SIGNED_OUT", None)


class FakeChannel:
    def __init__(self, topic):
        self.topic = topic
        self.bindings = []
        self.subscribed = False

    def on_postgres_changes(self, event, callback, table="*", schema="public", filter=None):
        self.bindings.append({"event": event, "table": table, "schema": schema, "callback": callback})
        return self

    async def subscribe(self, callback=None):
        self.subscribed = True
        return self

    def emit(self, payload=None):
        for binding in self.bindings:
            binding["callback"](payload or {"eventType": "INSERT", "table": binding["table"]})


class FakeSupabase:
    def __init__(self):
        self.auth = FakeAuth()
        self.db = FakeDatabase()
        self.channels = []
        self.removed_channels = []

    def table(self, name):
        return FakeQuery(self.db, name)

    def channel(self, topic, params=None):
        channel = FakeChannel(topic)
        self.channels.append(channel)
        return channel

    async def remove_channel(self, channel):
        self.removed_channels.append(channel)

    def channel_for(self, table):
        for channel in self.channels:
            if any(binding["table"] == table for binding in channel.bindings):
                return channel
        return None

    def add_user(self, email, password="secret1", name="Test User", role="user", with_profile=True):
        user = self.auth.add_account(email, password, {"name": name})
        if with_profile:
            self.db.tables.setdefault("profiles", []).append({
                "id": user.id,
                "name": name,
                "email": email,
                "created_at": datetime.now(timezone.utc).isoformat(),
                "role": role
            })
        return user

    def add_login(self, user, login_time=None, ip_address="10.0.0.1"):
        self.db.tables.setdefault("login_activity", []).append({
            "id": str(uuid.uuid4()),
            "user_id": user.id,
            "login_time": (login_time or datetime.now(timezone.utc)).isoformat(),
            "ip_address": ip_address
        })


class FakeBackend:
    def __init__(self, client):
        self.client = client
        self.created = 0
        self.released = 0

    def is_placeholder(self):
        return False

    async def create_client(self, storage=None):
        self.created += 1
        return self.client

    async def release_client(self, client):
        self.released += 1


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def client(fake_supabase):
    """Test client wired to the fake backend; one cookie jar = one browser"""
    from career_compass.main import app
    from career_compass.utils.dependencies import get_backend, get_storage_factory

    backend = FakeBackend(fake_supabase)
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_storage_factory] = lambda: (lambda session_id: None)
    with patch(
        "career_compass.routes.auth.RedisSessionManager.clear_session",
        AsyncMock(return_value=0)
    ) as clear_session:
        test_client = TestClient(app)
        test_client.clear_session = clear_session
        test_client.backend = backend
        yield test_client
    app.dependency_overrides.clear()

