"""
FastAPI Dependencies
Per-browser session context and route guard dependencies
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Annotated, Any, AsyncIterator, Callable, Optional

import structlog
from fastapi import Depends, Request

from career_compass.services.auth_service import AuthService
from career_compass.services.career_service import CareerService
from career_compass.services.profile_service import ProfileService
from career_compass.services.session_store import SessionStore
from career_compass.utils.guards import admin_only, anonymous_only, authenticated_only, enforce
from career_compass.utils.redis_session import RedisSessionManager
from career_compass.utils.supabase_client import SupabaseBackend, supabase_backend

logger = structlog.get_logger(__name__)

StorageFactory = Callable[[str], Optional[Any]]


@dataclass
class SessionContext:
    """Everything a request needs to act on behalf of one browser session"""
    session_id: str
    client: Any
    store: SessionStore
    auth: AuthService
    profiles: ProfileService
    careers: CareerService


def get_backend() -> SupabaseBackend:
    """Supabase backend dependency"""
    return supabase_backend


def get_storage_factory() -> StorageFactory:
    """Auth storage factory dependency (Redis-backed)"""
    return RedisSessionManager.storage_for


def get_session_id(request: Request) -> str:
    """Session id assigned by the session cookie middleware"""
    session_id = getattr(request.state, "session_id", None)
    if not session_id:
        raise RuntimeError("Session cookie middleware is not installed")
    return session_id


@asynccontextmanager
async def open_session_context(
    session_id: str,
    backend: SupabaseBackend,
    storage_factory: StorageFactory
) -> AsyncIterator[SessionContext]:
    """
    Build a user-scoped client and a settled session store

    The auth listener is removed and the client's connections are closed
    when the context exits.
    """
    client = await backend.create_client(storage_factory(session_id))
    profiles = ProfileService(client)
    store = SessionStore(client, profiles)

    try:
        async with store:
            await store.initialize()
            await store.settle()
            yield SessionContext(
                session_id=session_id,
                client=client,
                store=store,
                auth=AuthService(client, profiles),
                profiles=profiles,
                careers=CareerService(client)
            )
    finally:
        await backend.release_client(client)


async def get_session_context(
    session_id: str = Depends(get_session_id),
    backend: SupabaseBackend = Depends(get_backend),
    storage_factory: StorageFactory = Depends(get_storage_factory)
) -> AsyncIterator[SessionContext]:
    """Session context dependency"""
    async with open_session_context(session_id, backend, storage_factory) as ctx:
        yield ctx


async def require_authenticated(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
    enforce(authenticated_only(ctx.store.state))
    return ctx


async def require_admin(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
    enforce(admin_only(ctx.store.state))
    return ctx


async def require_anonymous(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
    enforce(anonymous_only(ctx.store.state))
    return ctx


# Type aliases for cleaner dependency injection
SessionDep = Annotated[SessionContext, Depends(get_session_context)]
AuthenticatedSession = Annotated[SessionContext, Depends(require_authenticated)]
AdminSession = Annotated[SessionContext, Depends(require_admin)]
AnonymousSession = Annotated[SessionContext, Depends(require_anonymous)]
