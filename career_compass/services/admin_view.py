"""
Admin Data View
Profile and login-activity lists for the admin dashboard, refetched in full
on every realtime change notification
"""

import asyncio
from collections import Counter
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

import structlog

from career_compass.models.result import ServiceError
from career_compass.schemas.user import LoginActivity, UserProfile
from career_compass.services.profile_service import (
    LOGIN_ACTIVITY_TABLE, PROFILES_TABLE, ProfileService
)

logger = structlog.get_logger(__name__)

REALTIME_TABLES = (PROFILES_TABLE, LOGIN_ACTIVITY_TABLE)
NO_ACTIVITY_MESSAGE = "No login activity found"
CHART_DAYS = 14

UpdateCallback = Callable[[str], Awaitable[None]]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AdminDataView:
    """Fetched lists plus the derived statistics shown on the admin dashboard"""

    def __init__(self, profiles: ProfileService):
        self.profiles = profiles
        self.users: List[UserProfile] = []
        self.login_activity: List[LoginActivity] = []

    async def refresh_profiles(self) -> Optional[ServiceError]:
        result = await self.profiles.get_all_user_profiles()
        if not result.ok:
            return result.error
        self.users = result.data or []
        return None

    async def refresh_login_activity(self) -> Optional[ServiceError]:
        result = await self.profiles.get_all_login_activity()
        if not result.ok:
            return result.error
        self.login_activity = result.data or []
        return None

    async def refresh(self, table: str) -> Optional[ServiceError]:
        """Full refetch of the list backed by ``table``"""
        if table == PROFILES_TABLE:
            return await self.refresh_profiles()
        if table == LOGIN_ACTIVITY_TABLE:
            return await self.refresh_login_activity()
        raise ValueError(f"Unknown table: {table}")

    async def refresh_all(self) -> List[ServiceError]:
        errors = []
        for table in REALTIME_TABLES:
            error = await self.refresh(table)
            if error:
                errors.append(error)
        return errors

    @asynccontextmanager
    async def live(self, client: Any, on_update: Optional[UpdateCallback] = None) -> AsyncIterator["AdminDataView"]:
        """
        Keep the lists current while the context is open

        Subscribes to insert/update/delete notifications on the profiles and
        login activity tables. Each notification triggers a full refetch of
        the matching list, then ``on_update(table)``. Channels and the refetch
        worker are released on exit.
        """
        pending: "asyncio.Queue[str]" = asyncio.Queue()
        channels = []
        worker = None

        def notifier(table: str):
            def callback(payload: Dict[str, Any]) -> None:
                logger.debug("Realtime change received", table=table)
                pending.put_nowait(table)
            return callback

        try:
            for table in REALTIME_TABLES:
                channel = client.channel(f"admin-{table}")
                channel.on_postgres_changes(
                    event="*",
                    schema="public",
                    table=table,
                    callback=notifier(table)
                )
                await channel.subscribe()
                channels.append(channel)
                logger.info("Subscribed to realtime changes", table=table)

            worker = asyncio.create_task(self._consume(pending, on_update))
            yield self
        finally:
            if worker is not None:
                worker.cancel()
                try:
                    await worker
                except asyncio.CancelledError:
                    pass
            for channel in channels:
                try:
                    await client.remove_channel(channel)
                except Exception as e:
                    logger.warning("Failed to remove realtime channel", error=str(e))
            logger.info("Realtime subscriptions closed", channels=len(channels))

    async def _consume(self, pending: "asyncio.Queue[str]", on_update: Optional[UpdateCallback]) -> None:
        while True:
            table = await pending.get()
            error = await self.refresh(table)
            if error:
                logger.error("Realtime refetch failed", table=table, error=error.message)
                continue
            if on_update is None:
                continue
            try:
                await on_update(table)
            except Exception as e:
                logger.warning("Realtime update callback failed", table=table, error=str(e))

    def filter_users(self, query: str = "") -> List[UserProfile]:
        """Case-insensitive substring match on name or email"""
        needle = (query or "").strip().lower()
        if not needle:
            return list(self.users)
        return [
            user for user in self.users
            if needle in user.name.lower() or needle in user.email.lower()
        ]

    def logins_by_day(self) -> Dict[str, int]:
        """Login count per day for the most recent days with activity, oldest first"""
        counts = Counter(_as_utc(log.login_time).date().isoformat() for log in self.login_activity)
        days = sorted(counts)[-CHART_DAYS:]
        return {day: counts[day] for day in days}

    def stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        today = _as_utc(now or datetime.now(timezone.utc)).date()
        active_today = {
            log.user_id for log in self.login_activity
            if _as_utc(log.login_time).date() == today
        }
        return {
            "total_users": len(self.users),
            "active_users_today": len(active_today),
            "total_logins": len(self.login_activity),
            "logins_by_day": self.logins_by_day()
        }

    def activity_rows(self) -> List[Dict[str, Any]]:
        """Login activity table rows"""
        if not self.login_activity:
            return [{"message": NO_ACTIVITY_MESSAGE}]

        rows = []
        for log in self.login_activity:
            joined = log.profiles
            rows.append({
                "user": (joined.name if joined and joined.name else "Unknown"),
                "email": (joined.email if joined and joined.email else "Unknown"),
                "login_time": log.login_time.isoformat(),
                "ip_address": log.ip_address
            })
        return rows

    def snapshot(self, search: str = "") -> Dict[str, Any]:
        return {
            "stats": self.stats(),
            "users": [user.model_dump(mode="json") for user in self.filter_users(search)],
            "login_activity": self.activity_rows()
        }
