"""
Supabase Client Configuration
Builds user-scoped async Supabase clients for auth, tables and realtime
"""

from typing import Optional

import structlog
from supabase import AsyncClient, AsyncClientOptions, acreate_client
from supabase_auth import AsyncSupportedStorage

from career_compass.config import settings

logger = structlog.get_logger(__name__)


class SupabaseBackend:
    """Supabase connection settings and client factory"""

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None):
        self.url: str = url or settings.backend_url
        self.key: str = key or settings.backend_key
        self.placeholder: bool = url is None and settings.placeholder_mode

        if self.placeholder:
            logger.warning("Supabase credentials not found in environment, running in placeholder mode")

    def is_placeholder(self) -> bool:
        """Check if the backend is configured with placeholder credentials"""
        return self.placeholder

    async def create_client(self, storage: Optional[AsyncSupportedStorage] = None) -> AsyncClient:
        """
        Create a Supabase client for one browser session

        Args:
            storage: Auth storage holding this browser's session; in-memory if omitted

        Returns:
            AsyncClient: client whose auth state is read from ``storage``
        """
        options = {
            "persist_session": True,
            "auto_refresh_token": False,
            "flow_type": "pkce",
        }
        if storage is not None:
            options["storage"] = storage

        return await acreate_client(self.url, self.key, options=AsyncClientOptions(**options))

    async def release_client(self, client: AsyncClient) -> None:
        """Close the HTTP connections of a client built by ``create_client``"""
        try:
            await client.auth.close()
            # postgrest is created lazily on first table access
            postgrest = getattr(client, "_postgrest", None)
            if postgrest is not None:
                await postgrest.aclose()
        except Exception as e:
            logger.warning("Error closing Supabase client", error=str(e))


# Global Supabase backend instance
supabase_backend = SupabaseBackend()
