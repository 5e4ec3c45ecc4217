import logging
from typing import Optional

from supabase import AsyncClient, acreate_client

from paragoniusz.core.config import Settings, get_settings
from paragoniusz.services.ai.common.errors import ConfigurationError

logger = logging.getLogger(__name__)


async def get_supabase_client(settings: Optional[Settings] = None) -> AsyncClient:
    """Create an async Supabase client with the server-side key.

    The service-role key is preferred; the anon key is used as a fallback
    so that row-level security still applies in restricted deployments.
    """
    settings = settings or get_settings()
    key = settings.supabase_server_key
    if not settings.supabase_url or not key:
        raise ConfigurationError("Supabase credentials are not configured")
    return await acreate_client(settings.supabase_url, key)

