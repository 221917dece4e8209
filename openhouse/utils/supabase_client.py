"""Supabase client singletons.

The anon-key client only verifies session tokens; every data access goes
through the service-role client because balance and gift writes bypass RLS.
"""

from functools import lru_cache

import httpx
from supabase.lib.client_options import SyncClientOptions

from openhouse.config import settings
from supabase import Client, create_client


def _client_options() -> SyncClientOptions:
    timeout_seconds = max(1, settings.supabase_postgrest_timeout_seconds)
    max_connections = max(10, settings.supabase_http_max_connections)
    keepalive = max(5, min(max_connections, settings.supabase_http_max_keepalive_connections))

    return SyncClientOptions(
        auto_refresh_token=False,
        persist_session=False,
        postgrest_client_timeout=timeout_seconds,
        httpx_client=httpx.Client(
            timeout=httpx.Timeout(timeout_seconds),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=keepalive,
            ),
        ),
    )


@lru_cache(maxsize=1)
def get_auth_client() -> Client:
    """Return the anon-key client used to validate agent JWTs."""
    return create_client(settings.supabase_url, settings.supabase_anon_key, options=_client_options())


@lru_cache(maxsize=1)
def get_service_client() -> Client:
    """Return the service-role client used by services and scheduled jobs."""
    return create_client(
        settings.supabase_url,
        settings.supabase_service_key,
        options=_client_options(),
    )
