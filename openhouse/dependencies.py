"""FastAPI dependency injection helpers."""

from __future__ import annotations

import threading
import time
from typing import Any

from fastapi import BackgroundTasks, Depends, Header

from openhouse.clients.giftbit import GiftbitClient, get_giftbit_client
from openhouse.config import settings
from openhouse.services.common import SupabaseService
from openhouse.services.gift_issuance_service import GiftIssuanceService
from openhouse.services.notification_service import NotificationService
from openhouse.utils.errors import ForbiddenError, UnauthorizedError
from openhouse.utils.supabase_client import get_auth_client, get_service_client
from supabase import Client

_token_cache: dict[str, tuple[float, Any]] = {}
_cache_lock = threading.Lock()


def _cache_get(cache: dict[Any, tuple[float, Any]], key: Any) -> Any | None:
    """Return a cache value when present and not expired."""
    now = time.monotonic()
    with _cache_lock:
        entry = cache.get(key)
        if not entry:
            return None
        expires_at, value = entry
        if expires_at <= now:
            cache.pop(key, None)
            return None
        return value


def _cache_set(
    cache: dict[Any, tuple[float, Any]],
    key: Any,
    value: Any,
    ttl_seconds: int,
    max_entries: int,
) -> None:
    """Store a bounded cache value with TTL."""
    if ttl_seconds <= 0:
        return

    with _cache_lock:
        bounded_max_entries = max(1, max_entries)
        if len(cache) >= bounded_max_entries:
            oldest_key = next(iter(cache))
            cache.pop(oldest_key, None)
        cache[key] = (time.monotonic() + ttl_seconds, value)


def get_authenticated_user(authorization: str = Header(None)) -> Any:
    """Extract and validate a Supabase JWT from the Authorization header.

    Raises:
        UnauthorizedError: 401 if the header is missing, malformed, or
            the token cannot be validated.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Missing authorization header")

    token = authorization.split(" ", 1)[1]
    cached_user = _cache_get(_token_cache, token)
    if cached_user is not None:
        return cached_user

    supabase = get_auth_client()

    try:
        response = supabase.auth.get_user(token)
        if not response or not response.user:
            raise UnauthorizedError("Invalid token")
        _cache_set(
            _token_cache,
            token,
            response.user,
            settings.auth_token_cache_ttl_seconds,
            settings.auth_token_cache_max_entries,
        )
        return response.user
    except UnauthorizedError:
        raise
    except Exception as exc:
        raise UnauthorizedError("Invalid or expired token") from exc


def get_current_user_id(user: Any) -> str:
    """Extract a stable user id string from the Supabase user object."""
    return str(user.id)


def get_db_client() -> Client:
    """Return the privileged Supabase client used by backend services."""
    return get_service_client()


def get_admin_user(
    user: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_db_client),
) -> Any:
    """Return the authenticated user when their profile carries the admin flag."""
    db = SupabaseService(client)
    rows = db.execute(
        db.client.table("users").select("is_admin").eq("id", get_current_user_id(user)).limit(1),
        default=[],
    )
    if not rows or not rows[0].get("is_admin"):
        raise ForbiddenError("Admin access required")
    return user


def get_provider() -> GiftbitClient:
    """Return the shared Giftbit client."""
    return get_giftbit_client()


def get_notifications(background_tasks: BackgroundTasks) -> NotificationService:
    """Return a notifier whose sends run after the response is returned."""
    return NotificationService(background_tasks)


def get_issuance_service(
    client: Client = Depends(get_db_client),
    provider: GiftbitClient = Depends(get_provider),
    notifications: NotificationService = Depends(get_notifications),
) -> GiftIssuanceService:
    """Return the gift workflow bound to this request's background tasks."""
    return GiftIssuanceService(client, provider, notifications)
