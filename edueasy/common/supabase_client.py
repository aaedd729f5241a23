"""Helpers for creating Supabase clients and reading the signed-in user."""

from __future__ import annotations

from typing import Any, Optional

from supabase import Client, create_client
from yarl import URL

from .config import AppConfig
from .logging import get_logger

LOGGER = get_logger(__name__)


def build_supabase_client(config: AppConfig) -> Client:
    """Instantiate a Supabase client using the provided config."""

    client = create_client(config.supabase_url, config.supabase_key)
    storage_url = str(client.storage_url)
    if not storage_url.endswith("/"):
        client.storage_url = URL(f"{storage_url}/")
    return client


def sign_in_with_password(client: Any, email: str, password: str) -> Optional[str]:
    """Start a password session on the client and return the user id."""

    response = client.auth.sign_in_with_password({"email": email, "password": password})
    user = getattr(response, "user", None)
    return getattr(user, "id", None)


def current_user_id(client: Any) -> Optional[str]:
    """Return the id of the authenticated user, or None when signed out."""

    try:
        response = client.auth.get_user()
    except Exception as exc:  # pragma: no cover - depends on auth backend
        LOGGER.warning("auth_lookup_failed", error=str(exc))
        return None
    user = getattr(response, "user", None) if response is not None else None
    user_id = getattr(user, "id", None)
    return str(user_id) if user_id else None
