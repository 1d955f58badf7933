"""Supabase client used by the digest store."""

from functools import lru_cache

from supabase import Client, create_client

from dashboard.config import get_settings


@lru_cache
def get_supabase_client() -> Client:
    """Return a cached Supabase client authenticated with the secret key.

    Raises:
        RuntimeError: SUPABASE_URL or the secret key is not configured.
    """
    settings = get_settings()
    secret_key = settings.effective_supabase_secret_key
    if not settings.supabase_url or not secret_key:
        raise RuntimeError("Supabase digest storage requires SUPABASE_URL and SUPABASE_SECRET_KEY")
    return create_client(settings.supabase_url, secret_key)
