from unittest.mock import patch

import pytest

from dashboard.supabase_client import get_supabase_client


def test_uses_effective_secret_key() -> None:
    with (
        patch("dashboard.supabase_client.get_settings") as mock_settings,
        patch("dashboard.supabase_client.create_client") as mock_create,
    ):
        mock_settings.return_value.supabase_url = "https://example.supabase.co"
        mock_settings.return_value.effective_supabase_secret_key = "sb_secret_new"

        get_supabase_client.cache_clear()
        get_supabase_client()

        mock_create.assert_called_once_with(
            "https://example.supabase.co",
            "sb_secret_new",
        )
    get_supabase_client.cache_clear()


def test_missing_secret_key_raises() -> None:
    with (
        patch("dashboard.supabase_client.get_settings") as mock_settings,
        patch("dashboard.supabase_client.create_client") as mock_create,
    ):
        mock_settings.return_value.supabase_url = "https://example.supabase.co"
        mock_settings.return_value.effective_supabase_secret_key = ""

        get_supabase_client.cache_clear()
        with pytest.raises(RuntimeError, match="SUPABASE_URL"):
            get_supabase_client()

        mock_create.assert_not_called()
    get_supabase_client.cache_clear()
