from __future__ import annotations

import pytest

from edueasy.common import config
from edueasy.common.errors import ConfigError

_OPTIONAL_KEYS = [
    "SUPABASE_DOCUMENTS_BUCKET",
    "DOCUMENTS_TABLE",
    "VERIFY_FUNCTION_NAME",
    "MAX_UPLOAD_MB",
    "COMPRESSION_THRESHOLD_KB",
    "AUTO_VERIFY",
    "REQUIRE_VERIFICATION",
]


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    monkeypatch.setattr(config, "_STREAMLIT_SECRETS_CACHE", {})
    for key in ["SUPABASE_URL", "SUPABASE_KEY", *_OPTIONAL_KEYS]:
        monkeypatch.delenv(key, raising=False)


def _required(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "secret")


def test_load_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    _required(monkeypatch)

    cfg = config.load_config()

    assert cfg.supabase_url == "https://example.supabase.co"
    assert cfg.supabase_key == "secret"
    assert cfg.documents_bucket == "user_documents"
    assert cfg.documents_table == "documents"
    assert cfg.verify_function == "verify-document"
    assert cfg.max_upload_bytes == 5 * 1024 * 1024
    assert cfg.compression_threshold_bytes == 500 * 1024
    assert cfg.auto_verify is True
    assert cfg.require_verification is False


def test_load_config_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    _required(monkeypatch)
    monkeypatch.setenv("SUPABASE_DOCUMENTS_BUCKET", "docs")
    monkeypatch.setenv("MAX_UPLOAD_MB", "2.5")
    monkeypatch.setenv("COMPRESSION_THRESHOLD_KB", "250")
    monkeypatch.setenv("AUTO_VERIFY", "off")
    monkeypatch.setenv("REQUIRE_VERIFICATION", "yes")

    cfg = config.load_config()

    assert cfg.documents_bucket == "docs"
    assert cfg.max_upload_bytes == int(2.5 * 1024 * 1024)
    assert cfg.compression_threshold_bytes == 250 * 1024
    assert cfg.auto_verify is False
    assert cfg.require_verification is True


def test_load_config_missing_key() -> None:
    with pytest.raises(ConfigError):
        config.load_config()


def test_load_config_uses_streamlit_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        config,
        "_STREAMLIT_SECRETS_CACHE",
        {"SUPABASE_URL": "https://secret.supabase.co", "SUPABASE_KEY": "from-secrets"},
    )

    cfg = config.load_config()

    assert cfg.supabase_url == "https://secret.supabase.co"
    assert cfg.supabase_key == "from-secrets"


@pytest.mark.parametrize(
    ("name", "value"),
    [("MAX_UPLOAD_MB", "lots"), ("MAX_UPLOAD_MB", "0"), ("AUTO_VERIFY", "maybe")],
)
def test_load_config_rejects_bad_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    _required(monkeypatch)
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigError):
        config.load_config()
