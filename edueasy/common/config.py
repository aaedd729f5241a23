"""Configuration loading utilities."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_DOCUMENTS_BUCKET = "user_documents"
DEFAULT_DOCUMENTS_TABLE = "documents"
DEFAULT_VERIFY_FUNCTION = "verify-document"
DEFAULT_MAX_UPLOAD_MB = 5.0
DEFAULT_COMPRESSION_THRESHOLD_KB = 500
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_STREAMLIT_SECRETS_CACHE: Optional[Dict[str, Any]] = None


@dataclass(slots=True)
class AppConfig:
    """Runtime configuration loaded from env variables."""

    supabase_url: str
    supabase_key: str
    documents_bucket: str = DEFAULT_DOCUMENTS_BUCKET
    documents_table: str = DEFAULT_DOCUMENTS_TABLE
    verify_function: str = DEFAULT_VERIFY_FUNCTION
    max_upload_bytes: int = int(DEFAULT_MAX_UPLOAD_MB * 1024 * 1024)
    compression_threshold_bytes: int = DEFAULT_COMPRESSION_THRESHOLD_KB * 1024
    auto_verify: bool = True
    require_verification: bool = False


def load_config() -> AppConfig:
    """Load and validate configuration from environment variables."""

    load_dotenv()

    def _require(name: str) -> str:
        value = _get_value_from_env_or_secrets(name)
        if not value:
            raise ConfigError(f"Missing required environment variable {name}")
        return value

    max_upload_mb = _number("MAX_UPLOAD_MB", DEFAULT_MAX_UPLOAD_MB)
    threshold_kb = _number("COMPRESSION_THRESHOLD_KB", DEFAULT_COMPRESSION_THRESHOLD_KB)
    if max_upload_mb <= 0:
        raise ConfigError("MAX_UPLOAD_MB must be greater than zero")

    return AppConfig(
        supabase_url=_require("SUPABASE_URL"),
        supabase_key=_require("SUPABASE_KEY"),
        documents_bucket=(
            _get_value_from_env_or_secrets("SUPABASE_DOCUMENTS_BUCKET")
            or DEFAULT_DOCUMENTS_BUCKET
        ),
        documents_table=(
            _get_value_from_env_or_secrets("DOCUMENTS_TABLE") or DEFAULT_DOCUMENTS_TABLE
        ),
        verify_function=(
            _get_value_from_env_or_secrets("VERIFY_FUNCTION_NAME")
            or DEFAULT_VERIFY_FUNCTION
        ),
        max_upload_bytes=int(max_upload_mb * 1024 * 1024),
        compression_threshold_bytes=int(threshold_kb * 1024),
        auto_verify=_flag("AUTO_VERIFY", True),
        require_verification=_flag("REQUIRE_VERIFICATION", False),
    )


def _number(name: str, default: float) -> float:
    raw = _get_value_from_env_or_secrets(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be numeric, got {raw!r}") from exc


def _flag(name: str, default: bool) -> bool:
    raw = _get_value_from_env_or_secrets(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean flag, got {raw!r}")


def _get_streamlit_secret(name: str) -> Optional[str]:
    """Read a secret from `.streamlit/secrets.toml` if available."""

    secrets = _load_streamlit_secrets()
    value = secrets.get(name)
    if value is None:
        return None
    return str(value)


def _load_streamlit_secrets() -> Dict[str, Any]:
    """Load and cache Streamlit secrets to avoid repeated disk reads."""

    global _STREAMLIT_SECRETS_CACHE
    if _STREAMLIT_SECRETS_CACHE is not None:
        return _STREAMLIT_SECRETS_CACHE

    project_root = Path(__file__).resolve().parents[2]
    secrets_path = project_root / ".streamlit" / "secrets.toml"
    if not secrets_path.exists():
        _STREAMLIT_SECRETS_CACHE = {}
        return _STREAMLIT_SECRETS_CACHE

    with secrets_path.open("rb") as handle:
        _STREAMLIT_SECRETS_CACHE = tomllib.load(handle)
    return _STREAMLIT_SECRETS_CACHE


def _get_value_from_env_or_secrets(*names: str) -> Optional[str]:
    """Check env vars first, then Streamlit secrets for any of the provided names."""

    for name in names:
        value = os.getenv(name)
        if value:
            return value
    for name in names:
        secret_value = _get_streamlit_secret(name)
        if secret_value:
            return secret_value
    return None
