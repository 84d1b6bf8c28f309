"""Environment-backed settings for a sync run."""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from skills.application_sync.errors import ConfigurationError, MissingConfigurationError
from skills.application_sync.identity import MATCH_POLICIES

DEFAULT_LOOKBACK_HOURS = 24

REQUIRED_FOR_SYNC = (
    "OPENAI_API_KEY",
    "AIRTABLE_API_KEY",
    "AIRTABLE_BASE_ID",
)
REQUIRED_FOR_GMAIL = ("GMAIL_CLIENT_ID", "GMAIL_CLIENT_SECRET")


@dataclass(slots=True, frozen=True)
class Settings:
    openai_api_key: str = ""
    llm_model: str = "gpt-4.1-mini"
    llm_base_url: str = "https://api.openai.com/v1"
    llm_max_body_chars: int = 8000
    airtable_api_key: str = ""
    airtable_base_id: str = ""
    airtable_table_name: str = "Applications"
    gmail_client_id: str = ""
    gmail_client_secret: str = ""
    gmail_refresh_token: str = ""
    gmail_token_path: str = "token.json"
    cron_secret: str = ""
    ghosting_threshold_days: int = 45
    max_messages: int = 500
    detail_concurrency: int = 8
    identity_match_policy: str = "url"
    store_withdrawn_as_rejected: bool = True


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def load_settings(*, env_file: bool = True) -> Settings:
    if env_file:
        load_dotenv(Path.cwd() / ".env")
        local = Path.cwd() / ".env.local"
        if local.exists():
            load_dotenv(local, override=True)

    policy = os.getenv("IDENTITY_MATCH_POLICY", "url").strip() or "url"
    if policy not in MATCH_POLICIES:
        raise ConfigurationError(f"IDENTITY_MATCH_POLICY must be one of {', '.join(MATCH_POLICIES)}")

    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
        llm_model=os.getenv("LLM_MODEL", "gpt-4.1-mini").strip() or "gpt-4.1-mini",
        llm_base_url=os.getenv("LLM_BASE_URL", "https://api.openai.com/v1").strip() or "https://api.openai.com/v1",
        llm_max_body_chars=_env_int("LLM_MAX_BODY_CHARS", 8000),
        airtable_api_key=os.getenv("AIRTABLE_API_KEY", "").strip(),
        airtable_base_id=os.getenv("AIRTABLE_BASE_ID", "").strip(),
        airtable_table_name=os.getenv("AIRTABLE_TABLE_NAME", "Applications").strip() or "Applications",
        gmail_client_id=os.getenv("GMAIL_CLIENT_ID", "").strip(),
        gmail_client_secret=os.getenv("GMAIL_CLIENT_SECRET", "").strip(),
        gmail_refresh_token=os.getenv("GMAIL_REFRESH_TOKEN", "").strip(),
        gmail_token_path=os.getenv("GMAIL_TOKEN_PATH", "token.json").strip() or "token.json",
        cron_secret=os.getenv("CRON_SECRET", "").strip(),
        ghosting_threshold_days=_env_int("GHOSTING_THRESHOLD_DAYS", 45),
        max_messages=_env_int("SYNC_MAX_MESSAGES", 500),
        detail_concurrency=_env_int("SYNC_DETAIL_CONCURRENCY", 8),
        identity_match_policy=policy,
        store_withdrawn_as_rejected=_env_bool("STORE_WITHDRAWN_AS_REJECTED", True),
    )


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return the given environment variables or raise if any are missing/blank."""

    missing: list[str] = []
    values: dict[str, str] = {}
    for name in names:
        value = os.getenv(name)
        if value is None or not value.strip():
            missing.append(name)
            continue
        values[name] = value

    if missing:
        missing_list = ", ".join(sorted(missing))
        raise MissingConfigurationError(f"Missing required environment variables: {missing_list}")

    return values
