"""Environment-driven application settings."""

import os
from dataclasses import dataclass

DEFAULT_ODDS_API_BASE_URL = "https://api.the-odds-api.com/v4"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


@dataclass
class Settings:
    """Process-wide settings.

    Attributes:
        request_timeout: Deadline in seconds for a whole chat request
        tool_timeout: Deadline in seconds for a single tool invocation
        owner_id: Owner key used for persisted exchanges
    """

    anthropic_api_key: str | None = None
    anthropic_model: str = "claude-sonnet-4-20250514"

    odds_api_key: str | None = None
    odds_api_base_url: str = DEFAULT_ODDS_API_BASE_URL
    default_sport: str = "soccer_epl"
    default_region: str = "us"

    request_timeout: float = 55.0
    tool_timeout: float = 10.0

    supabase_url: str | None = None
    supabase_key: str | None = None
    supabase_table: str = "chat_history"
    owner_id: str = "guest"

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        return cls(
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            anthropic_model=os.getenv("ANTHROPIC_MODEL", cls.anthropic_model),
            odds_api_key=os.getenv("ODDS_API_KEY"),
            odds_api_base_url=os.getenv("ODDS_API_BASE_URL", DEFAULT_ODDS_API_BASE_URL),
            default_sport=os.getenv("DEFAULT_SPORT", cls.default_sport),
            default_region=os.getenv("DEFAULT_REGION", cls.default_region),
            request_timeout=_env_float("REQUEST_TIMEOUT_SECONDS", cls.request_timeout),
            tool_timeout=_env_float("TOOL_TIMEOUT_SECONDS", cls.tool_timeout),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_KEY"),
            supabase_table=os.getenv("SUPABASE_TABLE", cls.supabase_table),
            owner_id=os.getenv("CHAT_OWNER_ID", cls.owner_id),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )

    @property
    def uses_supabase(self) -> bool:
        """Whether a durable Supabase store is configured."""
        return bool(self.supabase_url and self.supabase_key)
