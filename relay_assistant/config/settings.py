from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Optional

from relayframe.endpoints import OPENROUTER_API_BASE

_TRUE = {"1", "true", "yes"}
_FALSE = {"0", "false", "no"}

DEFAULT_MODEL = "openai/gpt-3.5-turbo"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_LANGUAGE = "en"
SUPPORTED_LANGUAGES = ("en", "id")


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    val = env.get(name)
    if val is None:
        return default
    lowered = val.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    return default


def _env_str(env: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    val = env.get(name)
    if val is None or not val.strip():
        return default
    return val.strip()


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    val = env.get(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError:
        return default


def parse_allowed_user_ids(raw: Optional[str]) -> FrozenSet[str]:
    """Comma-separated ids; empty or unset means everyone is allowed."""
    if not raw:
        return frozenset()
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: str = ""
    telegram_api_base: str = "https://api.telegram.org"
    webhook_secret: Optional[str] = None
    allowed_user_ids: FrozenSet[str] = field(default_factory=frozenset)

    default_language: str = DEFAULT_LANGUAGE
    default_model: str = DEFAULT_MODEL
    default_system_prompt: str = DEFAULT_SYSTEM_PROMPT

    openrouter_api_base: str = OPENROUTER_API_BASE
    app_referer: Optional[str] = None
    app_title: Optional[str] = "Telegram OpenRouter Bot"

    google_api_key: Optional[str] = None
    google_cx: Optional[str] = None
    bing_api_key: Optional[str] = None

    kv_backend: str = "memory"  # memory | sqlite | redis
    sqlite_path: str = "./data/relay_assistant.db"
    redis_url: str = "redis://localhost:6379"

    log_level: str = "INFO"
    log_json: bool = False

    host: str = "0.0.0.0"
    port: int = 8080

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        language = (_env_str(env, "DEFAULT_LANGUAGE", DEFAULT_LANGUAGE) or DEFAULT_LANGUAGE).lower()
        if language not in SUPPORTED_LANGUAGES:
            language = DEFAULT_LANGUAGE
        return cls(
            telegram_bot_token=_env_str(env, "TELEGRAM_BOT_TOKEN", "") or "",
            telegram_api_base=_env_str(env, "TELEGRAM_API_BASE", cls.telegram_api_base),
            webhook_secret=_env_str(env, "TELEGRAM_WEBHOOK_SECRET"),
            allowed_user_ids=parse_allowed_user_ids(env.get("ALLOWED_USER_IDS")),
            default_language=language,
            default_model=_env_str(env, "DEFAULT_MODEL", DEFAULT_MODEL),
            default_system_prompt=_env_str(env, "DEFAULT_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),
            openrouter_api_base=_env_str(env, "OPENROUTER_API_BASE", OPENROUTER_API_BASE),
            app_referer=_env_str(env, "RELAY_APP_REFERER"),
            app_title=_env_str(env, "RELAY_APP_TITLE", cls.app_title),
            google_api_key=_env_str(env, "GOOGLE_API_KEY"),
            google_cx=_env_str(env, "GOOGLE_CX"),
            bing_api_key=_env_str(env, "BING_API_KEY"),
            kv_backend=(_env_str(env, "RELAY_KV_BACKEND", "memory") or "memory").lower(),
            sqlite_path=_env_str(env, "RELAY_SQLITE_PATH", cls.sqlite_path),
            redis_url=_env_str(env, "REDIS_URL", cls.redis_url),
            log_level=_env_str(env, "RELAY_LOG_LEVEL", "INFO"),
            log_json=_env_bool(env, "RELAY_LOG_JSON", False),
            host=_env_str(env, "RELAY_HOST", cls.host),
            port=_env_int(env, "RELAY_PORT", cls.port),
        )

    def is_user_allowed(self, user_id: object) -> bool:
        if not self.allowed_user_ids:
            return True
        return str(user_id) in self.allowed_user_ids
