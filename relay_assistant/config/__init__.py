from relay_assistant.config.settings import (
    Settings,
    SUPPORTED_LANGUAGES,
    DEFAULT_MODEL,
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_LANGUAGE,
    parse_allowed_user_ids,
)

__all__ = [
    "Settings",
    "SUPPORTED_LANGUAGES",
    "DEFAULT_MODEL",
    "DEFAULT_SYSTEM_PROMPT",
    "DEFAULT_LANGUAGE",
    "parse_allowed_user_ids",
]
