from relay_assistant.commands.callbacks import (
    CallbackAction,
    CallbackData,
    CallbackDecodeError,
)
from relay_assistant.commands.matcher import (
    COMMANDS,
    is_command,
    levenshtein,
    match_command,
    split_command,
)

__all__ = [
    "CallbackAction",
    "CallbackData",
    "CallbackDecodeError",
    "COMMANDS",
    "is_command",
    "levenshtein",
    "match_command",
    "split_command",
]
