"""Fuzzy command matching.

A command token is the first whitespace-delimited word of a message that
starts with ``/``. Exact matches win; otherwise the closest known command by
Levenshtein distance is accepted when the distance is at most
``FUZZY_MAX_DISTANCE``. Ties go to the command listed first in COMMANDS.
"""

from typing import Optional, Sequence, Tuple

from relay_assistant.config.thresholds import FUZZY_MAX_DISTANCE

COMMAND_MARKER = "/"

# Iteration order is the tie-break order
COMMANDS: Tuple[str, ...] = (
    "start",
    "help",
    "ask",
    "search",
    "setkey",
    "key",
    "models",
    "setmodel",
    "setsystemprompt",
    "persona",
    "setlang",
    "togglesearch",
    "clear",
    "settings",
    "resetsettings",
)


def levenshtein(a: str, b: str) -> int:
    """Case-insensitive edit distance (insert, delete, substitute all cost 1)."""
    a = a.lower()
    b = b.lower()
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current[j] = min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            )
        previous = current
    return previous[-1]


def is_command(text: str) -> bool:
    return text.startswith(COMMAND_MARKER)


def split_command(text: str) -> Tuple[str, str]:
    """Return (token, argument string) for command-shaped text.

    The token is lower-cased with the marker and any ``@botname`` suffix
    removed; the arguments keep their original spacing minus outer blanks.
    """
    if not is_command(text):
        return "", text.strip()
    body = text[len(COMMAND_MARKER):]
    if not body or body[0].isspace():
        return "", body.strip()
    parts = body.split(None, 1)
    rest = parts[1] if len(parts) > 1 else ""
    token = parts[0].split("@", 1)[0].lower()
    return token, rest.strip()


def match_command(text: str, commands: Sequence[str] = COMMANDS) -> Optional[str]:
    """Map raw text to a canonical command name, or None."""
    if not is_command(text):
        return None
    token, _ = split_command(text)
    if not token:
        return None
    if token in commands:
        return token

    best: Optional[str] = None
    best_distance: Optional[int] = None
    for command in commands:
        distance = levenshtein(token, command)
        if best_distance is None or distance < best_distance:
            best, best_distance = command, distance

    if best_distance is not None and best_distance <= FUZZY_MAX_DISTANCE:
        return best
    return None
