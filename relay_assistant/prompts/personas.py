"""Named system prompts selectable with /persona."""

from types import MappingProxyType
from typing import Mapping, Optional, Tuple

PERSONAS: Mapping[str, str] = MappingProxyType({
    "default": "You are a helpful assistant.",
    "coder": (
        "You are an expert programmer. Provide code examples and explain "
        "technical concepts clearly."
    ),
    "translator": "You are a multilingual translator. Translate the given text accurately.",
    "summarizer": "You are an expert summarizer. Provide concise summaries of the given text.",
})


def persona_names() -> Tuple[str, ...]:
    return tuple(PERSONAS.keys())


def get_persona(name: str) -> Optional[str]:
    return PERSONAS.get(name.strip().lower())


def persona_for_prompt(system_prompt: str) -> Optional[str]:
    """Reverse lookup, used to show which persona is active."""
    for name, prompt in PERSONAS.items():
        if prompt == system_prompt:
            return name
    return None
