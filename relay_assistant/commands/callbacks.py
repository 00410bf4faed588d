"""Inline-keyboard callback payloads.

Callback data is a tagged variant: an action plus a typed payload. The text
form ``<action>_<payload>`` exists only at the transport boundary; business
logic works with ``CallbackData`` instances.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from relay_assistant.config.settings import SUPPORTED_LANGUAGES
from relay_assistant.config.thresholds import MAX_CALLBACK_DATA_BYTES
from relay_assistant.prompts.personas import PERSONAS

SEPARATOR = "_"


class CallbackAction(str, Enum):
    SET_MODEL = "setmodel"
    MODEL_PAGE = "modelpage"
    SET_LANG = "setlang"
    SET_PERSONA = "setpersona"
    TOGGLE_SEARCH = "togglesearch"
    DELETE_KEY = "deletekey"
    CLEAR_HISTORY = "clearhistory"


_NO_PAYLOAD = {CallbackAction.DELETE_KEY, CallbackAction.CLEAR_HISTORY}

Payload = Union[str, int, bool, None]


class CallbackDecodeError(ValueError):
    pass


@dataclass(frozen=True)
class CallbackData:
    action: CallbackAction
    value: Payload = None

    # =========================================================================
    # CONSTRUCTORS
    # =========================================================================

    @classmethod
    def set_model(cls, model_id: str) -> "CallbackData":
        return cls(CallbackAction.SET_MODEL, model_id)

    @classmethod
    def model_page(cls, page: int) -> "CallbackData":
        return cls(CallbackAction.MODEL_PAGE, page)

    @classmethod
    def set_lang(cls, code: str) -> "CallbackData":
        return cls(CallbackAction.SET_LANG, code)

    @classmethod
    def set_persona(cls, name: str) -> "CallbackData":
        return cls(CallbackAction.SET_PERSONA, name)

    @classmethod
    def toggle_search(cls, enabled: bool) -> "CallbackData":
        return cls(CallbackAction.TOGGLE_SEARCH, enabled)

    @classmethod
    def delete_key(cls) -> "CallbackData":
        return cls(CallbackAction.DELETE_KEY)

    @classmethod
    def clear_history(cls) -> "CallbackData":
        return cls(CallbackAction.CLEAR_HISTORY)

    # =========================================================================
    # WIRE FORMAT
    # =========================================================================

    def encode(self) -> str:
        if self.action in _NO_PAYLOAD:
            payload = ""
        elif self.action == CallbackAction.TOGGLE_SEARCH:
            payload = "on" if self.value else "off"
        else:
            payload = str(self.value)
        encoded = f"{self.action.value}{SEPARATOR}{payload}"
        if len(encoded.encode("utf-8")) > MAX_CALLBACK_DATA_BYTES:
            raise ValueError(f"callback data exceeds {MAX_CALLBACK_DATA_BYTES} bytes: {encoded!r}")
        return encoded

    @classmethod
    def decode(cls, raw: Optional[str]) -> "CallbackData":
        if not raw or SEPARATOR not in raw:
            raise CallbackDecodeError(f"malformed callback data: {raw!r}")
        tag, payload = raw.split(SEPARATOR, 1)
        try:
            action = CallbackAction(tag)
        except ValueError:
            raise CallbackDecodeError(f"unknown callback action: {tag!r}") from None

        if action in _NO_PAYLOAD:
            return cls(action)
        if action == CallbackAction.MODEL_PAGE:
            if not payload.isdigit():
                raise CallbackDecodeError(f"invalid page: {payload!r}")
            return cls(action, int(payload))
        if action == CallbackAction.TOGGLE_SEARCH:
            if payload not in ("on", "off"):
                raise CallbackDecodeError(f"invalid toggle: {payload!r}")
            return cls(action, payload == "on")
        if action == CallbackAction.SET_LANG and payload not in SUPPORTED_LANGUAGES:
            raise CallbackDecodeError(f"unsupported language: {payload!r}")
        if action == CallbackAction.SET_PERSONA and payload not in PERSONAS:
            raise CallbackDecodeError(f"unknown persona: {payload!r}")
        if not payload:
            raise CallbackDecodeError(f"missing payload for {action.value}")
        return cls(action, payload)

    def fits(self) -> bool:
        """True when the encoded form is within the transport limit."""
        try:
            self.encode()
        except ValueError:
            return False
        return True
