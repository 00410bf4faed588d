"""Inline keyboard payloads.

Every button carries an encoded CallbackData; nothing here parses them.
"""

import math
from typing import Any, Dict, List, Sequence, Tuple

from relay_assistant.commands.callbacks import CallbackData
from relay_assistant.config.settings import SUPPORTED_LANGUAGES
from relay_assistant.config.thresholds import MODELS_PER_PAGE
from relay_assistant.i18n import LANGUAGE_NAMES, t
from relay_assistant.prompts.personas import persona_names

Keyboard = Dict[str, Any]


def _button(text: str, data: CallbackData) -> Dict[str, str]:
    return {"text": text, "callback_data": data.encode()}


def _keyboard(rows: List[List[Dict[str, str]]]) -> Keyboard:
    return {"inline_keyboard": rows}


def page_count(total: int, per_page: int = MODELS_PER_PAGE) -> int:
    return max(1, math.ceil(total / per_page))


def models_keyboard(
    model_ids: Sequence[str], page: int, lang: str, per_page: int = MODELS_PER_PAGE
) -> Tuple[Keyboard, int, int]:
    """One model per row plus prev/next navigation.

    Returns (keyboard, clamped page, page count). Model ids too long for
    callback data are left out.
    """
    usable = [m for m in model_ids if CallbackData.set_model(m).fits()]
    pages = page_count(len(usable), per_page)
    page = min(max(page, 0), pages - 1)
    start = page * per_page

    rows = [[_button(m, CallbackData.set_model(m))] for m in usable[start:start + per_page]]
    nav: List[Dict[str, str]] = []
    if page > 0:
        nav.append(_button(t(lang, "button_prev"), CallbackData.model_page(page - 1)))
    if page < pages - 1:
        nav.append(_button(t(lang, "button_next"), CallbackData.model_page(page + 1)))
    if nav:
        rows.append(nav)
    return _keyboard(rows), page, pages


def language_keyboard() -> Keyboard:
    return _keyboard([
        [_button(LANGUAGE_NAMES.get(code, code), CallbackData.set_lang(code))]
        for code in SUPPORTED_LANGUAGES
    ])


def persona_keyboard() -> Keyboard:
    names = persona_names()
    rows = [
        [_button(name.title(), CallbackData.set_persona(name)) for name in names[i:i + 2]]
        for i in range(0, len(names), 2)
    ]
    return _keyboard(rows)


def search_toggle_keyboard(enabled: bool, lang: str) -> Keyboard:
    if enabled:
        button = _button(t(lang, "button_off"), CallbackData.toggle_search(False))
    else:
        button = _button(t(lang, "button_on"), CallbackData.toggle_search(True))
    return _keyboard([[button]])


def key_management_keyboard(lang: str) -> Keyboard:
    return _keyboard([[_button(t(lang, "button_delete_key"), CallbackData.delete_key())]])


def settings_keyboard(lang: str) -> Keyboard:
    return _keyboard([[_button(t(lang, "button_clear_history"), CallbackData.clear_history())]])
