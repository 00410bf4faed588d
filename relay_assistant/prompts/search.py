"""Prompt templates that wrap web search results and follow-up questions."""

import re
from typing import Iterable, List, Optional

from relayframe.types import SearchResult


def search_summary_prompt(query: str, results: Iterable[SearchResult]) -> str:
    """Ask the model to answer ``query`` grounded on numbered results."""
    lines: List[str] = []
    for index, result in enumerate(results, start=1):
        lines.append(f"[{index}] {result.title}\n{result.snippet}\nSource: {result.link}")
    sources = "\n\n".join(lines)
    return (
        "Answer the question using the web search results below. "
        "Cite sources as [n] and say so if the results do not contain the answer.\n\n"
        f"Search results:\n{sources}\n\n"
        f"Question: {query}"
    )


# English and Indonesian words that usually point back at an earlier topic
FOLLOWUP_CUES = frozenset({
    # en
    "it", "its", "that", "this", "those", "these", "they", "them",
    "more", "further", "explain", "elaborate", "why", "how", "details",
    # id
    "itu", "ini", "tersebut", "lagi", "lebih", "jelaskan", "kenapa",
    "mengapa", "bagaimana", "detail", "tadi",
})

_WORD = re.compile(r"\w+", re.UNICODE)


def has_followup_cue(text: str) -> bool:
    return any(word in FOLLOWUP_CUES for word in _WORD.findall(text.lower()))


def followup_prompt(
    text: str,
    last_query: Optional[str],
    last_timestamp: Optional[float],
    now: float,
    window: float,
) -> str:
    """Prefix ``text`` with the last search topic when it reads like a follow-up.

    Best effort only: requires a cue word and a search inside ``window``
    seconds. Anything else returns ``text`` unchanged.
    """
    if not last_query or last_timestamp is None:
        return text
    if now - last_timestamp > window or now < last_timestamp:
        return text
    if not has_followup_cue(text):
        return text
    return f'Regarding my earlier search about "{last_query}": {text}'
