"""Capability-local serialization utilities for JSON stored in the key-value store."""

import json
from typing import Any, Dict, Optional, Union


def to_json(data: Any) -> str:
    """Convert Python object to a JSON string, keeping non-ASCII text readable."""
    return json.dumps(data, ensure_ascii=False)


def from_json(json_str: Optional[Union[str, bytes, Dict, list]]) -> Any:
    """Convert JSON string to Python object, passing through dicts/lists."""
    if json_str is None:
        return None
    if isinstance(json_str, (dict, list)):
        return json_str
    if isinstance(json_str, bytes):
        json_str = json_str.decode("utf-8")
    return json.loads(json_str)
