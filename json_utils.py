"""
Optimized JSON utilities using orjson for the suggestion engine
===============================================================

Provides a json-compatible interface backed by orjson, plus helpers for
pulling the JSON payload out of free-form model replies.
"""

import re
from typing import Any, List, Optional

import orjson


_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*\n?|\n?```\s*$")
_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")


def dumps(obj: Any, indent: Optional[int] = None, default: callable = None) -> str:
    """
    Serialize obj to a JSON string using orjson.

    Args:
        obj: Object to serialize
        indent: Any non-None value enables 2-space pretty printing
        default: Callable for objects orjson cannot serialize (e.g. default=str)

    Returns:
        JSON string (orjson returns bytes, decoded here for compatibility)
    """
    option = orjson.OPT_SERIALIZE_UUID | orjson.OPT_NON_STR_KEYS
    if indent is not None:
        option |= orjson.OPT_INDENT_2
    return orjson.dumps(obj, default=default, option=option).decode("utf-8")


def loads(s: Any) -> Any:
    """Deserialize a JSON string or bytes."""
    return orjson.loads(s)


def extract_json_array(reply: str) -> List[Any]:
    """
    Extract the first JSON array embedded in a model reply.

    Model replies often wrap the array in prose or markdown fences. The
    greedy match spans from the first '[' to the last ']', mirroring how the
    analyzer prompt asks for a single array.

    Returns:
        The parsed list, or an empty list when nothing parseable is found
    """
    if not reply:
        return []

    cleaned = _FENCE_PATTERN.sub("", reply.strip())
    match = _ARRAY_PATTERN.search(cleaned)
    if not match:
        return []

    try:
        data = orjson.loads(match.group(0))
    except orjson.JSONDecodeError:
        return []

    return data if isinstance(data, list) else []


JSONDecodeError = orjson.JSONDecodeError
