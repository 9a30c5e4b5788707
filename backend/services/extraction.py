"""Pull a JSON object out of a `<global>.<name> = {...};` assignment in HTML.

The object is scanned with a brace counter that skips over string literals,
so braces and semicolons inside string values do not end the match early.
"""

import json
import re
from typing import Any

from errors import ExtractionError, ParseError

DEFAULT_VARIABLE = "window.SIKUMBANG_DATA"


def _find_object_end(text: str, start: int) -> int | None:
    """Return the index just past the object opening at text[start], or None."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def find_embedded_json(html: str, variable: str = DEFAULT_VARIABLE) -> str:
    """Return the raw object text assigned to `variable`."""
    pattern = re.compile(re.escape(variable) + r"\s*=\s*(?=\{)")
    match = pattern.search(html)
    if not match:
        raise ExtractionError(details=f"{variable} tidak ditemukan")

    start = match.end()
    end = _find_object_end(html, start)
    if end is None:
        raise ExtractionError(details=f"{variable} is not a complete object")
    return html[start:end]


def extract_embedded_json(html: str, variable: str = DEFAULT_VARIABLE) -> Any:
    raw = find_embedded_json(html, variable)
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f"Malformed {variable} JSON: {e}") from e
