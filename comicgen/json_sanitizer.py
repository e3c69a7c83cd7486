"""Sanitization and lenient parsing for AI responses.

Model output is fed back into later prompts (the enriched story becomes the
input of the script request, the script becomes image prompts), so every
string taken from a response is cleaned once at the gateway boundary.

Usage:
    from comicgen.json_sanitizer import parse_json_payload, sanitize_text

    data = parse_json_payload(raw_response)   # sanitized dict/list
    story = sanitize_text(response_text)
"""

import json
import re
import unicodedata
from typing import Any, List, Optional

from .errors import ResponseShapeError

# Null bytes in any form: literal \x00 or JSON-escaped \u0000
_NULL_BYTE_PATTERN = re.compile(r"\x00")
_JSON_NULL_ESCAPE_PATTERN = re.compile(r"\\u0000")

# \u followed by fewer than 4 hex digits
_MALFORMED_UNICODE_ESCAPE = re.compile(r"\\u(?:[0-9a-fA-F]{0,3}(?=[^0-9a-fA-F]|$))")

_INVISIBLE_CHARS = re.compile(
    r"[\u200b\u200c\u200d\u200e\u200f"  # zero-width spaces/joiners/marks
    r"\u202a-\u202e"  # bidi control
    r"\ufeff"  # BOM
    r"\ufffc"  # object replacement character
    r"\ufffe\uffff"  # noncharacters
    r"]"
)

# ```json ... ``` fences some models wrap around JSON answers
_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def sanitize_text(text: str) -> str:
    """Remove null bytes, invisible and control characters, normalize to NFC.

    Idempotent: already-clean text is returned unchanged.
    """
    if not text:
        return text

    text = _NULL_BYTE_PATTERN.sub("", text)
    text = _INVISIBLE_CHARS.sub("", text)
    text = "".join(
        ch for ch in text
        if ch in ("\t", "\n", "\r") or unicodedata.category(ch) != "Cc"
    )
    return unicodedata.normalize("NFC", text)


def sanitize_json_string(raw: str) -> str:
    """Clean a raw JSON string before ``json.loads``."""
    if not raw:
        return raw

    raw = _CODE_FENCE.sub("", raw.strip())
    raw = _JSON_NULL_ESCAPE_PATTERN.sub("", raw)
    raw = _NULL_BYTE_PATTERN.sub("", raw)
    raw = raw.replace("\ufffc", "")
    return _MALFORMED_UNICODE_ESCAPE.sub("", raw)


def sanitize_parsed_response(data: Any) -> Any:
    """Apply ``sanitize_text`` to every string in a parsed JSON structure."""
    if isinstance(data, str):
        return sanitize_text(data)
    elif isinstance(data, dict):
        return {k: sanitize_parsed_response(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [sanitize_parsed_response(item) for item in data]
    else:
        return data


def extract_json(text: str) -> Optional[str]:
    """Return the outermost JSON object or array embedded in ``text``, if any."""
    candidates = []
    for opener, closer in (("{", "}"), ("[", "]")):
        first = text.find(opener)
        last = text.rfind(closer)
        if first >= 0 and last > first:
            candidates.append((first, text[first:last + 1]))

    # Whichever structure starts first is the outermost one.
    for _, candidate in sorted(candidates):
        try:
            json.loads(candidate)
            return candidate
        except json.JSONDecodeError:
            continue
    return None


def parse_json_payload(raw: str) -> Any:
    """Parse a model's JSON answer, tolerating fences and surrounding prose.

    Raises:
        ResponseShapeError: If no JSON value can be recovered.
    """
    cleaned = sanitize_json_string(raw or "")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        extracted = extract_json(cleaned)
        if extracted is None:
            raise ResponseShapeError("The AI response was not valid JSON.")
        data = json.loads(extracted)
    return sanitize_parsed_response(data)


def find_encoding_warnings(data: Any, path: str = "") -> List[str]:
    """List strings that still look corrupted after sanitization."""
    warnings: List[str] = []
    if isinstance(data, str):
        if "\x00" in data or "\ufffc" in data:
            warnings.append(f"{path}: contains invalid characters")
        if re.search(r"(.)\1{20,}", data):
            warnings.append(f"{path}: contains suspiciously repeated characters")
    elif isinstance(data, dict):
        for k, v in data.items():
            warnings.extend(find_encoding_warnings(v, f"{path}.{k}" if path else k))
    elif isinstance(data, list):
        for i, item in enumerate(data):
            warnings.extend(find_encoding_warnings(item, f"{path}[{i}]"))
    return warnings


def safe_json_dumps(data: Any, **kwargs: Any) -> str:
    """Serialize to JSON keeping non-ASCII characters literal."""
    kwargs.setdefault("ensure_ascii", False)
    return json.dumps(data, **kwargs)
