"""Turn raw provider text into a validated ``IdeaPayload``.

Model output is messy. We only:
- take the first fenced code block if there is one
- otherwise take the outermost {...} block around any prose
- json.loads as is, then retry after escaping raw newlines in strings,
  dropping trailing commas and finally normalizing smart quotes
then repair an ``outline`` that arrived as one string before validating.
"""
from __future__ import annotations

import json
import re
from typing import Any, Dict, List

from pydantic import ValidationError

from ideacal.specs.common.errors import MalformedResponseError
from ideacal.specs.models.domain import GenerationParams, IdeaPayload

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_BLANK_LINE_RE = re.compile(r"\n\s*\n")
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")


def strip_code_fences(s: str) -> str:
    s = (s or "").strip()
    m = _FENCE_RE.search(s)
    if m:
        return (m.group(1) or "").strip()
    return s


def extract_first_object(s: str) -> str:
    """Extract the outermost {...} block (best effort)."""
    s = (s or "").strip()
    i = s.find("{")
    if i < 0:
        return s
    j = s.rfind("}")
    if j <= i:
        return s[i:]
    return s[i : j + 1]


def normalize_smart_quotes(s: str) -> str:
    return (
        (s or "")
        .replace("\u201c", '"')
        .replace("\u201d", '"')
        .replace("\u2018", "'")
        .replace("\u2019", "'")
        .replace("\u00a0", " ")
    )


def remove_trailing_commas(s: str) -> str:
    return re.sub(r",\s*([}\]])", r"\1", s)


def escape_newlines_in_json_strings(s: str) -> str:
    """Escape bare newlines inside quoted strings."""
    if not s:
        return s

    out = []
    in_str = False
    quote = ""
    esc = False

    for ch in s:
        if in_str:
            if esc:
                out.append(ch)
                esc = False
                continue
            if ch == "\\":
                out.append(ch)
                esc = True
                continue
            if ch == quote:
                out.append(ch)
                in_str = False
                quote = ""
                continue
            if ch == "\n":
                out.append("\\n")
                continue
            if ch == "\r":
                out.append("\\r")
                continue
            out.append(ch)
        else:
            if ch in ('"', "'"):
                out.append(ch)
                in_str = True
                quote = ch
            else:
                out.append(ch)

    return "".join(out)


def _repair_candidates(cleaned: str) -> List[str]:
    # Least invasive first: smart quotes may be legitimate text inside a string.
    structural = remove_trailing_commas(escape_newlines_in_json_strings(cleaned))
    quoted = remove_trailing_commas(escape_newlines_in_json_strings(normalize_smart_quotes(cleaned)))
    return [cleaned, structural, quoted]


def extract_json_object(raw: str) -> Dict[str, Any]:
    if not (raw or "").strip():
        raise MalformedResponseError("Empty provider response")
    cleaned = extract_first_object(strip_code_fences(raw))
    last_error: json.JSONDecodeError | None = None
    for candidate in _repair_candidates(cleaned):
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as exc:
            last_error = exc
            continue
        if not isinstance(data, dict):
            raise MalformedResponseError("Provider response JSON is not an object")
        return data
    raise MalformedResponseError(f"No JSON object in provider response: {last_error}") from last_error


def split_outline(text: str) -> List[str]:
    """Split a single outline string on blank lines, dropping list markers."""
    parts = [_BULLET_RE.sub("", p).strip() for p in _BLANK_LINE_RE.split(text or "")]
    return [p for p in parts if p]


def coerce_outline(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return split_outline(value)
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return [item.strip() for item in value if item.strip()]
    raise MalformedResponseError("outline must be a list of strings", details={"type": type(value).__name__})


def parse_idea_payload(raw: str, params: GenerationParams) -> IdeaPayload:
    """Extract, repair and validate one idea.

    ``category``, ``subcategory`` and ``lengthBucket`` are echoed from ``params``
    when the model leaves them out.
    """
    data = extract_json_object(raw)

    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        raise MalformedResponseError("Missing title in provider response")
    data["title"] = title.strip()
    data["outline"] = coerce_outline(data.get("outline"))

    for field, fallback in (
        ("category", params.category),
        ("subcategory", params.subcategory),
    ):
        if not data.get(field):
            data[field] = fallback
    if not data.get("lengthBucket") and not data.get("videoLength"):
        data["lengthBucket"] = params.lengthBucket

    try:
        return IdeaPayload.model_validate(data)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"Invalid idea payload: {exc.error_count()} errors",
            details={"errors": [e.get("msg") for e in exc.errors()]},
        ) from exc
