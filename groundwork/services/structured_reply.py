"""Decoder for JSON payloads embedded in free-text model replies.

Priority order: a fenced markdown block first, then a scan from the first
``{`` or ``[`` to the matching last closing bracket. Anything else is a
decode failure.
"""
from __future__ import annotations

import json
import re
from typing import Any

from groundwork.errors import StructuredReplyError

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)\s*```")
_CLOSERS = {"{": "}", "[": "]"}


def extract_json_text(text: str) -> str:
    if not isinstance(text, str) or not text.strip():
        raise StructuredReplyError("empty model reply")

    fenced = _FENCE_RE.search(text)
    if fenced and fenced.group(1).strip():
        return fenced.group(1).strip()

    starts = [idx for idx in (text.find("{"), text.find("[")) if idx != -1]
    if starts:
        start = min(starts)
        end = text.rfind(_CLOSERS[text[start]])
        if end > start:
            return text[start : end + 1]

    raise StructuredReplyError(f"no JSON structure found in reply: {text[:150]!r}")


def decode_structured_reply(text: str) -> Any:
    payload = extract_json_text(text)
    try:
        return json.loads(payload)
    except json.JSONDecodeError as exc:
        raise StructuredReplyError(f"invalid JSON in model reply: {exc}") from exc
