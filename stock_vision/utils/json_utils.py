from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON|markdown|md)?\s*([\s\S]*?)```")
_WRAPPING_FENCE_RE = re.compile(r"^```(?:markdown|md)?[ \t]*\n?([\s\S]*?)\n?```$")
_THINK_RE = re.compile(r"<think>[\s\S]*?</think>", re.IGNORECASE)
_STRING_LITERAL_RE = re.compile(r'"([^"\\]*(?:\\.[^"\\]*)*)"')
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")


class ResponseParseError(ValueError):
    """The provider answered, but not with the structure that was asked for."""


def strip_reasoning_tags(text: str) -> str:
    """Drop <think>...</think> blocks emitted by reasoning models."""
    if not text:
        return ""
    return _THINK_RE.sub("", text).strip()


def strip_code_fence(text: str) -> str:
    """Return the body of the first fenced block, or the stripped text if there is none."""
    if not text:
        return ""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def unwrap_code_fence(text: str) -> str:
    """Remove a fence wrapping the whole answer; fenced blocks inside the text are kept."""
    if not text:
        return ""
    stripped = text.strip()
    match = _WRAPPING_FENCE_RE.match(stripped)
    if match and "```" not in match.group(1):
        return match.group(1).strip()
    return stripped


def sanitize_json_string(text: str) -> str:
    """Escape raw newlines/tabs and drop other control characters inside string literals."""

    def _clean(match: re.Match) -> str:
        content = (
            match.group(1)
            .replace("\n", "\\n")
            .replace("\r", "\\r")
            .replace("\t", "\\t")
        )
        return '"' + _CONTROL_CHARS_RE.sub("", content) + '"'

    return _STRING_LITERAL_RE.sub(_clean, text)


def _object_end(text: str, start: int) -> int:
    """Index of the brace closing the object opened at `start`, or -1.

    Braces inside string literals do not count.
    """
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
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Return the first complete JSON object embedded in `text`.

    The whole text is tried first; otherwise each `{` is taken as a candidate
    start and matched to its closing brace.
    """
    if not text:
        return None
    try:
        obj = json.loads(text)
        if isinstance(obj, dict):
            return obj
    except ValueError:
        pass

    start = text.find("{")
    while start != -1:
        end = _object_end(text, start)
        if end != -1:
            try:
                obj = json.loads(text[start:end + 1])
            except ValueError:
                obj = None
            if isinstance(obj, dict):
                return obj
        start = text.find("{", start + 1)
    return None


def parse_json_response(text: str, context: str = "") -> dict[str, Any]:
    """Parse a JSON object out of a free-text LLM answer.

    Tries the (fence-stripped) text as-is, then once more after sanitizing
    string literals.

    Raises:
        ResponseParseError: neither attempt produced a JSON object
    """
    label = f"[{context}] " if context else ""
    candidate = strip_code_fence(strip_reasoning_tags(text or ""))

    try:
        obj = json.loads(candidate)
        if isinstance(obj, dict):
            return obj
    except ValueError:
        pass

    logger.info(f"{label}First JSON parse failed, sanitizing...")
    obj = extract_json_object(sanitize_json_string(candidate))
    if obj is None:
        logger.error(f"{label}Failed to parse JSON from response ({len(text or '')} chars)")
        raise ResponseParseError(f"{label}response is not a JSON object")
    return obj
