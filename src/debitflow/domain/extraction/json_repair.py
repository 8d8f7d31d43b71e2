"""Recovery of a JSON object from a free-text model reply.

Replies are expected to hold one JSON object but regularly arrive wrapped in
Markdown fences, with raw control characters inside string values, with
stray backslashes (Windows paths, "N\\°"), surrounded by prose, or cut off
at the token limit. REPAIR_LADDER lists the recovery stages in order; each
stage works on a strictly broader class of damage than the previous one and
the first stage that yields an object wins.
"""

import json
import logging
import re
from typing import Any, Callable, List, Optional, Tuple

from .exceptions import UnparsableReply

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^\s*```[A-Za-z0-9_-]*[ \t]*\r?\n?")
_FENCE_CLOSE = re.compile(r"\r?\n?```\s*$")
# C0 and C1 controls, keeping the JSON whitespace characters
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_GREEDY_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

_VALID_ESCAPES = set('"\\/bfnrtu')
_STRING_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}

# Upper bound on cut points tried when closing a truncated reply
MAX_TRUNCATION_CANDIDATES = 200


def strip_code_fences(text: str) -> str:
    """Remove leading/trailing triple-backtick fences (optional language tag)."""
    text = text.strip()
    if text.startswith("```"):
        text = _FENCE_OPEN.sub("", text, count=1)
        text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def strip_control_characters(text: str) -> str:
    return _CONTROL_CHARS.sub("", text)


def escape_string_contents(text: str) -> str:
    """Escape raw newlines/tabs and invalid backslashes inside string values.

    Characters outside string literals are left untouched, so structural
    whitespace between tokens survives.
    """
    text = strip_control_characters(text)
    out: List[str] = []
    in_string = False
    i = 0
    while i < len(text):
        ch = text[i]
        if not in_string:
            if ch == '"':
                in_string = True
            out.append(ch)
        elif ch == "\\":
            nxt = text[i + 1] if i + 1 < len(text) else ""
            if nxt and nxt in _VALID_ESCAPES:
                out.append(ch + nxt)
                i += 1
            else:
                out.append("\\\\")
        elif ch == '"':
            in_string = False
            out.append(ch)
        else:
            out.append(_STRING_ESCAPES.get(ch, ch))
        i += 1
    return "".join(out)


def extract_greedy_object(text: str) -> str:
    """Largest {...} span, then string-content repair."""
    match = _GREEDY_OBJECT.search(text)
    if not match:
        return text
    return escape_string_contents(match.group(0))


def _truncation_candidates(text: str) -> List[str]:
    start = text.find("{")
    if start < 0:
        return []
    text = escape_string_contents(text[start:])

    stack: List[str] = []
    cut_points: List[Tuple[int, Tuple[str, ...]]] = []
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
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
            stack.append("}")
        elif ch == "[":
            stack.append("]")
        elif ch in "}]":
            if stack:
                stack.pop()
            if not stack:
                # Object closed; anything after it is trailing prose
                return [text[:i + 1]]
        elif ch == ",":
            cut_points.append((i, tuple(stack)))

    tail = text.rstrip()
    if in_string:
        tail += '"'
    candidates = [tail + "".join(reversed(stack))]
    for index, open_stack in reversed(cut_points[-MAX_TRUNCATION_CANDIDATES:]):
        candidates.append(text[:index] + "".join(reversed(open_stack)))
    return candidates


def close_truncated_object(text: str) -> str:
    """Close a reply cut off mid-object at the last complete value.

    Tries the text closed as-is first, then cuts back to each preceding
    top-level comma, returning the first candidate that parses.
    """
    candidates = _truncation_candidates(text)
    for candidate in candidates:
        try:
            json.loads(candidate)
            return candidate
        except json.JSONDecodeError:
            continue
    return candidates[0] if candidates else text


REPAIR_LADDER: List[Tuple[str, Callable[[str], str]]] = [
    ("strip_control_characters", strip_control_characters),
    ("escape_string_contents", escape_string_contents),
    ("greedy_object", extract_greedy_object),
    ("close_truncated", close_truncated_object),
]


def _as_object(parsed: Any) -> Optional[dict]:
    if isinstance(parsed, dict):
        return parsed
    if isinstance(parsed, list) and parsed and all(isinstance(item, dict) for item in parsed):
        # Bare item array
        return {"items": parsed}
    return None


def load_reply_json(text: str) -> Tuple[dict, str]:
    """Parse a model reply into a JSON object, repairing it if needed.

    Args:
        text: Raw reply text

    Returns:
        Tuple of (parsed object, name of the stage that succeeded).
        The stage is "direct" when no repair was necessary.

    Raises:
        UnparsableReply: No stage produced a JSON object
    """
    if not text or not text.strip():
        raise UnparsableReply(text or "", "empty reply")

    cleaned = strip_code_fences(text)

    try:
        parsed = _as_object(json.loads(cleaned))
        if parsed is not None:
            return parsed, "direct"
        original_error = "top-level value is not an object"
    except json.JSONDecodeError as e:
        original_error = str(e)

    for stage_name, repair in REPAIR_LADDER:
        candidate = repair(cleaned)
        try:
            parsed = _as_object(json.loads(candidate))
        except json.JSONDecodeError:
            continue
        if parsed is not None:
            logger.info(f"Model reply recovered by repair stage '{stage_name}'")
            return parsed, stage_name

    logger.warning(f"Model reply could not be repaired: {original_error}")
    raise UnparsableReply(text, original_error)
