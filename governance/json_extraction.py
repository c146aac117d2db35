"""Locate JSON values embedded in free-form model output.

Uses a balanced-bracket scan that tracks nesting depth and string-literal
state, so braces inside quoted strings or nested objects never cut an island
short. A fenced ```json block is preferred when it holds a JSON value.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple

OPENERS = {"{": "}", "[": "]"}
CLOSERS = set(OPENERS.values())

FENCE_PATTERN = re.compile(r"```[ \t]*(?:json|JSON)?[ \t]*\n?([\s\S]*?)```")


@dataclass(frozen=True)
class JsonIsland:
    """A JSON candidate found in a text.

    ``start``/``end`` cover the whole fenced block when ``fenced`` is set,
    otherwise just the brackets.
    """
    raw: str
    start: int
    end: int
    fenced: bool
    value: Any = None
    error: Optional[str] = None

    @property
    def parsed(self) -> bool:
        return self.error is None


def balanced_end(text: str, start: int) -> Optional[int]:
    """Return the index just past the bracket that closes ``text[start]``.

    Returns None when the brackets never balance or are mismatched.
    """
    stack: List[str] = []
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
        elif ch in OPENERS:
            stack.append(OPENERS[ch])
        elif ch in CLOSERS:
            if not stack or ch != stack[-1]:
                return None
            stack.pop()
            if not stack:
                return i + 1
    return None


def iter_balanced_spans(text: str) -> Iterator[Tuple[int, int]]:
    """Yield top-level balanced bracket spans, left to right.

    Single pass with a stack of open brackets. An opener that never closes,
    or closes with the wrong bracket, is dropped and the balanced spans found
    directly inside it are yielded in its place.
    """
    # (opener index, expected closer, balanced child spans)
    stack: List[Tuple[int, str, List[Tuple[int, int]]]] = []
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
            in_string = bool(stack)
        elif ch in OPENERS:
            stack.append((i, OPENERS[ch], []))
        elif ch in CLOSERS and stack:
            start, expected, _ = stack[-1]
            if ch != expected:
                yield from _orphaned_spans(stack)
                stack = []
                continue
            stack.pop()
            if stack:
                stack[-1][2].append((start, i + 1))
            else:
                yield start, i + 1

    yield from _orphaned_spans(stack)


def _orphaned_spans(stack: List[Tuple[int, str, List[Tuple[int, int]]]]) -> Iterator[Tuple[int, int]]:
    for _, _, children in stack:
        yield from children


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _parse(raw: str) -> Tuple[Any, Optional[str]]:
    try:
        return json.loads(raw, parse_constant=_reject_constant), None
    except (ValueError, RecursionError) as e:
        return None, str(e) or type(e).__name__


def _fenced_candidates(text: str) -> Iterator[JsonIsland]:
    for fence in FENCE_PATTERN.finditer(text):
        body = fence.group(1)
        stripped = body.strip()
        if not stripped or stripped[0] not in OPENERS:
            continue
        offset = body.index(stripped[0])
        end = balanced_end(body, offset)
        raw = body[offset:end] if end is not None else stripped
        value, error = _parse(raw)
        yield JsonIsland(raw=raw, start=fence.start(), end=fence.end(), fenced=True, value=value, error=error)


def _bare_candidates(text: str) -> Iterator[JsonIsland]:
    for start, end in iter_balanced_spans(text):
        raw = text[start:end]
        value, error = _parse(raw)
        yield JsonIsland(raw=raw, start=start, end=end, fenced=False, value=value, error=error)


def find_json_island(text: str) -> Optional[JsonIsland]:
    """Find the JSON value a response is carrying.

    The first candidate that parses wins (fenced blocks before bare ones).
    When nothing parses, the first candidate is returned with its parse error
    so callers can report it.

    Args:
        text: Free-form model output

    Returns:
        JsonIsland, or None if the text holds no bracketed value at all
    """
    first_failed: Optional[JsonIsland] = None
    for candidates in (_fenced_candidates(text), _bare_candidates(text)):
        for island in candidates:
            if island.parsed:
                return island
            if first_failed is None:
                first_failed = island
    return first_failed


def replace_island(text: str, island: JsonIsland, replacement: str) -> str:
    """Substitute ``replacement`` for the island's span."""
    return text[:island.start] + replacement + text[island.end:]


def fenced_json(value: Any) -> str:
    """Render a value as a pretty-printed ```json block."""
    return "```json\n" + json.dumps(value, indent=2, ensure_ascii=False, allow_nan=False) + "\n```"


def strip_json(text: str) -> str:
    """Remove code fences and JSON-looking islands, keeping the prose."""
    text = FENCE_PATTERN.sub("", text)
    parts = []
    cursor = 0
    for start, end in iter_balanced_spans(text):
        raw = text[start:end]
        if raw.startswith("{") or _parse(raw)[1] is None:
            parts.append(text[cursor:start])
            cursor = end
    parts.append(text[cursor:])
    return "".join(parts)
