"""Repair of near-valid JSON returned by a generative model.

``repair_json`` is a pure function driven by ``FAILURE_MODES``, an ordered
table of known failure modes. Each mode is a text-to-text fix. Fixes are
applied cumulatively and the text is re-parsed after each one, so a response
that needs only fence stripping is never touched by the truncation fix.

Truncation semantics: when the text stops mid-structure, the incomplete
element of the outermost open array is dropped whole, even when the cut
fell inside one of its own nested lists, so only fully formed preceding
elements are kept. All open containers are then closed. When no array is open,
an unterminated value string is closed in place and any dangling key is
dropped.
"""

import json
import re
from typing import Any, Callable, List, NamedTuple, Optional, Tuple

_FENCE_RE = re.compile(r"```[a-zA-Z]*\s*")
_WHITESPACE = " \t\r\n"


class FailureMode(NamedTuple):
    name: str
    description: str
    fix: Callable[[str], str]


class _Frame:
    __slots__ = ("char", "open_idx", "last_complete_end", "expect_key")

    def __init__(self, char: str, open_idx: int):
        self.char = char
        self.open_idx = open_idx
        self.last_complete_end: Optional[int] = None
        self.expect_key = char == "{"


class _Scan(NamedTuple):
    stack: List[_Frame]
    in_string: bool
    string_is_key: bool
    in_literal: bool
    end: Optional[int]


def _scan(text: str) -> _Scan:
    """Walk ``text`` tracking open containers and complete-value boundaries.

    Stops at the end of the first complete top-level container.
    """
    stack: List[_Frame] = []
    in_string = False
    string_is_key = False
    escape = False
    in_literal = False

    def complete(pos: int) -> None:
        if stack:
            stack[-1].last_complete_end = pos

    for i, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
                if not string_is_key:
                    complete(i + 1)
            continue

        if in_literal and (ch in ",]}" or ch in _WHITESPACE):
            in_literal = False
            complete(i)

        if ch == '"':
            in_string = True
            string_is_key = bool(stack) and stack[-1].char == "{" and stack[-1].expect_key
            continue
        if ch in "{[":
            stack.append(_Frame(ch, i))
            continue
        if ch in "}]":
            if stack:
                stack.pop()
            if not stack:
                return _Scan(stack, False, False, False, i + 1)
            complete(i + 1)
            continue
        if ch == ":":
            if stack and stack[-1].char == "{":
                stack[-1].expect_key = False
            continue
        if ch == ",":
            if stack and stack[-1].char == "{":
                stack[-1].expect_key = True
            continue
        if ch in _WHITESPACE:
            continue
        in_literal = True

    return _Scan(stack, in_string, string_is_key, in_literal, None)


def _closers(frames: List[_Frame]) -> str:
    return "".join("}" if f.char == "{" else "]" for f in reversed(frames))


# ============================================================================
# Failure-mode fixes
# ============================================================================


def _strip_markdown_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).replace("```", "").strip()


def _extract_json_body(text: str) -> str:
    """Drop prose before the first container and after its matching close."""
    starts = [i for i in (text.find("{"), text.find("[")) if i >= 0]
    if not starts:
        return text.strip()
    body = text[min(starts):]
    end = _scan(body).end
    if end is not None:
        body = body[:end]
    return body.strip()


def _remove_trailing_commas(text: str) -> str:
    drop = set()
    in_string = False
    escape = False
    for i, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == ",":
            j = i + 1
            while j < len(text) and text[j] in _WHITESPACE:
                j += 1
            if j == len(text) or text[j] in "}]":
                drop.add(i)
    if not drop:
        return text
    return "".join(ch for i, ch in enumerate(text) if i not in drop)


def _close_truncated_structure(text: str) -> str:
    scan = _scan(text)
    if not scan.stack:
        return text

    stack = scan.stack
    array_depths = [k for k, frame in enumerate(stack) if frame.char == "["]

    if array_depths:
        depth = array_depths[0]
        frame = stack[depth]
        cut = frame.last_complete_end if frame.last_complete_end is not None else frame.open_idx + 1
        return text[:cut].rstrip(_WHITESPACE + ",") + _closers(stack[: depth + 1])

    if scan.in_string and not scan.string_is_key:
        return text + '"' + _closers(stack)

    frame = stack[-1]
    cut = frame.last_complete_end if frame.last_complete_end is not None else frame.open_idx + 1
    return text[:cut].rstrip(_WHITESPACE + ",") + _closers(stack)


FAILURE_MODES: Tuple[FailureMode, ...] = (
    FailureMode("markdown_fence", "JSON wrapped in ``` code fences", _strip_markdown_fences),
    FailureMode("surrounding_prose", "Commentary before or after the JSON body", _extract_json_body),
    FailureMode("trailing_comma", "Comma before a closing bracket or brace", _remove_trailing_commas),
    FailureMode(
        "truncated_tail",
        "Output stopped mid-structure: drop the incomplete element, close open strings and containers",
        _close_truncated_structure,
    ),
)

STRUCTURAL_REPAIRS = frozenset({"trailing_comma", "truncated_tail"})


def _parses(text: str) -> bool:
    try:
        json.loads(text, strict=False)
    except ValueError:
        return False
    return True


def repair_json_with_report(text: str) -> Tuple[str, List[str]]:
    """Repair ``text`` and report which failure modes were fixed.

    Args:
        text: Raw model output expected to contain one JSON object or array

    Returns:
        Tuple of (repaired text, names of the failure modes that changed it)
    """
    current = text or ""
    applied: List[str] = []
    if _parses(current):
        return current, applied
    for mode in FAILURE_MODES:
        fixed = mode.fix(current)
        if fixed != current:
            applied.append(mode.name)
            current = fixed
        if _parses(current):
            break
    return current, applied


def repair_json(text: str) -> str:
    """Return ``text`` with every known failure mode repaired."""
    return repair_json_with_report(text)[0]


def parse_json_lenient(text: str) -> Tuple[Any, List[str]]:
    """Strict parse, falling back to a repair pass and a re-parse.

    Returns:
        Tuple of (parsed value, names of the repairs applied)

    Raises:
        json.JSONDecodeError: If the text is still invalid after repair
    """
    try:
        return json.loads(text), []
    except (TypeError, ValueError):
        pass
    repaired, applied = repair_json_with_report(text)
    return json.loads(repaired, strict=False), applied
