"""Pure text transformations for single migration steps.

Each function edits one line of one file's content. When the target text
can no longer be found (the source drifted since the plan was made) the
function returns None; callers turn that into a failed step.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

from north.core.models import (
    ExtractAction,
    LineDiff,
    MigrationStep,
    RemoveAction,
    ReplaceAction,
    TokenizeAction,
)

# How far before the reported column, and past the end of the target, the
# drift-tolerant search window reaches.
WINDOW_BEFORE = 5
WINDOW_AFTER = 50

DEFAULT_TOKEN_PREFIX = "bg"

_TOKEN_PREFIX_RE = re.compile(r"^(bg|text|border|ring|fill|stroke)-")
_BRACKET_RE = re.compile(r"\[([^\]]+)\]")


class SideEffectKind(enum.Enum):
    UTILITY = "utility"
    TOKEN = "token"


@dataclass(frozen=True)
class SideEffect:
    """A stylesheet declaration emitted alongside a source edit."""

    kind: SideEffectKind
    value: str


@dataclass(frozen=True)
class TransformResult:
    content: str
    diff: LineDiff
    side_effect: SideEffect | None = None


def _split_target(content: str, line: int, needle: str) -> tuple[list[str], str] | None:
    if not needle:
        return None
    lines = content.split("\n")
    if line < 1 or line > len(lines):
        return None
    target = lines[line - 1]
    if not target:
        return None
    return lines, target


def _splice(lines: list[str], line: int, start: int, end: int, text: str) -> str:
    target = lines[line - 1]
    lines[line - 1] = target[:start] + text + target[end:]
    return "\n".join(lines)


def apply_replace(
    content: str, line: int, column: int, from_: str, to: str
) -> TransformResult | None:
    """Swap ``from_`` for ``to``, preferring the occurrence near ``column``."""
    found = _split_target(content, line, from_)
    if found is None:
        return None
    lines, target = found

    window_start = max(0, column - WINDOW_BEFORE)
    window_end = min(len(target), column + len(from_) + WINDOW_AFTER)
    idx = target[window_start:window_end].find(from_)
    if idx != -1:
        idx += window_start
    else:
        idx = target.find(from_)
        if idx == -1:
            return None

    return TransformResult(
        content=_splice(lines, line, idx, idx + len(from_), to),
        diff=LineDiff(removed=len(from_), added=len(to)),
    )


def apply_extract(
    content: str, line: int, pattern: str, utility_name: str
) -> TransformResult | None:
    """Replace ``pattern`` with ``utility_name`` and emit the ``@utility`` block."""
    found = _split_target(content, line, pattern)
    if found is None:
        return None
    lines, target = found

    idx = target.find(pattern)
    if idx == -1:
        return None

    block = f"@utility {utility_name} {{\n  @apply {pattern};\n}}"
    return TransformResult(
        content=_splice(lines, line, idx, idx + len(pattern), utility_name),
        diff=LineDiff(removed=len(pattern), added=len(utility_name)),
        side_effect=SideEffect(SideEffectKind.UTILITY, block),
    )


def token_reference(value: str, token_name: str) -> str:
    """``bg-[#fff]`` + ``--color-fff`` -> ``bg-(--color-fff)``."""
    match = _TOKEN_PREFIX_RE.match(value)
    prefix = match.group(1) if match else DEFAULT_TOKEN_PREFIX
    return f"{prefix}-({token_name})"


def apply_tokenize(
    content: str, line: int, value: str, token_name: str
) -> TransformResult | None:
    """Replace ``value`` with a token reference and emit the token declaration."""
    found = _split_target(content, line, value)
    if found is None:
        return None
    lines, target = found

    idx = target.find(value)
    if idx == -1:
        return None

    ref = token_reference(value, token_name)
    bracket = _BRACKET_RE.search(value)
    literal = bracket.group(1) if bracket else value

    return TransformResult(
        content=_splice(lines, line, idx, idx + len(value), ref),
        diff=LineDiff(removed=len(value), added=len(ref)),
        side_effect=SideEffect(SideEffectKind.TOKEN, f"{token_name}: {literal};"),
    )


def apply_remove(content: str, line: int, column: int, class_name: str) -> TransformResult | None:
    """Delete ``class_name`` plus one neighbouring space (trailing first)."""
    found = _split_target(content, line, class_name)
    if found is None:
        return None
    lines, target = found

    start = target.find(class_name)
    if start == -1:
        return None
    end = start + len(class_name)

    if end < len(target) and target[end] == " ":
        end += 1
    elif start > 0 and target[start - 1] == " ":
        start -= 1

    return TransformResult(
        content=_splice(lines, line, start, end, ""),
        diff=LineDiff(removed=end - start, added=0),
    )


def apply_step(content: str, step: MigrationStep) -> TransformResult | None:
    """Dispatch ``step`` to the transformation for its action kind."""
    action = step.action
    if isinstance(action, ReplaceAction):
        return apply_replace(content, step.line, step.column, action.from_, action.to)
    if isinstance(action, ExtractAction):
        return apply_extract(content, step.line, action.pattern, action.utility_name)
    if isinstance(action, TokenizeAction):
        return apply_tokenize(content, step.line, action.value, action.token_name)
    if isinstance(action, RemoveAction):
        return apply_remove(content, step.line, step.column, action.class_name)
    raise TypeError(f"Unknown fix action: {action!r}")
