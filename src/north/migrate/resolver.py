"""Maps a single lint violation onto a typed fix action and a confidence score."""

from __future__ import annotations

import re
from dataclasses import dataclass

from north.core.models import (
    ExtractAction,
    FixAction,
    RemoveAction,
    ReplaceAction,
    TokenizeAction,
    Violation,
)

# Base confidence per action kind. Plans are only comparable across runs while
# these stay fixed.
CONFIDENCE_REPLACE_TOKEN = 0.95
CONFIDENCE_REPLACE = 0.85
CONFIDENCE_TOKENIZE = 0.70
CONFIDENCE_EXTRACT = 0.65
CONFIDENCE_REMOVE = 0.90

PENALTY_CONDITIONAL = 0.20
PENALTY_COMPOUND = 0.10
COMPOUND_PIECES = 3

# Rules that are reported but never auto-fixed.
NON_FIXABLE_RULES = frozenset({
    "missing-semantic-comment",
    "component-complexity",
    "non-literal-classname",
    "parse-error",
})

SEMANTIC_COLORS = {
    "blue-500": "primary",
    "blue-600": "primary-dark",
    "gray-100": "muted",
    "gray-500": "muted-foreground",
    "red-500": "destructive",
    "green-500": "success",
    "yellow-500": "warning",
}

_SPACING_SCALE = {"4px": "1", "8px": "2", "12px": "3", "16px": "4", "24px": "6", "32px": "8"}

SCALE_VALUES = {
    "p": _SPACING_SCALE,
    "m": _SPACING_SCALE,
    "gap": _SPACING_SCALE,
    "w": {"100%": "full", "50%": "1/2", "33.333%": "1/3"},
    "h": {"100%": "full", "50%": "1/2"},
}

SPACING_TOKENS = {
    "1": "xs",
    "2": "sm",
    "3": "sm",
    "4": "md",
    "5": "md",
    "6": "lg",
    "8": "lg",
    "10": "xl",
    "12": "xl",
    "16": "2xl",
}

_PALETTE_RE = re.compile(r"^(bg|text|border|ring|fill|stroke)-(\w+)-(\d+)(?:/(\d+))?$")
_ARBITRARY_RE = re.compile(r"^([\w-]+)-\[([^\]]+)\]$")
_BRACKET_RE = re.compile(r"\[([^\]]+)\]")
_NUMERIC_RE = re.compile(r"^(\d+(?:\.\d+)?)(px|rem|em)?$")
_SPACING_RE = re.compile(r"^(p|px|py|pt|pr|pb|pl|m|mx|my|mt|mr|mb|ml|gap|space-[xy])-(\d+)$")
_INLINE_NOTE_RE = re.compile(r"^Found:\s*[\w-]+:\s*(.+?)(?:\n|$)")


@dataclass(frozen=True)
class ResolvedAction:
    action: FixAction
    confidence: float


class ActionResolver:
    """Resolves violations into fix actions using a fixed rule table."""

    def resolve(self, violation: Violation) -> ResolvedAction | None:
        """Return the action for ``violation``, or None if it has no safe auto-fix."""
        if violation.rule_key in NON_FIXABLE_RULES:
            return None
        handler = self._get_handler(violation.rule_key)
        if handler is None:
            return None
        action = handler(violation)
        if not action_target(action):
            return None
        return ResolvedAction(action=action, confidence=calculate_confidence(violation, action))

    def _get_handler(self, rule_key: str):
        handlers = {
            "no-raw-palette": self._raw_palette,
            "no-arbitrary-colors": self._arbitrary_color,
            "no-arbitrary-values": self._arbitrary_value,
            "numeric-spacing-in-component": self._numeric_spacing,
            "no-inline-color": self._inline_color,
            "extract-repeated-classes": self._repeated_classes,
        }
        return handlers.get(rule_key)

    def _raw_palette(self, violation: Violation) -> FixAction:
        class_name = violation.class_name or ""
        return ReplaceAction(from_=class_name, to=suggest_semantic_token(class_name))

    def _arbitrary_color(self, violation: Violation) -> FixAction:
        class_name = violation.class_name or ""
        return TokenizeAction(value=class_name, token_name=generate_token_name(class_name, "color"))

    def _arbitrary_value(self, violation: Violation) -> FixAction:
        class_name = violation.class_name or ""
        return ReplaceAction(from_=class_name, to=suggest_scale_value(class_name))

    def _numeric_spacing(self, violation: Violation) -> FixAction:
        class_name = violation.class_name or ""
        return ReplaceAction(from_=class_name, to=suggest_spacing_token(class_name))

    def _inline_color(self, violation: Violation) -> FixAction:
        value = extract_inline_color_value(violation.note) or violation.class_name or ""
        return TokenizeAction(value=value, token_name=generate_token_name(value, "inline-color"))

    def _repeated_classes(self, violation: Violation) -> FixAction:
        pattern = violation.class_name or ""
        return ExtractAction(pattern=pattern, utility_name=generate_utility_name(pattern))


def action_target(action: FixAction) -> str:
    """The exact source text the action looks for on its line."""
    if isinstance(action, ReplaceAction):
        return action.from_
    if isinstance(action, TokenizeAction):
        return action.value
    if isinstance(action, ExtractAction):
        return action.pattern
    if isinstance(action, RemoveAction):
        return action.class_name
    raise TypeError(f"Unknown fix action: {action!r}")


def calculate_confidence(violation: Violation, action: FixAction) -> float:
    """Base confidence for the action kind, penalised for risky matched text."""
    if isinstance(action, ReplaceAction):
        confidence = CONFIDENCE_REPLACE_TOKEN if "--" in action.to else CONFIDENCE_REPLACE
    elif isinstance(action, TokenizeAction):
        confidence = CONFIDENCE_TOKENIZE
    elif isinstance(action, ExtractAction):
        confidence = CONFIDENCE_EXTRACT
    elif isinstance(action, RemoveAction):
        confidence = CONFIDENCE_REMOVE
    else:
        raise TypeError(f"Unknown fix action: {action!r}")

    matched = violation.class_name or ""
    if "?" in matched or ":" in matched:
        confidence -= PENALTY_CONDITIONAL
    if matched and len(matched.split(" ")) > COMPOUND_PIECES:
        confidence -= PENALTY_COMPOUND

    return round(max(0.0, min(1.0, confidence)), 4)


# ---------------------------------------------------------------------------
# Suggestion helpers
# ---------------------------------------------------------------------------


def extract_inline_color_value(note: str | None) -> str | None:
    """Pull the value out of a note shaped like ``Found: color: #fff``."""
    if not note:
        return None
    match = _INLINE_NOTE_RE.match(note)
    if match and match.group(1):
        return match.group(1).strip()
    return None


def suggest_semantic_token(class_name: str) -> str:
    """``bg-blue-500/50`` -> ``bg-(--primary)/50``."""
    match = _PALETTE_RE.match(class_name)
    if not match:
        return f"var(--{re.sub(r'[^a-z0-9-]', '-', class_name, flags=re.IGNORECASE)})"

    prefix, color, shade, opacity = match.groups()
    semantic = SEMANTIC_COLORS.get(f"{color}-{shade}", f"{color}-{shade}")
    suffix = f"/{opacity}" if opacity else ""
    return f"{prefix}-(--{semantic}){suffix}"


def generate_token_name(value: str, prefix: str) -> str:
    """``bg-[#FF0000]`` with prefix ``color`` -> ``--color-ff0000``."""
    bracket = _BRACKET_RE.search(value)
    raw = bracket.group(1) if bracket else value

    cleaned = raw.removeprefix("#")
    cleaned = re.sub(r"[^a-z0-9]", "-", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"-+", "-", cleaned).strip("-").lower()

    return f"--{prefix}-{cleaned or 'custom'}"


def suggest_scale_value(class_name: str) -> str:
    """Map an arbitrary value like ``p-[16px]`` onto the nearest scale step."""
    match = _ARBITRARY_RE.match(class_name)
    if not match:
        return class_name

    prop, value = match.groups()

    scale = SCALE_VALUES.get(prop)
    if scale and value in scale:
        return f"{prop}-{scale[value]}"

    numeric = _NUMERIC_RE.match(value)
    if numeric:
        number = float(numeric.group(1))
        unit = numeric.group(2) or "px"
        # 4px base: 1rem == 1em == 4 steps
        step = _round_half_up(number * 4) if unit in ("rem", "em") else _round_half_up(number / 4)
        if 0 < step <= 96:
            return f"{prop}-{step}"

    return f"{prop}-(--spacing-custom)"


def _round_half_up(value: float) -> int:
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def suggest_spacing_token(class_name: str) -> str:
    """``p-4`` -> ``p-(--spacing-md)``."""
    match = _SPACING_RE.match(class_name)
    if not match:
        return class_name

    prop, value = match.groups()
    semantic = SPACING_TOKENS.get(value, value)
    return f"{prop}-(--spacing-{semantic})"


def generate_utility_name(pattern: str) -> str:
    """Name a repeated pattern after the kinds of classes it contains."""
    classes = pattern.split()

    def has(regex: str) -> bool:
        return any(re.match(regex, c) for c in classes)

    parts = []
    if has(r"^(flex|grid|block|inline)"):
        parts.append("layout")
    if has(r"^(text-|font-)"):
        parts.append("text")
    if has(r"^(p|m|gap)-"):
        parts.append("spacing")
    if has(r"^bg-"):
        parts.append("surface")
    if has(r"^(border|rounded)"):
        parts.append("bordered")

    if not parts:
        parts.append("utility")

    return "@apply-" + "-".join(parts)
