"""Promote a repeated class pattern to a named ``@utility`` in the shared stylesheet."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from north.core.errors import PromoteError
from north.core.file_writer import write_file_atomic

logger = logging.getLogger(__name__)

_OPENERS = {"[": "]", "(": ")"}


@dataclass
class PromoteResult:
    name: str
    pattern: str
    utility_block: str
    css_path: str
    applied: bool = False
    classes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "promote",
            "applied": self.applied,
            "name": self.name,
            "pattern": self.pattern,
            "normalizedClasses": list(self.classes),
            "utilityBlock": self.utility_block,
            "cssPath": self.css_path,
        }


def split_pattern(pattern: str) -> list[str]:
    """Split on whitespace, except inside ``[...]`` or ``(...)``.

    >>> split_pattern("p-4 grid-cols-[1fr_auto] bg-(--x)")
    ['p-4', 'grid-cols-[1fr_auto]', 'bg-(--x)']
    """
    classes = []
    current = []
    depth = {"[": 0, "(": 0}

    for char in pattern:
        if char in _OPENERS:
            depth[char] += 1
        elif char == "]":
            depth["["] = max(0, depth["["] - 1)
        elif char == ")":
            depth["("] = max(0, depth["("] - 1)

        if char.isspace() and not any(depth.values()):
            if current:
                classes.append("".join(current))
                current = []
            continue
        current.append(char)

    if current:
        classes.append("".join(current))
    return classes


def normalize_classes(classes: list[str]) -> list[str]:
    return sorted(set(c for c in classes if c))


def build_utility_block(name: str, pattern: str) -> str:
    return f"@utility {name} {{\n  @apply {pattern};\n}}"


def promote_utility(css_path: Path, name: str, pattern: str, apply: bool = False) -> PromoteResult:
    """Build the ``@utility`` block for ``pattern`` and, if ``apply``, append it.

    Raises PromoteError for an empty name or pattern, a missing stylesheet,
    or a utility that is already defined under ``name``.
    """
    pattern = (pattern or "").strip()
    name = (name or "").strip()
    if not pattern:
        raise PromoteError("Pattern is required.")
    if not name:
        raise PromoteError("Promotion name is required.")

    block = build_utility_block(name, pattern)
    result = PromoteResult(
        name=name,
        pattern=pattern,
        utility_block=block,
        css_path=str(css_path),
        classes=normalize_classes(split_pattern(pattern)),
    )
    if not apply:
        return result

    try:
        content = css_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise PromoteError(
            f"Stylesheet not found: {css_path}. Create it before promoting utilities."
        ) from None
    except (OSError, UnicodeDecodeError) as e:
        raise PromoteError(f"Could not read {css_path}: {e}", e) from e

    if re.search(rf"@utility\s+{re.escape(name)}\b", content):
        raise PromoteError(f"Utility '{name}' already exists in {css_path}.")

    updated = f"{content.rstrip()}\n\n/* north promote: {name} */\n{block}\n"
    write_file_atomic(css_path, updated)
    logger.info("Promoted '%s' to @utility %s in %s", pattern, name, css_path)

    result.applied = True
    return result
