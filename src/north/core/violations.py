"""Reads the violation stream produced by ``north check --json``."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, TextIO

from north.core.errors import ViolationSourceError
from north.core.models import Violation


def parse_violations(text: str) -> list[Violation]:
    """Parse a JSON document into violations.

    Accepts ``{"violations": [...]}`` (the check report shape) or a bare list.
    """
    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as e:
        raise ViolationSourceError(f"Failed to parse violations as JSON: {e}", e) from e

    if isinstance(data, dict):
        records = data.get("violations") or []
    elif isinstance(data, list):
        records = data
    else:
        raise ViolationSourceError("Violation input must be a JSON object or array")

    violations = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise ViolationSourceError(f"Violation #{index} is not an object")
        try:
            violations.append(Violation.from_dict(record))
        except (KeyError, ValueError, TypeError) as e:
            raise ViolationSourceError(f"Violation #{index} is malformed: {e}", e) from e
    return violations


def load_violations(path: Path) -> list[Violation]:
    """Read violations from a JSON file."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ViolationSourceError(f"Could not read violations from: {path}", e) from e
    return parse_violations(text)


def read_violations_stream(stream: TextIO) -> list[Violation]:
    """Read violations piped on stdin (or any text stream)."""
    return parse_violations(stream.read())
