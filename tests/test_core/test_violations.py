"""Tests for reading check output."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from north.core.errors import ViolationSourceError
from north.core.models import Severity
from north.core.violations import load_violations, parse_violations, read_violations_stream


def _record(**overrides) -> dict:
    record = {
        "ruleId": "north/no-raw-palette",
        "ruleKey": "no-raw-palette",
        "severity": "error",
        "message": "Use semantic color tokens",
        "filePath": "src/Button.tsx",
        "line": 3,
        "column": 18,
        "className": "bg-blue-500",
    }
    record.update(overrides)
    return record


class TestParseViolations:
    def test_check_report_shape(self):
        violations = parse_violations(json.dumps({"violations": [_record()]}))

        assert len(violations) == 1
        v = violations[0]
        assert v.rule_key == "no-raw-palette"
        assert v.severity is Severity.ERROR
        assert v.file_path == "src/Button.tsx"
        assert v.class_name == "bg-blue-500"

    def test_bare_list(self):
        assert len(parse_violations(json.dumps([_record(), _record(line=9)]))) == 2

    def test_rule_key_derived_from_rule_id(self):
        record = _record()
        del record["ruleKey"]

        (v,) = parse_violations(json.dumps([record]))
        assert v.rule_key == "no-raw-palette"

    def test_rule_id_derived_from_rule_key(self):
        record = _record()
        del record["ruleId"]

        (v,) = parse_violations(json.dumps([record]))
        assert v.rule_id == "north/no-raw-palette"

    def test_invalid_json(self):
        with pytest.raises(ViolationSourceError, match="JSON"):
            parse_violations("{not json")

    def test_non_object_record(self):
        with pytest.raises(ViolationSourceError, match="#0"):
            parse_violations("[42]")

    def test_missing_required_field(self):
        record = _record()
        del record["filePath"]

        with pytest.raises(ViolationSourceError, match="malformed"):
            parse_violations(json.dumps([record]))

    def test_unknown_severity(self):
        with pytest.raises(ViolationSourceError):
            parse_violations(json.dumps([_record(severity="fatal")]))


class TestLoading:
    def test_load_from_file(self, tmp_path: Path):
        path = tmp_path / "check.json"
        path.write_text(json.dumps({"violations": [_record()]}))

        assert len(load_violations(path)) == 1

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ViolationSourceError, match="Could not read"):
            load_violations(tmp_path / "missing.json")

    def test_stream(self):
        stream = io.StringIO(json.dumps({"violations": [_record()]}))
        assert read_violations_stream(stream)[0].line == 3
