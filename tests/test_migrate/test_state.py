"""Tests for plan loading, hashing and checkpoints."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from north.core.errors import CheckpointIntegrityError, PlanNotFoundError, PlanSchemaError
from north.core.models import MigrationCheckpoint, Severity, Strategy, Violation
from north.migrate.planner import build_plan, write_plan
from north.migrate.state import (
    compute_plan_hash,
    load_checkpoint,
    load_plan,
    save_checkpoint,
    verify_checkpoint,
)


def _plan():
    violations = [
        Violation(
            rule_id="north/no-raw-palette",
            rule_key="no-raw-palette",
            severity=Severity.ERROR,
            message="",
            file_path="src/App.tsx",
            line=line,
            column=4,
            class_name="bg-blue-500",
        )
        for line in (1, 2, 3)
    ]
    return build_plan(violations, strategy=Strategy.BALANCED)


class TestLoadPlan:
    def test_write_then_load_reproduces_plan(self, tmp_path: Path):
        plan = _plan()
        path = tmp_path / "plan.json"
        write_plan(plan, path)

        loaded = load_plan(path)

        assert loaded.steps == plan.steps
        assert loaded.summary == plan.summary
        assert loaded.strategy is Strategy.BALANCED
        assert loaded.created_at == plan.created_at

    def test_missing_plan(self, tmp_path: Path):
        with pytest.raises(PlanNotFoundError, match="north propose"):
            load_plan(tmp_path / "nope.json")

    def test_wrong_version(self, tmp_path: Path):
        path = tmp_path / "plan.json"
        data = _plan().to_dict()
        data["version"] = 2
        path.write_text(json.dumps(data))

        with pytest.raises(PlanSchemaError, match="Expected version 1, got 2"):
            load_plan(path)

    def test_malformed_json(self, tmp_path: Path):
        path = tmp_path / "plan.json"
        path.write_text("{")

        with pytest.raises(PlanSchemaError):
            load_plan(path)

    def test_invalid_step_field(self, tmp_path: Path):
        path = tmp_path / "plan.json"
        data = _plan().to_dict()
        data["steps"][0]["action"] = {"type": "teleport"}
        path.write_text(json.dumps(data))

        with pytest.raises(PlanSchemaError, match="invalid field"):
            load_plan(path)

    @pytest.mark.parametrize("key,value", [("action", "replace"), ("preview", "x")])
    def test_nested_object_of_wrong_type(self, tmp_path: Path, key: str, value: str):
        path = tmp_path / "plan.json"
        data = _plan().to_dict()
        data["steps"][0][key] = value
        path.write_text(json.dumps(data))

        with pytest.raises(PlanSchemaError, match="Failed to load plan"):
            load_plan(path)

    def test_undecodable_plan(self, tmp_path: Path):
        path = tmp_path / "plan.json"
        path.write_bytes(b'{"version": 1, "\xff": 0}')

        with pytest.raises(PlanSchemaError, match="Failed to load plan"):
            load_plan(path)


class TestPlanHash:
    def test_format(self):
        digest = compute_plan_hash(_plan())

        assert digest.startswith("sha256:")
        assert len(digest) == len("sha256:") + 16

    def test_stable_for_same_plan(self):
        plan = _plan()
        assert compute_plan_hash(plan) == compute_plan_hash(plan)

    def test_changes_when_plan_changes(self):
        plan = _plan()
        before = compute_plan_hash(plan)
        plan.steps.pop()

        assert compute_plan_hash(plan) != before

    def test_survives_round_trip(self, tmp_path: Path):
        plan = _plan()
        path = tmp_path / "plan.json"
        write_plan(plan, path)

        assert compute_plan_hash(load_plan(path)) == compute_plan_hash(plan)


class TestCheckpoint:
    def test_save_and_load(self, tmp_path: Path):
        path = tmp_path / "state" / "checkpoint.json"
        checkpoint = MigrationCheckpoint(
            plan_path="plan.json",
            plan_hash="sha256:abc",
            completed_steps=["step-001"],
            skipped_steps=["step-002"],
        )

        save_checkpoint(path, checkpoint)

        assert load_checkpoint(path) == checkpoint
        assert json.loads(path.read_text())["completedSteps"] == ["step-001"]

    def test_missing_is_none(self, tmp_path: Path):
        assert load_checkpoint(tmp_path / "none.json") is None

    def test_unreadable_is_none(self, tmp_path: Path, caplog):
        path = tmp_path / "checkpoint.json"
        path.write_text("not json")

        assert load_checkpoint(path) is None
        assert "Ignoring unreadable checkpoint" in caplog.text

    def test_undecodable_is_none(self, tmp_path: Path):
        path = tmp_path / "checkpoint.json"
        path.write_bytes(b"\xff\xfe")

        assert load_checkpoint(path) is None

    def test_verify(self):
        checkpoint = MigrationCheckpoint(plan_path="p", plan_hash="sha256:aaaa")

        verify_checkpoint(checkpoint, "sha256:aaaa")
        with pytest.raises(CheckpointIntegrityError, match="Remove checkpoint"):
            verify_checkpoint(checkpoint, "sha256:bbbb")
