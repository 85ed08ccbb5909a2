"""Tests for plan building."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from north.core.config import resolve_paths
from north.core.errors import ViolationSourceError
from north.core.models import (
    ReplaceAction,
    Severity,
    Strategy,
    TokenizeAction,
    Violation,
)
from north.migrate.planner import (
    ProposeOptions,
    apply_strategy,
    build_dependencies,
    build_plan,
    filter_violations,
    format_step_id,
    generate_preview,
    propose,
    reindex_steps,
    violations_to_steps,
)


def _violation(
    rule_key: str = "no-raw-palette",
    class_name: str = "bg-blue-500",
    severity: Severity = Severity.ERROR,
    file_path: str = "src/App.tsx",
    line: int = 1,
) -> Violation:
    return Violation(
        rule_id=f"north/{rule_key}",
        rule_key=rule_key,
        severity=severity,
        message="",
        file_path=file_path,
        line=line,
        column=0,
        class_name=class_name,
    )


class TestStrategyGates:
    def test_error_palette_included_under_balanced(self):
        plan = build_plan([_violation()], strategy=Strategy.BALANCED)

        assert len(plan.steps) == 1
        step = plan.steps[0]
        assert step.id == "step-001"
        assert step.action == ReplaceAction(from_="bg-blue-500", to="bg-(--primary)")
        assert step.confidence == 0.95

    def test_warn_excluded_under_conservative(self):
        plan = build_plan([_violation(severity=Severity.WARN)], strategy=Strategy.CONSERVATIVE)

        assert plan.steps == []
        assert plan.summary.total_violations == 1
        assert plan.summary.addressable_violations == 0

    def test_tokenize_needs_aggressive_or_balanced(self):
        violation = _violation("no-arbitrary-colors", "bg-[#abcdef]")

        assert build_plan([violation], strategy=Strategy.CONSERVATIVE).steps == []
        assert len(build_plan([violation], strategy=Strategy.BALANCED).steps) == 1

    def test_info_only_under_aggressive(self):
        violation = _violation(severity=Severity.INFO)

        assert build_plan([violation], strategy=Strategy.BALANCED).steps == []
        assert len(build_plan([violation], strategy=Strategy.AGGRESSIVE).steps) == 1


class TestStepIds:
    def test_format(self):
        assert format_step_id(0) == "step-001"
        assert format_step_id(41) == "step-042"

    def test_ids_contiguous_after_filtering(self):
        violations = [
            _violation(line=1),
            _violation(line=2, severity=Severity.INFO),  # dropped by strategy
            _violation("parse-error", line=3),  # unaddressable
            _violation(line=4),
            _violation(line=5, severity=Severity.INFO),
            _violation(line=6),
        ]
        plan = build_plan(violations, strategy=Strategy.BALANCED)

        assert [s.id for s in plan.steps] == ["step-001", "step-002", "step-003"]
        assert [s.line for s in plan.steps] == [1, 4, 6]

    def test_unaddressable_violations_do_not_consume_ids(self):
        steps = violations_to_steps([_violation("parse-error"), _violation()])
        assert [s.id for s in steps] == ["step-001"]


class TestDependencies:
    def test_replace_depends_on_defining_tokenize(self):
        violations = [
            _violation("no-arbitrary-colors", "bg-[#123]", line=1),
            _violation("no-raw-palette", "bg-blue-500", line=2),
        ]
        steps = reindex_steps(violations_to_steps(violations))
        # Point the replace at the token the first step defines.
        steps[1].action = ReplaceAction(from_="bg-blue-500", to="bg-(--color-123)")

        linked = build_dependencies(steps)

        assert isinstance(linked[0].action, TokenizeAction)
        assert linked[0].action.token_name == "--color-123"
        assert linked[1].dependencies == ["step-001"]
        assert linked[0].dependencies is None

    def test_reindex_drops_stale_edges(self):
        steps = violations_to_steps([_violation(), _violation(line=2)])
        steps[1].dependencies = ["step-999"]

        assert all(s.dependencies is None for s in reindex_steps(steps))

    def test_edges_use_final_ids(self):
        violations = [
            _violation(severity=Severity.INFO, line=1),  # dropped, frees step-001
            _violation("no-arbitrary-colors", "bg-[#custom]", line=2),
            _violation("no-raw-palette", "bg-blue-500", line=3),
        ]
        steps = violations_to_steps(violations)
        steps[2].action = ReplaceAction(from_="bg-blue-500", to="bg-(--color-custom)")

        final = build_dependencies(reindex_steps(apply_strategy(steps, Strategy.BALANCED)))

        assert [s.id for s in final] == ["step-001", "step-002"]
        assert final[1].dependencies == ["step-001"]


class TestFilters:
    def test_include_and_exclude(self):
        violations = [_violation("no-raw-palette"), _violation("no-arbitrary-values", "p-[8px]")]

        assert len(filter_violations(violations, include=["no-raw-palette"])) == 1
        assert len(filter_violations(violations, exclude=["no-raw-palette"])) == 1
        assert filter_violations(violations, include=["x"]) == []

    def test_max_changes_per_file_prefers_errors(self):
        violations = [
            _violation(severity=Severity.INFO, line=1),
            _violation(severity=Severity.ERROR, line=2),
            _violation(severity=Severity.WARN, line=3),
            _violation(file_path="src/Other.tsx", line=1),
        ]
        kept = filter_violations(violations, max_changes=2)

        app = [v for v in kept if v.file_path == "src/App.tsx"]
        assert [v.severity for v in app] == [Severity.ERROR, Severity.WARN]
        assert len(kept) == 3

    def test_zero_max_changes_is_unlimited(self):
        assert len(filter_violations([_violation(), _violation(line=2)], max_changes=0)) == 2


class TestSummaryAndPreview:
    def test_summary_counts(self):
        violations = [
            _violation(line=1),
            _violation("no-arbitrary-values", "p-[8px]", severity=Severity.WARN, file_path="b.tsx"),
            _violation("parse-error"),
        ]
        plan = build_plan(violations)

        assert plan.summary.total_violations == 3
        assert plan.summary.addressable_violations == 2
        assert plan.summary.files_affected == 2
        assert plan.summary.by_rule == {"no-raw-palette": 1, "no-arbitrary-values": 1}
        assert plan.summary.by_severity == {"error": 1, "warn": 1, "info": 0}

    def test_tokenize_preview(self):
        action = TokenizeAction(value="bg-[#fff]", token_name="--color-fff")
        preview = generate_preview(_violation(class_name="bg-[#fff]"), action)

        assert preview.before == "bg-[#fff]"
        assert preview.after == "/* Define: --color-fff: bg-[#fff] */ color-fff"

    def test_plan_records_config(self):
        plan = build_plan([_violation()], include=["no-raw-palette"], max_changes=3)

        assert plan.config.to_dict() == {"include": ["no-raw-palette"], "maxChanges": 3}


class TestPropose:
    def _write_check(self, project: Path, violations: list[Violation]) -> Path:
        path = project / "check.json"
        path.write_text(json.dumps({"violations": [v.to_dict() for v in violations]}))
        return path

    def test_writes_plan(self, tmp_path: Path):
        self._write_check(tmp_path, [_violation()])

        report = propose(ProposeOptions(source="check.json"), project_path=tmp_path)

        plan_path = resolve_paths(tmp_path).plan_path
        assert report.written is True
        assert report.plan_path == str(plan_path)
        data = json.loads(plan_path.read_text())
        assert data["version"] == 1
        assert data["steps"][0]["id"] == "step-001"

    def test_dry_run_does_not_write(self, tmp_path: Path):
        self._write_check(tmp_path, [_violation()])

        report = propose(ProposeOptions(source="check.json", dry_run=True), project_path=tmp_path)

        assert report.written is False
        assert not resolve_paths(tmp_path).plan_path.exists()
        assert len(report.plan.steps) == 1

    def test_custom_output(self, tmp_path: Path):
        self._write_check(tmp_path, [_violation()])

        propose(ProposeOptions(source="check.json", output=Path("out/plan.json")), project_path=tmp_path)

        assert (tmp_path / "out" / "plan.json").exists()

    def test_check_source_requires_engine(self, tmp_path: Path):
        with pytest.raises(ViolationSourceError, match="--from stdin"):
            propose(ProposeOptions(source="check"), project_path=tmp_path)

    def test_injected_violation_source(self, tmp_path: Path):
        report = propose(
            ProposeOptions(source="check", dry_run=True),
            project_path=tmp_path,
            violation_source=lambda: [_violation(), _violation(line=2)],
        )

        assert report.source == "check"
        assert len(report.plan.steps) == 2
