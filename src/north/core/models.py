"""Shared data models for the migration pipeline.

Every model that reaches disk has an explicit ``to_dict`` / ``from_dict`` pair.
On-disk field names are camelCase, matching the ``north check --json`` output.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

PLAN_VERSION = 1
RULE_ID_PREFIX = "north/"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Severity(enum.Enum):
    ERROR = "error"
    WARN = "warn"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Sort key: errors first, info last."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.ERROR: 0, Severity.WARN: 1, Severity.INFO: 2}


class Strategy(enum.Enum):
    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"


class StepStatus(enum.Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"
    PENDING = "pending"


# ---------------------------------------------------------------------------
# Violations (input from the lint engine)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Violation:
    """A single finding reported by the lint engine."""

    rule_id: str
    rule_key: str
    severity: Severity
    message: str
    file_path: str
    line: int
    column: int
    class_name: str | None = None
    note: str | None = None
    context: str | None = None  # "primitive", "composed" or "layout"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "ruleId": self.rule_id,
            "ruleKey": self.rule_key,
            "severity": self.severity.value,
            "message": self.message,
            "filePath": self.file_path,
            "line": self.line,
            "column": self.column,
        }
        if self.class_name is not None:
            data["className"] = self.class_name
        if self.note is not None:
            data["note"] = self.note
        if self.context is not None:
            data["context"] = self.context
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Violation:
        rule_key = data.get("ruleKey") or ""
        rule_id = data.get("ruleId") or f"{RULE_ID_PREFIX}{rule_key}"
        if not rule_key:
            rule_key = rule_id.removeprefix(RULE_ID_PREFIX)
        return cls(
            rule_id=rule_id,
            rule_key=rule_key,
            severity=Severity(data.get("severity", "warn")),
            message=data.get("message", ""),
            file_path=data["filePath"],
            line=int(data["line"]),
            column=int(data.get("column", 0)),
            class_name=data.get("className"),
            note=data.get("note"),
            context=data.get("context"),
        )


# ---------------------------------------------------------------------------
# Fix actions: a closed union of four variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReplaceAction:
    """Swap one class for another in place."""

    from_: str
    to: str


@dataclass(frozen=True)
class ExtractAction:
    """Collapse a repeated class pattern into a named ``@utility``."""

    pattern: str
    utility_name: str


@dataclass(frozen=True)
class TokenizeAction:
    """Move an arbitrary value into a theme token and reference it."""

    value: str
    token_name: str


@dataclass(frozen=True)
class RemoveAction:
    """Delete a class outright."""

    class_name: str


FixAction = Union[ReplaceAction, ExtractAction, TokenizeAction, RemoveAction]


def action_to_dict(action: FixAction) -> dict[str, str]:
    if isinstance(action, ReplaceAction):
        return {"type": "replace", "from": action.from_, "to": action.to}
    if isinstance(action, ExtractAction):
        return {"type": "extract", "pattern": action.pattern, "utilityName": action.utility_name}
    if isinstance(action, TokenizeAction):
        return {"type": "tokenize", "value": action.value, "tokenName": action.token_name}
    if isinstance(action, RemoveAction):
        return {"type": "remove", "className": action.class_name}
    raise TypeError(f"Unknown fix action: {action!r}")


def action_from_dict(data: dict[str, Any]) -> FixAction:
    kind = data.get("type")
    if kind == "replace":
        return ReplaceAction(from_=data["from"], to=data["to"])
    if kind == "extract":
        return ExtractAction(pattern=data["pattern"], utility_name=data["utilityName"])
    if kind == "tokenize":
        return TokenizeAction(value=data["value"], token_name=data["tokenName"])
    if kind == "remove":
        return RemoveAction(class_name=data["className"])
    raise ValueError(f"Unknown action type: {kind!r}")


def describe_action(action: FixAction) -> str:
    """One-line human description, used in reports and prompts."""
    if isinstance(action, ReplaceAction):
        return f"replace {action.from_} -> {action.to}"
    if isinstance(action, ExtractAction):
        return f"extract to {action.utility_name}"
    if isinstance(action, TokenizeAction):
        return f"tokenize {action.value} as {action.token_name}"
    if isinstance(action, RemoveAction):
        return f"remove {action.class_name}"
    raise TypeError(f"Unknown fix action: {action!r}")


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StepPreview:
    before: str
    after: str


@dataclass
class MigrationStep:
    """One planned source edit."""

    id: str
    file: str
    line: int
    column: int
    rule_id: str
    severity: Severity
    action: FixAction
    confidence: float
    preview: StepPreview
    dependencies: list[str] | None = None

    @property
    def rule_key(self) -> str:
        return self.rule_id.removeprefix(RULE_ID_PREFIX)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "ruleId": self.rule_id,
            "severity": self.severity.value,
            "action": action_to_dict(self.action),
            "confidence": self.confidence,
            "preview": {"before": self.preview.before, "after": self.preview.after},
        }
        if self.dependencies:
            data["dependencies"] = list(self.dependencies)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MigrationStep:
        preview = data.get("preview") or {}
        deps = data.get("dependencies")
        return cls(
            id=data["id"],
            file=data["file"],
            line=int(data["line"]),
            column=int(data.get("column", 0)),
            rule_id=data["ruleId"],
            severity=Severity(data["severity"]),
            action=action_from_dict(data["action"]),
            confidence=float(data["confidence"]),
            preview=StepPreview(
                before=preview.get("before", ""),
                after=preview.get("after", ""),
            ),
            dependencies=list(deps) if deps else None,
        )


@dataclass
class PlanConfig:
    """Filters the plan was built with, recorded for reference."""

    include: list[str] | None = None
    exclude: list[str] | None = None
    max_changes: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.include is not None:
            data["include"] = list(self.include)
        if self.exclude is not None:
            data["exclude"] = list(self.exclude)
        if self.max_changes is not None:
            data["maxChanges"] = self.max_changes
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlanConfig:
        return cls(
            include=data.get("include"),
            exclude=data.get("exclude"),
            max_changes=data.get("maxChanges"),
        )


@dataclass
class PlanSummary:
    total_violations: int = 0
    addressable_violations: int = 0
    files_affected: int = 0
    by_rule: dict[str, int] = field(default_factory=dict)
    by_severity: dict[str, int] = field(
        default_factory=lambda: {s.value: 0 for s in Severity}
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalViolations": self.total_violations,
            "addressableViolations": self.addressable_violations,
            "filesAffected": self.files_affected,
            "byRule": dict(self.by_rule),
            "bySeverity": dict(self.by_severity),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlanSummary:
        by_severity = {s.value: 0 for s in Severity}
        by_severity.update(data.get("bySeverity") or {})
        return cls(
            total_violations=data.get("totalViolations", 0),
            addressable_violations=data.get("addressableViolations", 0),
            files_affected=data.get("filesAffected", 0),
            by_rule=dict(data.get("byRule") or {}),
            by_severity=by_severity,
        )


@dataclass
class MigrationPlan:
    """The persisted unit of work produced by ``north propose``."""

    strategy: Strategy
    steps: list[MigrationStep] = field(default_factory=list)
    config: PlanConfig = field(default_factory=PlanConfig)
    summary: PlanSummary = field(default_factory=PlanSummary)
    created_at: str = field(default_factory=utc_timestamp)
    version: int = PLAN_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "createdAt": self.created_at,
            "strategy": self.strategy.value,
            "config": self.config.to_dict(),
            "steps": [step.to_dict() for step in self.steps],
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MigrationPlan:
        return cls(
            version=data["version"],
            created_at=data.get("createdAt", ""),
            strategy=Strategy(data.get("strategy", Strategy.BALANCED.value)),
            config=PlanConfig.from_dict(data.get("config") or {}),
            steps=[MigrationStep.from_dict(s) for s in data.get("steps") or []],
            summary=PlanSummary.from_dict(data.get("summary") or {}),
        )


# ---------------------------------------------------------------------------
# Execution state
# ---------------------------------------------------------------------------


@dataclass
class MigrationCheckpoint:
    """Which steps of a specific plan have been processed so far."""

    plan_path: str
    plan_hash: str
    completed_steps: list[str] = field(default_factory=list)
    failed_steps: list[str] = field(default_factory=list)
    skipped_steps: list[str] = field(default_factory=list)
    last_updated: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> dict[str, Any]:
        return {
            "planPath": self.plan_path,
            "planHash": self.plan_hash,
            "completedSteps": list(self.completed_steps),
            "failedSteps": list(self.failed_steps),
            "skippedSteps": list(self.skipped_steps),
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MigrationCheckpoint:
        return cls(
            plan_path=data.get("planPath", ""),
            plan_hash=data["planHash"],
            completed_steps=list(data.get("completedSteps") or []),
            failed_steps=list(data.get("failedSteps") or []),
            skipped_steps=list(data.get("skippedSteps") or []),
            last_updated=data.get("lastUpdated", ""),
        )


@dataclass(frozen=True)
class LineDiff:
    removed: int
    added: int

    def to_dict(self) -> dict[str, int]:
        return {"removed": self.removed, "added": self.added}


@dataclass
class StepResult:
    """Outcome of one scheduled step."""

    step_id: str
    status: StepStatus
    file: str
    action: str
    error: str | None = None
    diff: LineDiff | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "stepId": self.step_id,
            "status": self.status.value,
            "file": self.file,
            "action": self.action,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.diff is not None:
            data["diff"] = self.diff.to_dict()
        return data


@dataclass
class MigrateSummary:
    total: int = 0
    applied: int = 0
    skipped: int = 0
    failed: int = 0
    files_changed: int = 0
    lines_removed: int = 0
    lines_added: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "applied": self.applied,
            "skipped": self.skipped,
            "failed": self.failed,
            "filesChanged": self.files_changed,
            "linesRemoved": self.lines_removed,
            "linesAdded": self.lines_added,
        }


@dataclass
class MigrateReport:
    """Everything one ``north migrate`` invocation did (or would do)."""

    applied: bool
    plan_path: str
    results: list[StepResult] = field(default_factory=list)
    summary: MigrateSummary = field(default_factory=MigrateSummary)
    checkpoint_path: str | None = None
    checkpoint: MigrationCheckpoint | None = None
    next_steps: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "kind": "migrate",
            "applied": self.applied,
            "planPath": self.plan_path,
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary.to_dict(),
        }
        if self.checkpoint_path is not None:
            data["checkpointPath"] = self.checkpoint_path
        if self.checkpoint is not None:
            data["checkpoint"] = self.checkpoint.to_dict()
        if self.next_steps:
            data["nextSteps"] = list(self.next_steps)
        if self.warnings:
            data["warnings"] = list(self.warnings)
        return data


@dataclass
class ProposeReport:
    """Result of ``north propose``."""

    plan_path: str
    plan: MigrationPlan
    source: str = "file"  # "check", "file" or "stdin"
    written: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "propose",
            "planPath": self.plan_path,
            "plan": self.plan.to_dict(),
        }
