"""Plan Builder: turns violations into an ordered, dependency-annotated migration plan."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from pathlib import Path

from north.core.config import NorthPaths, parse_strategy, resolve_paths
from north.core.errors import ViolationSourceError
from north.core.file_writer import write_file_atomic
from north.core.models import (
    ExtractAction,
    FixAction,
    MigrationPlan,
    MigrationStep,
    PlanConfig,
    PlanSummary,
    ProposeReport,
    RemoveAction,
    ReplaceAction,
    Severity,
    StepPreview,
    Strategy,
    TokenizeAction,
    Violation,
)
from north.core.violations import load_violations, read_violations_stream
from north.migrate.resolver import ActionResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrategyGate:
    min_confidence: float
    severities: frozenset[Severity]


STRATEGY_GATES = {
    Strategy.CONSERVATIVE: StrategyGate(0.90, frozenset({Severity.ERROR})),
    Strategy.BALANCED: StrategyGate(0.70, frozenset({Severity.ERROR, Severity.WARN})),
    Strategy.AGGRESSIVE: StrategyGate(
        0.50, frozenset({Severity.ERROR, Severity.WARN, Severity.INFO})
    ),
}


@dataclass
class ProposeOptions:
    strategy: Strategy = Strategy.BALANCED
    include: list[str] | None = None
    exclude: list[str] | None = None
    max_changes: int | None = None
    source: str = "check"  # "check", "stdin" or a file path
    output: Path | None = None
    dry_run: bool = False


def format_step_id(index: int) -> str:
    """Zero-based index -> ``step-001``."""
    return f"step-{index + 1:03d}"


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------


def filter_violations(
    violations: Iterable[Violation],
    include: Iterable[str] | None = None,
    exclude: Iterable[str] | None = None,
    max_changes: int | None = None,
) -> list[Violation]:
    """Apply include/exclude rule filters, then the per-file cap."""
    filtered = list(violations)

    include_set = set(include or ())
    if include_set:
        filtered = [v for v in filtered if v.rule_key in include_set]

    exclude_set = set(exclude or ())
    if exclude_set:
        filtered = [v for v in filtered if v.rule_key not in exclude_set]

    if max_changes is not None and max_changes > 0:
        by_file: dict[str, list[Violation]] = {}
        for violation in filtered:
            by_file.setdefault(violation.file_path, []).append(violation)

        filtered = []
        for file_violations in by_file.values():
            ranked = sorted(file_violations, key=lambda v: v.severity.rank)
            filtered.extend(ranked[:max_changes])

    return filtered


def generate_preview(violation: Violation, action: FixAction) -> StepPreview:
    class_name = violation.class_name or ""
    if isinstance(action, ReplaceAction):
        return StepPreview(before=class_name, after=action.to)
    if isinstance(action, TokenizeAction):
        bare = action.token_name.removeprefix("--")
        return StepPreview(
            before=class_name,
            after=f"/* Define: {action.token_name}: {action.value} */ {bare}",
        )
    if isinstance(action, ExtractAction):
        return StepPreview(before=action.pattern, after=action.utility_name)
    if isinstance(action, RemoveAction):
        return StepPreview(before=action.class_name, after="/* removed */")
    raise TypeError(f"Unknown fix action: {action!r}")


def violations_to_steps(
    violations: Iterable[Violation], resolver: ActionResolver | None = None
) -> list[MigrationStep]:
    """Resolve each violation; unaddressable ones are dropped without using an id."""
    resolver = resolver or ActionResolver()
    steps: list[MigrationStep] = []
    for violation in violations:
        resolved = resolver.resolve(violation)
        if resolved is None:
            continue
        steps.append(MigrationStep(
            id=format_step_id(len(steps)),
            file=violation.file_path,
            line=violation.line,
            column=violation.column,
            rule_id=violation.rule_id,
            severity=violation.severity,
            action=resolved.action,
            confidence=resolved.confidence,
            preview=generate_preview(violation, resolved.action),
        ))
    return steps


def apply_strategy(steps: Iterable[MigrationStep], strategy: Strategy) -> list[MigrationStep]:
    gate = STRATEGY_GATES[strategy]
    return [
        step for step in steps
        if step.confidence >= gate.min_confidence and step.severity in gate.severities
    ]


def reindex_steps(steps: Iterable[MigrationStep]) -> list[MigrationStep]:
    """Renumber to contiguous ids. Any existing dependency edges are dropped."""
    return [
        replace(step, id=format_step_id(index), dependencies=None)
        for index, step in enumerate(steps)
    ]


def build_dependencies(steps: list[MigrationStep]) -> list[MigrationStep]:
    """Make each Replace step depend on the Tokenize steps whose token it references."""
    token_definitions: dict[str, str] = {}
    for step in steps:
        if isinstance(step.action, TokenizeAction):
            token_definitions[step.action.token_name] = step.id

    linked = []
    for step in steps:
        if isinstance(step.action, ReplaceAction):
            deps = [
                step_id for token_name, step_id in token_definitions.items()
                if token_name in step.action.to
            ]
            if deps:
                step = replace(step, dependencies=deps)
        linked.append(step)
    return linked


def summarize(total_violations: int, steps: list[MigrationStep]) -> PlanSummary:
    summary = PlanSummary(
        total_violations=total_violations,
        addressable_violations=len(steps),
        files_affected=len({step.file for step in steps}),
    )
    for step in steps:
        summary.by_rule[step.rule_key] = summary.by_rule.get(step.rule_key, 0) + 1
        summary.by_severity[step.severity.value] += 1
    return summary


def build_plan(
    violations: list[Violation],
    strategy: Strategy = Strategy.BALANCED,
    include: list[str] | None = None,
    exclude: list[str] | None = None,
    max_changes: int | None = None,
    resolver: ActionResolver | None = None,
) -> MigrationPlan:
    """Run the full pipeline over ``violations`` without touching disk."""
    config = PlanConfig(include=include, exclude=exclude, max_changes=max_changes)

    filtered = filter_violations(violations, include, exclude, max_changes)
    raw_steps = violations_to_steps(filtered, resolver)
    kept = apply_strategy(raw_steps, strategy)
    # Ids change on reindex, so edges must be built afterwards.
    steps = build_dependencies(reindex_steps(kept))

    logger.debug(
        "Planned %d step(s) from %d violation(s) (%d after filters, %d resolvable)",
        len(steps), len(violations), len(filtered), len(raw_steps),
    )

    return MigrationPlan(
        strategy=strategy,
        config=config,
        steps=steps,
        summary=summarize(len(violations), steps),
    )


def write_plan(plan: MigrationPlan, path: Path) -> None:
    write_file_atomic(path, json.dumps(plan.to_dict(), indent=2))
    logger.info("Wrote migration plan to %s", path)


# ---------------------------------------------------------------------------
# Command entry point
# ---------------------------------------------------------------------------


def gather_violations(
    source: str,
    project_path: Path,
    violation_source: Callable[[], list[Violation]] | None = None,
) -> list[Violation]:
    """Read violations from a fresh check, stdin or a JSON file."""
    if source == "check":
        if violation_source is None:
            raise ViolationSourceError(
                "No lint engine is available to run a fresh check. "
                "Pipe check output instead: north check --json | north propose --from stdin"
            )
        return list(violation_source())

    if source == "stdin":
        return read_violations_stream(sys.stdin)

    path = Path(source)
    if not path.is_absolute():
        path = project_path / path
    return load_violations(path)


def propose(
    options: ProposeOptions | None = None,
    project_path: Path | None = None,
    paths: NorthPaths | None = None,
    violations: list[Violation] | None = None,
    violation_source: Callable[[], list[Violation]] | None = None,
) -> ProposeReport:
    """Build a migration plan and persist it unless ``dry_run`` is set.

    ``violations`` short-circuits gathering; otherwise ``options.source`` decides
    where they come from.
    """
    options = options or ProposeOptions()
    project_path = (project_path or Path.cwd()).resolve()
    paths = paths or resolve_paths(project_path)
    strategy = parse_strategy(options.strategy)

    if violations is None:
        violations = gather_violations(options.source, project_path, violation_source)
        source_label = options.source if options.source in ("check", "stdin") else "file"
    else:
        source_label = "file"

    plan = build_plan(
        violations,
        strategy=strategy,
        include=options.include,
        exclude=options.exclude,
        max_changes=options.max_changes,
    )

    plan_path = paths.plan_path
    if options.output is not None:
        plan_path = options.output if options.output.is_absolute() else project_path / options.output

    written = False
    if not options.dry_run:
        write_plan(plan, plan_path)
        written = True

    return ProposeReport(plan_path=str(plan_path), plan=plan, source=source_label, written=written)
