"""Execution Orchestrator: applies a migration plan to source files.

Steps run strictly one at a time. File contents are read once per run and
edited in memory; nothing is written until every scheduled step has been
processed, after which changed buffers are committed with atomic writes,
stylesheet side effects are appended in one batch and the checkpoint is saved.
"""

from __future__ import annotations

import enum
import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.prompt import Prompt

from north.core.config import NorthPaths, resolve_paths
from north.core.errors import FileWriteError
from north.core.file_writer import write_file_atomic
from north.core.models import (
    LineDiff,
    MigrateReport,
    MigrateSummary,
    MigrationCheckpoint,
    MigrationStep,
    StepResult,
    StepStatus,
    describe_action,
    utc_timestamp,
)
from north.core.output import console as default_console, print_step_prompt
from north.migrate.scheduler import schedule_steps
from north.migrate.state import (
    compute_plan_hash,
    load_checkpoint,
    load_plan,
    save_checkpoint,
    verify_checkpoint,
)
from north.migrate.transforms import SideEffectKind, apply_step

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"
DEPENDENCY_FAILED = "Dependency failed"


class Decision(enum.Enum):
    YES = "yes"
    NO = "no"
    QUIT = "quit"
    ALL = "all"


_ANSWERS = {
    "y": Decision.YES,
    "yes": Decision.YES,
    "n": Decision.NO,
    "no": Decision.NO,
    "q": Decision.QUIT,
    "quit": Decision.QUIT,
    "a": Decision.ALL,
    "all": Decision.ALL,
}


def parse_decision(answer: str) -> Decision:
    """Anything unrecognised means no."""
    return _ANSWERS.get(answer.strip().lower(), Decision.NO)


class ConfirmationSession:
    """Interactive per-step confirmation, scoped to one migrate run.

    ``ask`` receives the prompt text and returns the raw answer; it defaults to
    a rich prompt on the session console.
    """

    PROMPT = "Apply this change? [y]es / [n]o / [q]uit / [a]ll remaining"

    def __init__(self, console: Console | None = None, ask: Callable[[str], str] | None = None):
        self.console = console or default_console
        self._ask = ask or self._rich_ask
        self.closed = False

    def __enter__(self) -> ConfirmationSession:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.closed = True

    def confirm(self, step: MigrationStep) -> Decision:
        if self.closed:
            raise RuntimeError("Confirmation session is closed")
        print_step_prompt(step, self.console)
        return parse_decision(self._ask(self.PROMPT))

    def _rich_ask(self, prompt: str) -> str:
        return Prompt.ask(prompt, console=self.console, default="n", show_default=False)


@dataclass
class MigrateOptions:
    plan_path: Path | None = None
    steps: list[str] | None = None
    skip: list[str] | None = None
    file: str | None = None
    interactive: bool = False
    backup: bool = True
    apply: bool = False
    resume: bool = False


@dataclass
class _RunState:
    """Mutable bookkeeping for a single ``run``; never shared between runs."""

    completed: list[str]
    failed: list[str]
    skipped: list[str]
    results: list[StepResult] = field(default_factory=list)
    buffers: dict[Path, str] = field(default_factory=dict)
    originals: dict[Path, str] = field(default_factory=dict)
    backed_up: set[Path] = field(default_factory=set)
    utility_blocks: list[str] = field(default_factory=list)
    token_definitions: list[str] = field(default_factory=list)

    def record(self, step: MigrationStep, status: StepStatus, error: str | None = None,
               diff: LineDiff | None = None) -> None:
        self.results.append(StepResult(
            step_id=step.id,
            status=status,
            file=step.file,
            action=describe_action(step.action),
            error=error,
            diff=diff,
        ))
        self.mark(step.id, status)

    def mark(self, step_id: str, status: StepStatus) -> None:
        for bucket in (self.completed, self.failed, self.skipped):
            if step_id in bucket:
                bucket.remove(step_id)
        if status is StepStatus.APPLIED:
            self.completed.append(step_id)
        elif status is StepStatus.FAILED:
            self.failed.append(step_id)
        elif status is StepStatus.SKIPPED:
            self.skipped.append(step_id)


class MigrationExecutor:
    """Runs a migration plan against a project."""

    def __init__(
        self,
        project_path: Path | None = None,
        paths: NorthPaths | None = None,
        session_factory: Callable[[], ConfirmationSession] | None = None,
        index_rebuilder: Callable[[], None] | None = None,
    ):
        self.project_path = (project_path or Path.cwd()).resolve()
        self.paths = paths or resolve_paths(self.project_path)
        self.session_factory = session_factory or ConfirmationSession
        self.index_rebuilder = index_rebuilder

    def run(self, options: MigrateOptions | None = None) -> MigrateReport:
        options = options or MigrateOptions()
        plan_path = self._resolve(options.plan_path) if options.plan_path else self.paths.plan_path
        checkpoint_path = self.paths.checkpoint_path

        plan = load_plan(plan_path)
        plan_hash = compute_plan_hash(plan)

        checkpoint = None
        if options.resume:
            checkpoint = load_checkpoint(checkpoint_path)
            if checkpoint is not None:
                verify_checkpoint(checkpoint, plan_hash)

        scheduled = schedule_steps(
            plan.steps,
            include=options.steps,
            skip=options.skip,
            file=options.file,
            completed=checkpoint.completed_steps if checkpoint else None,
        )

        if not scheduled:
            guidance = (
                "All steps completed or skipped."
                if checkpoint
                else "No steps to execute. Check filters or run 'north propose' to generate a new plan."
            )
            return MigrateReport(applied=False, plan_path=str(plan_path), next_steps=[guidance])

        if not options.apply:
            return self._preview(plan_path, scheduled)

        state = _RunState(
            completed=list(checkpoint.completed_steps) if checkpoint else [],
            failed=list(checkpoint.failed_steps) if checkpoint else [],
            skipped=list(checkpoint.skipped_steps) if checkpoint else [],
        )

        if options.interactive:
            with self.session_factory() as session:
                self._execute(scheduled, state, options.backup, session)
        else:
            self._execute(scheduled, state, options.backup, None)

        modified = self._commit_buffers(state)

        warnings = []
        if state.utility_blocks or state.token_definitions:
            try:
                self._append_side_effects(state)
                modified.add(self.paths.base_css_path)
            except FileWriteError as e:
                message = f"Could not update {self.paths.base_css_path}: {e.message}"
                logger.warning(message)
                warnings.append(message)

        if modified:
            self._rebuild_index()

        new_checkpoint = MigrationCheckpoint(
            plan_path=str(plan_path),
            plan_hash=plan_hash,
            completed_steps=state.completed,
            failed_steps=state.failed,
            skipped_steps=state.skipped,
            last_updated=utc_timestamp(),
        )
        save_checkpoint(checkpoint_path, new_checkpoint)

        summary = _summarize(state.results, len(modified))
        return MigrateReport(
            applied=True,
            plan_path=str(plan_path),
            checkpoint_path=str(checkpoint_path),
            results=state.results,
            summary=summary,
            checkpoint=new_checkpoint,
            next_steps=_next_steps(summary),
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Step loop
    # ------------------------------------------------------------------

    def _execute(
        self,
        steps: list[MigrationStep],
        state: _RunState,
        backup: bool,
        session: ConfirmationSession | None,
    ) -> None:
        confirm_each = session is not None

        for step in steps:
            if any(dep in state.failed for dep in step.dependencies or ()):
                logger.debug("Skipping %s: dependency failed", step.id)
                state.record(step, StepStatus.SKIPPED, error=DEPENDENCY_FAILED)
                continue

            if confirm_each:
                decision = session.confirm(step)
                if decision is Decision.QUIT:
                    logger.info("Stopped at %s on user request", step.id)
                    break
                if decision is Decision.NO:
                    state.record(step, StepStatus.SKIPPED)
                    continue
                if decision is Decision.ALL:
                    confirm_each = False

            self._apply_one(step, state, backup)

    def _apply_one(self, step: MigrationStep, state: _RunState, backup: bool) -> None:
        path = self._resolve(Path(step.file))

        content = state.buffers.get(path)
        if content is None:
            try:
                content = path.read_text(encoding="utf-8")
            except FileNotFoundError:
                state.record(step, StepStatus.FAILED, error=f"File not found: {step.file}")
                return
            except (OSError, UnicodeDecodeError) as e:
                state.record(step, StepStatus.FAILED, error=f"Could not read {step.file}: {e}")
                return
            state.buffers[path] = content
            state.originals[path] = content
            logger.debug("Cached %s", path)

        result = apply_step(content, step)
        if result is None:
            state.record(
                step, StepStatus.FAILED, error=f"Could not locate target at line {step.line}"
            )
            return

        if backup and path not in state.backed_up:
            self._backup(path)
            state.backed_up.add(path)

        state.buffers[path] = result.content

        if result.side_effect is not None:
            if result.side_effect.kind is SideEffectKind.UTILITY:
                state.utility_blocks.append(result.side_effect.value)
            elif result.side_effect.kind is SideEffectKind.TOKEN:
                state.token_definitions.append(result.side_effect.value)

        logger.debug("Applied %s to %s", step.id, step.file)
        state.record(step, StepStatus.APPLIED, diff=result.diff)

    def _backup(self, path: Path) -> None:
        backup_path = path.with_name(path.name + BACKUP_SUFFIX)
        try:
            shutil.copyfile(path, backup_path)
        except OSError as e:
            logger.warning("Could not back up %s: %s", path, e)

    # ------------------------------------------------------------------
    # Deferred writes
    # ------------------------------------------------------------------

    def _commit_buffers(self, state: _RunState) -> set[Path]:
        modified: set[Path] = set()
        for path, content in state.buffers.items():
            if content == state.originals.get(path):
                continue
            try:
                write_file_atomic(path, content)
            except FileWriteError as e:
                logger.warning("Failed to write %s: %s", path, e.message)
                self._fail_file_results(path, state, f"Failed to write file: {e.message}")
                continue
            modified.add(path)
            logger.info("Wrote %s", path)
        return modified

    def _fail_file_results(self, path: Path, state: _RunState, error: str) -> None:
        for result in state.results:
            if result.status is StepStatus.APPLIED and self._resolve(Path(result.file)) == path:
                result.status = StepStatus.FAILED
                result.error = error
                state.mark(result.step_id, StepStatus.FAILED)

    def _append_side_effects(self, state: _RunState) -> None:
        css_path = self.paths.base_css_path
        try:
            css = css_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            css = ""
        except (OSError, UnicodeDecodeError) as e:
            raise FileWriteError(f"Failed to read stylesheet: {e}", css_path, e) from e

        if state.token_definitions:
            tokens = "\n  ".join(state.token_definitions)
            css = css.rstrip() + f"\n/* north migrate: tokens */\n@theme {{\n  {tokens}\n}}\n"

        if state.utility_blocks:
            utilities = "\n\n".join(state.utility_blocks)
            css = css.rstrip() + f"\n/* north migrate: utilities */\n{utilities}\n"

        write_file_atomic(css_path, css)
        logger.info(
            "Appended %d token(s) and %d utility block(s) to %s",
            len(state.token_definitions), len(state.utility_blocks), css_path,
        )

    def _rebuild_index(self) -> None:
        if self.index_rebuilder is None:
            return
        try:
            self.index_rebuilder()
        except Exception as e:
            logger.warning("Index rebuild failed: %s", e)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _preview(self, plan_path: Path, steps: list[MigrationStep]) -> MigrateReport:
        results = [
            StepResult(
                step_id=step.id,
                status=StepStatus.PENDING,
                file=step.file,
                action=describe_action(step.action),
            )
            for step in steps
        ]
        return MigrateReport(
            applied=False,
            plan_path=str(plan_path),
            results=results,
            summary=MigrateSummary(
                total=len(steps),
                files_changed=len({step.file for step in steps}),
            ),
        )

    def _resolve(self, file: Path) -> Path:
        """Resolve a possibly relative file path."""
        if file.is_absolute():
            return file
        return (self.project_path / file).resolve()


def _summarize(results: list[StepResult], files_changed: int) -> MigrateSummary:
    summary = MigrateSummary(total=len(results), files_changed=files_changed)
    for result in results:
        if result.status is StepStatus.APPLIED:
            summary.applied += 1
            if result.diff is not None:
                summary.lines_removed += result.diff.removed
                summary.lines_added += result.diff.added
        elif result.status is StepStatus.FAILED:
            summary.failed += 1
        elif result.status is StepStatus.SKIPPED:
            summary.skipped += 1
    return summary


def _next_steps(summary: MigrateSummary) -> list[str]:
    steps = []
    if summary.failed > 0:
        steps.append("Fix failed steps manually or adjust plan")
        steps.append("Run 'north migrate --continue --apply' to retry")
    if summary.applied > 0:
        steps.append("Run 'north check' to verify remaining violations")
    return steps
