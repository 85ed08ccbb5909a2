"""Selects which plan steps run and orders them so dependencies go first."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from north.core.models import MigrationStep

logger = logging.getLogger(__name__)


def filter_steps(
    steps: Iterable[MigrationStep],
    include: Iterable[str] | None = None,
    skip: Iterable[str] | None = None,
    file: str | None = None,
    completed: Iterable[str] | None = None,
) -> list[MigrationStep]:
    """Apply, in order: include ids, skip ids, file match, completed exclusion."""
    filtered = list(steps)

    include_set = set(include or ())
    if include_set:
        filtered = [s for s in filtered if s.id in include_set]

    skip_set = set(skip or ())
    if skip_set:
        filtered = [s for s in filtered if s.id not in skip_set]

    if file:
        suffix = f"/{file}"
        filtered = [s for s in filtered if s.file == file or s.file.endswith(suffix)]

    completed_set = set(completed or ())
    if completed_set:
        filtered = [s for s in filtered if s.id not in completed_set]

    return filtered


def topological_sort(steps: list[MigrationStep]) -> list[MigrationStep]:
    """Depth-first ordering by declared dependencies.

    Dependencies outside ``steps`` were filtered out and are ignored. A step
    reached again while it is still being visited closes a cycle; that edge is
    treated as satisfied and a warning is logged.
    """
    by_id = {step.id: step for step in steps}
    ordered: list[MigrationStep] = []
    visited: set[str] = set()

    def deps_of(step_id: str) -> Iterator[str]:
        return (d for d in by_id[step_id].dependencies or () if d in by_id)

    for root in steps:
        if root.id in visited:
            continue

        # Iterative: dependency chains may be deeper than the recursion limit.
        visiting = [root.id]
        on_path = {root.id}
        pending = [deps_of(root.id)]
        while pending:
            dep_id = next(pending[-1], None)
            if dep_id is None:
                pending.pop()
                step_id = visiting.pop()
                on_path.discard(step_id)
                visited.add(step_id)
                ordered.append(by_id[step_id])
                continue
            if dep_id in visited:
                continue
            if dep_id in on_path:
                cycle = visiting[visiting.index(dep_id):] + [dep_id]
                logger.warning(
                    "Dependency cycle between steps %s; breaking it at %s",
                    " -> ".join(cycle), dep_id,
                )
                continue
            visiting.append(dep_id)
            on_path.add(dep_id)
            pending.append(deps_of(dep_id))

    return ordered


def schedule_steps(
    steps: Iterable[MigrationStep],
    include: Iterable[str] | None = None,
    skip: Iterable[str] | None = None,
    file: str | None = None,
    completed: Iterable[str] | None = None,
) -> list[MigrationStep]:
    """Filter then order: the working set for one migrate run."""
    working = filter_steps(steps, include=include, skip=skip, file=file, completed=completed)
    return topological_sort(working)
