"""Single source of truth for "preview by default, mutate only on explicit apply".

The CLI still accepts the legacy ``--dry-run`` flag; MCP callers only ever pass
``apply``. Both are collapsed into one boolean here so nothing downstream has
to reconcile two independently settable flags.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ResolvedSafeMode:
    should_apply: bool


def resolve_safe_mode(
    apply: bool | None = None,
    dry_run: bool | None = None,
    context: str = "mcp",
) -> ResolvedSafeMode:
    """Resolve the apply/dry-run pair.

    - ``mcp``: only ``apply is True`` mutates; ``dry_run`` is ignored.
    - ``cli``: ``apply`` wins when given, otherwise ``not dry_run``,
      otherwise preview.
    """
    if context == "mcp":
        return ResolvedSafeMode(should_apply=apply is True)

    if context != "cli":
        raise ValueError(f"Unknown safe mode context: {context!r}")

    if apply is not None:
        should_apply = apply
    elif dry_run is not None:
        should_apply = not dry_run
    else:
        should_apply = False

    return ResolvedSafeMode(should_apply=should_apply)
