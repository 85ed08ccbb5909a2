"""Plan loading, plan hashing and checkpoint persistence.

A checkpoint is bound to the plan it was recorded against through
``planHash``. The hash covers the full serialized plan, so any regenerated
plan (even one with identical steps but a new ``createdAt``) invalidates it.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path

from north.core.errors import CheckpointIntegrityError, PlanNotFoundError, PlanSchemaError
from north.core.file_writer import write_file_atomic
from north.core.models import PLAN_VERSION, MigrationCheckpoint, MigrationPlan

logger = logging.getLogger(__name__)

HASH_PREFIX = "sha256:"
HASH_LENGTH = 16


def load_plan(plan_path: Path) -> MigrationPlan:
    """Load and validate a plan file.

    Raises PlanNotFoundError if the file is missing and PlanSchemaError if it
    is not a well-formed version 1 plan.
    """
    try:
        content = plan_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise PlanNotFoundError(f"Plan not found: {plan_path}. Run 'north propose' first.") from None
    except (OSError, UnicodeDecodeError) as e:
        raise PlanSchemaError(f"Failed to load plan: {e}", e) from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise PlanSchemaError(f"Failed to load plan: {e}", e) from e

    if not isinstance(data, dict):
        raise PlanSchemaError("Failed to load plan: expected a JSON object")

    version = data.get("version")
    if version != PLAN_VERSION:
        raise PlanSchemaError(
            f"Invalid plan format. Expected version {PLAN_VERSION}, got {version}"
        )

    try:
        plan = MigrationPlan.from_dict(data)
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        raise PlanSchemaError(f"Failed to load plan: invalid field {e}", e) from e

    logger.debug("Loaded plan %s with %d step(s)", plan_path, len(plan.steps))
    return plan


def compute_plan_hash(plan: MigrationPlan) -> str:
    """Truncated SHA-256 of the compact JSON encoding of ``plan``."""
    serialized = json.dumps(plan.to_dict(), separators=(",", ":"), ensure_ascii=False)
    digest = hashlib.sha256(serialized.encode("utf-8")).hexdigest()
    return f"{HASH_PREFIX}{digest[:HASH_LENGTH]}"


def load_checkpoint(checkpoint_path: Path) -> MigrationCheckpoint | None:
    """Return the saved checkpoint, or None if there is no usable one."""
    try:
        content = checkpoint_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read checkpoint %s: %s", checkpoint_path, e)
        return None

    try:
        return MigrationCheckpoint.from_dict(json.loads(content))
    except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
        logger.warning("Ignoring unreadable checkpoint %s: %s", checkpoint_path, e)
        return None


def save_checkpoint(checkpoint_path: Path, checkpoint: MigrationCheckpoint) -> None:
    write_file_atomic(checkpoint_path, json.dumps(checkpoint.to_dict(), indent=2))
    logger.info(
        "Saved checkpoint %s (%d completed, %d failed, %d skipped)",
        checkpoint_path,
        len(checkpoint.completed_steps),
        len(checkpoint.failed_steps),
        len(checkpoint.skipped_steps),
    )


def verify_checkpoint(checkpoint: MigrationCheckpoint, plan_hash: str) -> None:
    """Refuse to resume against a plan other than the one the checkpoint recorded."""
    if checkpoint.plan_hash != plan_hash:
        raise CheckpointIntegrityError(
            "Plan has changed since checkpoint. Remove checkpoint to restart."
        )
