"""north: turn stylesheet-utility lint violations into resumable source migrations."""

from north._version import __version__
from north.migrate.executor import MigrationExecutor, MigrateOptions
from north.migrate.planner import ProposeOptions, build_plan, propose
from north.migrate.state import compute_plan_hash, load_plan

__all__ = [
    "__version__",
    "MigrationExecutor",
    "MigrateOptions",
    "ProposeOptions",
    "build_plan",
    "propose",
    "compute_plan_hash",
    "load_plan",
]
