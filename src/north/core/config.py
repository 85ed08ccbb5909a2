"""Configuration management for north (north.toml parsing + defaults)."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from north.core.errors import ConfigError
from north.core.models import Strategy

CONFIG_FILENAME = "north.toml"
DEFAULT_NORTH_DIR = ".north"
PLAN_FILENAME = "migration-plan.json"
CHECKPOINT_FILENAME = "migration-checkpoint.json"
BASE_CSS_FILENAME = "base.css"


@dataclass
class ProposeConfig:
    strategy: str = Strategy.BALANCED.value
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    max_changes: int = 0  # 0 = no per-file cap


@dataclass
class MigrateConfig:
    backup: bool = True
    interactive: bool = False
    base_css: str | None = None  # defaults to <north_dir>/tokens/base.css


@dataclass
class NorthConfig:
    """Complete north configuration."""

    north_dir: str = DEFAULT_NORTH_DIR
    propose: ProposeConfig = field(default_factory=ProposeConfig)
    migrate: MigrateConfig = field(default_factory=MigrateConfig)


@dataclass(frozen=True)
class NorthPaths:
    """Resolved on-disk locations for one project."""

    plan_path: Path
    checkpoint_path: Path
    base_css_path: Path


def load_config(project_path: Path | None = None) -> NorthConfig:
    """Load configuration from north.toml if present, otherwise return defaults."""
    config = NorthConfig()

    if project_path is None:
        project_path = Path.cwd()

    config_file = project_path / CONFIG_FILENAME
    if not config_file.exists():
        return config

    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid {CONFIG_FILENAME}: {e}", e) from e

    if "general" in data:
        gen = data["general"]
        if "north_dir" in gen:
            config.north_dir = gen["north_dir"]

    if "propose" in data:
        p = data["propose"]
        for attr in ("strategy", "include", "exclude", "max_changes"):
            if attr in p:
                setattr(config.propose, attr, p[attr])

    if "migrate" in data:
        m = data["migrate"]
        for attr in ("backup", "interactive", "base_css"):
            if attr in m:
                setattr(config.migrate, attr, m[attr])

    parse_strategy(config.propose.strategy)
    if not isinstance(config.propose.max_changes, int) or config.propose.max_changes < 0:
        raise ConfigError(
            f"propose.max_changes must be a non-negative integer, got {config.propose.max_changes!r}"
        )

    return config


def parse_strategy(value: str | Strategy) -> Strategy:
    """Map a strategy name onto :class:`Strategy`, rejecting unknown names."""
    if isinstance(value, Strategy):
        return value
    try:
        return Strategy(value)
    except ValueError:
        names = ", ".join(s.value for s in Strategy)
        raise ConfigError(f"Unknown strategy '{value}'. Expected one of: {names}") from None


def resolve_paths(project_path: Path | None = None, config: NorthConfig | None = None) -> NorthPaths:
    """Resolve the state/tokens layout under the project's north directory."""
    root = (project_path or Path.cwd()).resolve()
    config = config or NorthConfig()

    north_dir = root / config.north_dir
    state_dir = north_dir / "state"
    tokens_dir = north_dir / "tokens"
    base_css = root / config.migrate.base_css if config.migrate.base_css else tokens_dir / BASE_CSS_FILENAME

    return NorthPaths(
        plan_path=state_dir / PLAN_FILENAME,
        checkpoint_path=state_dir / CHECKPOINT_FILENAME,
        base_css_path=base_css,
    )
