"""Exception hierarchy shared by the propose/migrate/promote pipeline."""

from __future__ import annotations

from pathlib import Path


class NorthError(Exception):
    """Base class for errors that abort a north command."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ConfigError(NorthError):
    """north.toml is malformed or holds an invalid value."""


class ViolationSourceError(NorthError):
    """The violation stream could not be read or parsed."""


class PlanNotFoundError(NorthError):
    """No migration plan exists at the expected path."""


class PlanSchemaError(NorthError):
    """A plan file is not valid JSON or not a version 1 plan."""


class CheckpointIntegrityError(NorthError):
    """The checkpoint was recorded against a different plan."""


class PromoteError(NorthError):
    """A utility promotion could not be applied."""


class FileWriteError(NorthError):
    """An atomic write failed; the target file is left untouched."""

    def __init__(self, message: str, file_path: Path, cause: BaseException | None = None):
        super().__init__(message, cause)
        self.file_path = file_path
