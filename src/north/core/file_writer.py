"""Atomic file writes: write a sibling temp file, then rename it over the target.

The temp file lives in the target's directory so the final ``os.replace`` never
crosses a filesystem boundary. If the target already exists its permission bits
are copied onto the temp file before the rename.
"""

from __future__ import annotations

import logging
import os
import secrets
import stat
from pathlib import Path

from north.core.errors import FileWriteError

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".north-tmp-"


def _temp_path_for(target: Path) -> Path:
    return target.parent / f"{TEMP_PREFIX}{secrets.token_hex(8)}"


def _existing_mode(path: Path) -> int | None:
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        return None


def write_file_atomic(path: Path | str, content: str) -> None:
    """Write ``content`` to ``path`` so readers never observe a partial file.

    Missing parent directories are created. Raises :class:`FileWriteError`
    on any failure, after removing the temp file.
    """
    target = Path(path)

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileWriteError(f"Failed to create directory: {e}", target.parent, e) from e

    mode = _existing_mode(target)
    temp = _temp_path_for(target)

    try:
        temp.write_text(content, encoding="utf-8")
        if mode is not None:
            os.chmod(temp, mode)
        os.replace(temp, target)
    except OSError as e:
        try:
            temp.unlink()
        except FileNotFoundError:
            pass
        except OSError:
            logger.debug("Could not remove temp file %s", temp)
        raise FileWriteError(f"Failed to write file: {e}", target, e) from e

    logger.debug("Wrote %s (%d bytes)", target, len(content))
