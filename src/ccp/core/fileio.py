"""Atomic replacement of persisted files (manifests, settings, hook declarations)."""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path

from ccp.errors import PathError

logger = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o644


def atomic_write_text(path: Path, content: str, op: str = "write") -> None:
    """Replace ``path`` with ``content`` (temp file + rename).

    The temp file is dot-prefixed and created in the same directory, so
    the rename stays on one filesystem and directory scans skip it while
    it exists. An existing file keeps its permission bits.

    Raises:
        PathError: If the file cannot be written; ``path`` is left untouched
    """
    path = Path(path)
    try:
        mode = stat.S_IMODE(os.stat(path).st_mode)
    except OSError:
        mode = DEFAULT_FILE_MODE

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    except OSError as exc:
        raise PathError(op, path, exc) from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except OSError as exc:
        _discard(tmp_path)
        raise PathError(op, path, exc) from exc
    except Exception:
        _discard(tmp_path)
        raise
    logger.debug("Wrote %s", path)


def _discard(tmp_path: str) -> None:
    try:
        os.unlink(tmp_path)
    except FileNotFoundError:
        return
    except OSError as exc:
        logger.warning("Could not remove temporary file %s: %s", tmp_path, exc)
