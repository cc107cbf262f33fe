"""Record filesystem changes so a failed multi-step operation can be undone."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from ccp.errors import PathError

logger = logging.getLogger(__name__)


@dataclass
class Rollback:
    """Undo log of created directories and moves.

    ``execute`` restores moves newest first, then removes the recorded
    directories newest first. Every step is attempted; the first failure
    is raised once all steps have run.
    """

    dirs: list[Path] = field(default_factory=list)
    moves: list[tuple[Path, Path]] = field(default_factory=list)

    def add_dir(self, path: Path) -> None:
        self.dirs.append(Path(path))

    def add_move(self, new_path: Path, original_path: Path) -> None:
        """Record that ``original_path`` was moved to ``new_path``."""
        self.moves.append((Path(new_path), Path(original_path)))

    def execute(self) -> None:
        first_error: PathError | None = None

        for new_path, original_path in reversed(self.moves):
            try:
                os.rename(new_path, original_path)
            except OSError as exc:
                logger.warning("Rollback could not restore %s: %s", original_path, exc)
                if first_error is None:
                    first_error = PathError("rename", new_path, exc)
            else:
                logger.debug("Restored %s -> %s", new_path, original_path)

        for path in reversed(self.dirs):
            try:
                shutil.rmtree(path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Rollback could not remove %s: %s", path, exc)
                if first_error is None:
                    first_error = PathError("remove", path, exc)
            else:
                logger.debug("Removed %s", path)

        if first_error is not None:
            raise first_error

    def clear(self) -> None:
        self.dirs.clear()
        self.moves.clear()
