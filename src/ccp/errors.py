"""Exception hierarchy for profile and hub operations."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .profile.drift import DriftItem, FixResult


class CcpError(Exception):
    """Base exception for ccp errors."""


class NotFoundError(CcpError):
    """A profile, hub item, fragment or source does not exist."""


class ProfileNotFoundError(NotFoundError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"profile not found: {name}")


class HubItemNotFoundError(NotFoundError):
    def __init__(self, item_type: str, item_name: str):
        self.item_type = item_type
        self.item_name = item_name
        super().__init__(f"hub item not found: {item_type}/{item_name}")


class FragmentNotFoundError(NotFoundError):
    def __init__(self, name: str, path: Path | None = None):
        self.name = name
        self.path = path
        location = f" ({path})" if path is not None else ""
        super().__init__(f"setting fragment not found: {name}{location}")


class AlreadyExistsError(CcpError):
    """A profile or install destination already exists."""


class ProfileExistsError(AlreadyExistsError):
    def __init__(self, name: str, path: Path | None = None):
        self.name = name
        self.path = path
        super().__init__(f"profile already exists: {name}")


class InvalidProfileNameError(CcpError):
    """A profile name that cannot name a directory under the profiles root."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"invalid profile name {name!r}: {reason}")


class InvalidManifestError(CcpError):
    """Raised when a manifest parses neither as the current nor the legacy format."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"invalid profile manifest {path}: {reason}")


class PathError(CcpError):
    """A filesystem operation failed on a specific path.

    Attributes:
        op: Short operation name (``"symlink"``, ``"remove"``, ``"mkdir"`` ...)
        path: Path the operation was applied to
        cause: Underlying exception, if any
    """

    def __init__(self, op: str, path: Path | str, cause: BaseException | None = None):
        self.op = op
        self.path = Path(path)
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{op}: {self.path}{detail}")


class NotASymlinkError(PathError):
    def __init__(self, op: str, path: Path | str):
        super().__init__(op, path, None)
        self.args = (f"{op}: {self.path}: path is not a symlink",)


class BrokenSymlinkError(PathError):
    def __init__(self, op: str, path: Path | str, target: str | None = None):
        super().__init__(op, path, None)
        self.target = target
        self.args = (f"{op}: {self.path}: broken symlink -> {target}",)


class DriftError(CcpError):
    """Profile has configuration drift that was not resolved.

    When raised by :meth:`DriftDetector.fix`, ``result`` holds the actions
    that were computed or applied before the failing issue.
    """

    def __init__(
        self,
        profile: str,
        issues: Sequence["DriftItem"],
        result: "FixResult | None" = None,
    ):
        self.profile = profile
        self.issues = list(issues)
        self.result = result
        super().__init__(
            f"profile {profile} has {len(self.issues)} configuration drift issues"
        )
