"""Drift detection and repair for profile symlink trees.

A profile's manifest declares which hub items it links; the profile
directory holds the symlinks that realise those links. Drift is any
divergence between the two:

- missing:     declared in the manifest, nothing at the profile path
- broken:      a symlink whose target no longer exists
- mismatched:  a symlink to somewhere else, or a plain entry in its place
- extra:       an entry in the profile directory the manifest does not declare
- hub_missing: declared, but the hub item itself is gone (opt-in check)

Setting fragments are merged into settings.json, never symlinked, so they
are not checked here.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from ccp.core.paths import Paths
from ccp.core.types import HubItemType, all_hub_item_types
from ccp.errors import CcpError, DriftError, HubItemNotFoundError, PathError
from ccp.hub.catalog import HubCatalog
from ccp.symlink import SymlinkManager

if TYPE_CHECKING:
    from ccp.profile.manager import Profile

logger = logging.getLogger(__name__)


class DriftType(StrEnum):
    MISSING = "missing"
    EXTRA = "extra"
    BROKEN = "broken"
    MISMATCHED = "mismatched"
    HUB_MISSING = "hub_missing"


@dataclass(frozen=True)
class DriftItem:
    """A single divergence between manifest and profile directory.

    Attributes:
        kind: Classification of the issue
        item_type: Hub item type of the affected entry
        item_name: Entry name within the type directory
        expected: Canonical hub path (mismatched only)
        actual: Observed link target (broken and mismatched)
    """

    kind: DriftType
    item_type: HubItemType
    item_name: str
    expected: Path | None = None
    actual: Path | None = None

    def describe(self) -> str:
        return f"{self.kind}: {self.item_type}/{self.item_name}"


@dataclass
class DriftReport:
    profile: str
    issues: list[DriftItem] = field(default_factory=list)

    def has_drift(self) -> bool:
        return bool(self.issues)

    def issues_by_type(self) -> dict[DriftType, list[DriftItem]]:
        grouped: dict[DriftType, list[DriftItem]] = {}
        for issue in self.issues:
            grouped.setdefault(issue.kind, []).append(issue)
        return grouped


ConfirmCallback = Callable[[list[DriftItem]], list[DriftItem]]


@dataclass
class FixOptions:
    """How :meth:`DriftDetector.fix` treats its report.

    Attributes:
        dry_run: Record actions without touching the filesystem or manifest
        force: Drop every hub_missing item from the manifest without asking
        confirm: Receives the hub_missing items and returns those to drop
    """

    dry_run: bool = False
    force: bool = False
    confirm: ConfirmCallback | None = None


@dataclass
class FixResult:
    actions: list[str] = field(default_factory=list)
    manifest_updated: bool = False
    removed_items: list[DriftItem] = field(default_factory=list)


class DriftDetector:
    """Compares profiles with their manifests and repairs the difference."""

    def __init__(
        self,
        paths: Paths,
        symlinks: SymlinkManager | None = None,
        catalog: HubCatalog | None = None,
    ):
        self.paths = paths
        self.symlinks = symlinks or SymlinkManager()
        self.catalog = catalog or HubCatalog(paths)

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect(self, profile: Profile, check_hub: bool = False) -> DriftReport:
        """Classify every divergence for ``profile``.

        Args:
            profile: Profile to inspect
            check_hub: Also report declared items whose hub entry is gone

        Returns:
            Report with issues grouped by type in canonical order; within a
            type, declared items come first in manifest order, then extras
            in directory order.
        """
        report = DriftReport(profile=profile.name)
        for item_type in all_hub_item_types():
            if item_type is HubItemType.SETTING_FRAGMENTS:
                continue
            report.issues.extend(self._detect_type(profile, item_type, check_hub))
        logger.debug("Drift check for %s: %d issues", profile.name, len(report.issues))
        return report

    def _detect_type(
        self, profile: Profile, item_type: HubItemType, check_hub: bool
    ) -> list[DriftItem]:
        issues: list[DriftItem] = []
        declared = profile.manifest.get_hub_items(item_type)
        item_dir = Path(profile.path) / item_type.value

        for name in declared:
            if check_hub and not self.catalog.exists(item_type, name):
                issues.append(DriftItem(DriftType.HUB_MISSING, item_type, name))
                continue

            info = self.symlinks.info(item_dir / name)
            if not info.exists:
                issues.append(DriftItem(DriftType.MISSING, item_type, name))
                continue
            if not info.is_symlink:
                # A real file or directory where a hub link belongs.
                issues.append(
                    DriftItem(
                        DriftType.MISMATCHED,
                        item_type,
                        name,
                        expected=self.catalog.item_path(item_type, name),
                    )
                )
                continue
            if info.is_broken:
                issues.append(DriftItem(DriftType.BROKEN, item_type, name, actual=info.target))
                continue

            expected = self.catalog.item_path(item_type, name)
            if not self.symlinks.validate(item_dir / name, expected):
                issues.append(
                    DriftItem(
                        DriftType.MISMATCHED,
                        item_type,
                        name,
                        expected=expected,
                        actual=info.target,
                    )
                )

        try:
            with os.scandir(item_dir) as it:
                entries = sorted(entry.name for entry in it)
        except FileNotFoundError:
            return issues
        except OSError as exc:
            raise PathError("scan", item_dir, exc) from exc

        declared_set = set(declared)
        for name in entries:
            if name.startswith(".") or name in declared_set:
                continue
            issues.append(DriftItem(DriftType.EXTRA, item_type, name))
        return issues

    def check(self, profile: Profile, check_hub: bool = False) -> DriftReport:
        """Detect drift and raise :class:`DriftError` if there is any."""
        report = self.detect(profile, check_hub=check_hub)
        if report.has_drift():
            raise DriftError(profile.name, report.issues)
        return report

    # ------------------------------------------------------------------
    # Repair
    # ------------------------------------------------------------------

    def fix(
        self,
        profile: Profile,
        report: DriftReport,
        options: FixOptions | None = None,
    ) -> FixResult:
        """Repair the issues in ``report``.

        hub_missing issues are resolved first by editing the manifest;
        the rest are repaired in report order. Action descriptions are
        recorded whether or not ``dry_run`` is set.

        Raises:
            DriftError: On the first issue that cannot be repaired. The
                error carries the unresolved issues and the partial result.
        """
        options = options or FixOptions()
        result = FixResult()

        hub_missing = [i for i in report.issues if i.kind is DriftType.HUB_MISSING]
        others = [i for i in report.issues if i.kind is not DriftType.HUB_MISSING]

        if hub_missing:
            self._fix_hub_missing(profile, hub_missing, options, result)

        for index, issue in enumerate(others):
            try:
                action = self._fix_issue(profile, issue, options.dry_run)
            except CcpError as exc:
                logger.warning("Could not repair %s in %s: %s", issue.describe(), profile.name, exc)
                raise DriftError(profile.name, others[index:], result=result) from exc
            if action:
                result.actions.append(action)
        return result

    def _fix_hub_missing(
        self,
        profile: Profile,
        issues: list[DriftItem],
        options: FixOptions,
        result: FixResult,
    ) -> None:
        if options.dry_run:
            for issue in issues:
                result.actions.append(
                    f"remove from manifest: {issue.item_type}/{issue.item_name} (hub item not found)"
                )
            return

        if options.force:
            to_remove = list(issues)
        elif options.confirm is not None:
            to_remove = list(options.confirm(list(issues)))
        else:
            to_remove = []

        for issue in to_remove:
            profile.manifest.remove_hub_item(issue.item_type, issue.item_name)
            result.actions.append(f"removed from manifest: {issue.item_type}/{issue.item_name}")
            result.removed_items.append(issue)

        if to_remove:
            profile.manifest.save_to_dir(profile.path)
            result.manifest_updated = True

    def _fix_issue(self, profile: Profile, issue: DriftItem, dry_run: bool) -> str:
        item_path = Path(profile.path) / issue.item_type.value / issue.item_name
        hub_path = self.catalog.item_path(issue.item_type, issue.item_name)

        if issue.kind is DriftType.MISSING:
            if not dry_run:
                self._require_hub_item(issue)
                self.symlinks.create(item_path, hub_path)
            return f"create symlink: {item_path} -> {hub_path}"

        if issue.kind is DriftType.EXTRA:
            if not dry_run:
                _remove_tree(item_path)
            return f"remove: {item_path}"

        if issue.kind in (DriftType.BROKEN, DriftType.MISMATCHED):
            if not dry_run:
                if item_path.is_symlink():
                    self.symlinks.remove(item_path)
                else:
                    _remove_tree(item_path)
                self._require_hub_item(issue)
                self.symlinks.create(item_path, hub_path)
            return f"recreate symlink: {item_path} -> {hub_path}"

        return ""

    def _require_hub_item(self, issue: DriftItem) -> None:
        if not self.catalog.exists(issue.item_type, issue.item_name):
            raise HubItemNotFoundError(issue.item_type.value, issue.item_name)


def _remove_tree(path: Path) -> None:
    """Remove ``path`` and everything below it; a link is removed, not followed."""
    try:
        if path.is_symlink() or not path.is_dir():
            path.unlink()
        else:
            shutil.rmtree(path)
    except FileNotFoundError:
        return
    except OSError as exc:
        raise PathError("remove", path, exc) from exc
    logger.debug("Removed %s", path)
