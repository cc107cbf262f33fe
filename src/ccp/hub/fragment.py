"""Setting fragments: single key/value units merged into settings.json.

A fragment file lives at ``<hub>/setting-fragments/<name>.yaml``::

    name: model-opus
    description: Use the large model by default
    key: model
    value: opus
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable

from pydantic import BaseModel, Field, ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ccp.core.paths import FRAGMENT_SUFFIXES
from ccp.core.types import HubItemType
from ccp.errors import FragmentNotFoundError, PathError

logger = logging.getLogger(__name__)


class Fragment(BaseModel):
    """A named settings key/value pair."""

    name: str = ""
    description: str = ""
    key: str = Field(..., min_length=1, description="Top-level settings.json key")
    value: Any = None


class FragmentReader:
    """Reads setting fragments from a hub directory."""

    def __init__(self, hub_dir: Path):
        self.hub_dir = Path(hub_dir)

    def fragment_path(self, name: str) -> Path | None:
        base = self.hub_dir / HubItemType.SETTING_FRAGMENTS.value
        for suffix in FRAGMENT_SUFFIXES:
            candidate = base / f"{name}{suffix}"
            if candidate.is_file():
                return candidate
        return None

    def read(self, name: str) -> Fragment:
        """Read a single fragment by logical name.

        Raises:
            FragmentNotFoundError: If no fragment file exists
            PathError: If the file cannot be read or is not a valid fragment
        """
        path = self.fragment_path(name)
        if path is None:
            raise FragmentNotFoundError(name)

        yaml = YAML(typ="safe")
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = yaml.load(handle) or {}
        except (OSError, YAMLError) as exc:
            raise PathError("read fragment", path, exc) from exc

        if not isinstance(data, dict):
            raise PathError("read fragment", path, ValueError("fragment must be a mapping"))
        try:
            return Fragment.model_validate(data)
        except ValidationError as exc:
            raise PathError("read fragment", path, exc) from exc

    def read_all(self, names: Iterable[str]) -> list[Fragment]:
        return [self.read(name) for name in names]


def merge_fragments(fragments: Iterable[Fragment]) -> dict[str, Any]:
    """Merge fragments in order; a later fragment overrides an earlier key."""
    settings: dict[str, Any] = {}
    for fragment in fragments:
        settings[fragment.key] = fragment.value
    return settings


def merge_fragments_from_hub(
    hub_dir: Path,
    names: Iterable[str],
    skip_missing: bool = False,
) -> dict[str, Any]:
    """Read and merge the named fragments from ``hub_dir``.

    Args:
        hub_dir: Hub root directory
        names: Fragment names in manifest order
        skip_missing: Omit fragments whose file is gone instead of raising

    Returns:
        Merged settings mapping.
    """
    reader = FragmentReader(hub_dir)
    fragments: list[Fragment] = []
    for name in names:
        try:
            fragments.append(reader.read(name))
        except FragmentNotFoundError:
            if not skip_missing:
                raise
            logger.warning("Setting fragment %s not found in hub; skipping", name)
    return merge_fragments(fragments)
