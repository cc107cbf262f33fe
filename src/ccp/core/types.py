"""Enumerations shared by the hub, profile and settings modules.

Enum member order is significant: iteration over ``HubItemType`` and
``DataItemType`` follows declaration order, which keeps directory
creation, manifest flattening and drift reports deterministic.
"""

from __future__ import annotations

from enum import StrEnum


class HubItemType(StrEnum):
    """Category of a reusable hub item (also the subdirectory name)."""

    SKILLS = "skills"
    AGENTS = "agents"
    HOOKS = "hooks"
    RULES = "rules"
    COMMANDS = "commands"
    SETTING_FRAGMENTS = "setting-fragments"

    @property
    def field_name(self) -> str:
        """Attribute name used for this type on manifest models."""
        return self.value.replace("-", "_")


class DataItemType(StrEnum):
    """Per-profile data directory that can be shared or isolated."""

    TASKS = "tasks"
    TODOS = "todos"
    PASTE_CACHE = "paste-cache"
    HISTORY = "history"
    FILE_HISTORY = "file-history"
    SESSION_ENV = "session-env"
    PROJECTS = "projects"
    PLANS = "plans"

    @property
    def field_name(self) -> str:
        return self.value.replace("-", "_")


class ShareMode(StrEnum):
    """Whether a data directory links into the shared root or stays local."""

    SHARED = "shared"
    ISOLATED = "isolated"


class HookType(StrEnum):
    """Hook event types understood by the settings document."""

    SESSION_START = "SessionStart"
    USER_PROMPT_SUBMIT = "UserPromptSubmit"
    PRE_TOOL_USE = "PreToolUse"
    POST_TOOL_USE = "PostToolUse"
    STOP = "Stop"
    SUBAGENT_STOP = "SubagentStop"


DEFAULT_HOOK_TIMEOUT = 60

DEFAULT_DATA_CONFIG: dict[DataItemType, ShareMode] = {
    DataItemType.TASKS: ShareMode.SHARED,
    DataItemType.TODOS: ShareMode.SHARED,
    DataItemType.PASTE_CACHE: ShareMode.SHARED,
    DataItemType.HISTORY: ShareMode.ISOLATED,
    DataItemType.FILE_HISTORY: ShareMode.ISOLATED,
    DataItemType.SESSION_ENV: ShareMode.ISOLATED,
    DataItemType.PROJECTS: ShareMode.SHARED,
    DataItemType.PLANS: ShareMode.ISOLATED,
}


def all_hub_item_types() -> list[HubItemType]:
    """Return hub item types in canonical order."""
    return list(HubItemType)


def all_data_item_types() -> list[DataItemType]:
    """Return data item types in canonical order."""
    return list(DataItemType)
