"""Helpers for multi-step filesystem changes."""

from ccp.migration.rollback import Rollback

__all__ = ["Rollback"]
