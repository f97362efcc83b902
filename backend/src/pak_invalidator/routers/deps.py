"""Shared FastAPI dependencies used across routers."""

from pak_invalidator.config import settings
from pak_invalidator.services.deployment import DeploymentTracker
from pak_invalidator.services.workspace import InvalidationWorkspace

_workspace: InvalidationWorkspace | None = None
_tracker: DeploymentTracker | None = None


def get_workspace() -> InvalidationWorkspace:
    global _workspace
    if _workspace is None:
        _workspace = InvalidationWorkspace.from_settings(settings)
    return _workspace


def get_tracker() -> DeploymentTracker:
    global _tracker
    if _tracker is None:
        _tracker = DeploymentTracker(get_workspace())
    return _tracker
