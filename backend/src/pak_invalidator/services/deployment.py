"""Drive invalidation and revalidation from deployment events.

Mods are processed one at a time; the cache layer relies on callers to
serialize passes per staging folder.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from pak_invalidator.archive.murmur3 import path_hash
from pak_invalidator.schemas.invalidation import InvalidationResult, RevalidationResult
from pak_invalidator.services.invalidation import invalidate_file_paths, normalize_path
from pak_invalidator.services.progress import ProgressCallback, noop_progress
from pak_invalidator.services.revalidation import revalidate_file_paths
from pak_invalidator.services.workspace import InvalidationWorkspace

logger = logging.getLogger(__name__)


def walk_mod_folder(mod_folder: Path) -> list[str]:
    """Return every file under *mod_folder* as a slash-separated relative path."""
    return sorted(
        p.relative_to(mod_folder).as_posix() for p in mod_folder.rglob("*") if p.is_file()
    )


def list_staged_mods(ws: InvalidationWorkspace) -> list[str]:
    if not ws.staging_folder.is_dir():
        return []
    return sorted(p.name for p in ws.staging_folder.iterdir() if p.is_dir())


def _mod_paths(ws: InvalidationWorkspace, mod_name: str) -> list[str] | None:
    folder = ws.mod_folder(mod_name)
    if not folder.is_dir():
        logger.warning("Mod folder missing: %s", folder)
        return None
    return walk_mod_folder(folder)


def _invalidate_mods(
    ws: InvalidationWorkspace,
    mods: Iterable[str] | None,
    *,
    force: bool,
    on_progress: ProgressCallback,
) -> list[InvalidationResult]:
    names = list(mods) if mods is not None else list_staged_mods(ws)
    total = len(names)
    results: list[InvalidationResult] = []
    on_progress("invalidate", f"Invalidating {total} mod(s)...", 0)
    for i, mod_name in enumerate(names):
        pct = int(((i + 1) / total) * 100)
        paths = _mod_paths(ws, mod_name)
        if paths is None:
            on_progress("invalidate", f"Skipped (missing): {mod_name}", pct)
            continue
        result = invalidate_file_paths(paths, ws, force=force)
        result.mod_name = mod_name
        results.append(result)
        on_progress("invalidate", f"{mod_name}: {result.message}", pct)
    on_progress("invalidate", "Invalidation complete", 100)
    return results


def bake_mods(
    ws: InvalidationWorkspace,
    mods: Iterable[str] | None = None,
    *,
    on_progress: ProgressCallback = noop_progress,
) -> list[InvalidationResult]:
    """Invalidate every deployed mod, skipping entries already invalidated."""
    return _invalidate_mods(ws, mods, force=False, on_progress=on_progress)


def invalidate_all(
    ws: InvalidationWorkspace,
    mods: Iterable[str] | None = None,
    *,
    on_progress: ProgressCallback = noop_progress,
) -> list[InvalidationResult]:
    """Re-run invalidation unconditionally, e.g. after a game update."""
    return _invalidate_mods(ws, mods, force=True, on_progress=on_progress)


def purge_mods(
    ws: InvalidationWorkspace,
    mods: Iterable[str] | None = None,
    *,
    on_progress: ProgressCallback = noop_progress,
) -> list[RevalidationResult]:
    """Restore the archive entries of every staged mod.

    A failure for one mod is logged and the pass continues with the next.
    """
    names = list(mods) if mods is not None else list_staged_mods(ws)
    total = len(names)
    results: list[RevalidationResult] = []
    on_progress("revalidate", f"Re-validating {total} mod(s)...", 0)
    for i, mod_name in enumerate(names):
        pct = int(((i + 1) / total) * 100)
        paths = _mod_paths(ws, mod_name)
        if paths is None:
            on_progress("revalidate", f"Skipped (missing): {mod_name}", pct)
            continue
        result = revalidate_file_paths([path_hash(p) for p in paths], ws)
        result.mod_name = mod_name
        if not result.ok:
            logger.warning("Re-validation of %s did not complete: %s", mod_name, result.message)
        results.append(result)
        on_progress("revalidate", f"{mod_name}: {result.message}", pct)
    on_progress("revalidate", "Re-validation complete", 100)
    return results


class DeploymentTracker:
    """Remembers the previous deployment to restore entries no longer deployed."""

    def __init__(self, ws: InvalidationWorkspace) -> None:
        self._ws = ws
        self._previous: list[str] | None = None

    def will_deploy(self, deployed_paths: Iterable[str]) -> None:
        self._previous = [normalize_path(p) for p in deployed_paths]

    def did_deploy(self, deployed_paths: Iterable[str]) -> RevalidationResult | None:
        """Revalidate paths that were deployed before but are gone now.

        Returns ``None`` when nothing was removed or no previous deployment
        was recorded.
        """
        previous, self._previous = self._previous, None
        if previous is None:
            logger.debug("did_deploy without a recorded previous deployment")
            return None
        current = {normalize_path(p) for p in deployed_paths}
        removed = [p for p in previous if p not in current]
        if not removed:
            return None
        logger.info("Re-validating %d path(s) removed from deployment", len(removed))
        return revalidate_file_paths([path_hash(p) for p in removed], self._ws)
