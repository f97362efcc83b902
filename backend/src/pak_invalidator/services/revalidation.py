"""Restore previously zeroed pak directory entries.

Archive keys are processed strictly one after another: the script owns
the target pak for the whole run and every key shares the same scratch
restoration file. Offsets are dropped from the cache only after the
script confirms the restore.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable

from pak_invalidator.archive.quickbms import ToolStatus
from pak_invalidator.constants import REVAL_INPUT_NAME, REVAL_SCRIPT
from pak_invalidator.exceptions import (
    CacheInconsistentError,
    ToolCanceledError,
    ToolFailureError,
)
from pak_invalidator.schemas.invalidation import OperationStatus, RevalidationResult
from pak_invalidator.services.offset_cache import write_inval_entries
from pak_invalidator.services.workspace import InvalidationWorkspace

logger = logging.getLogger(__name__)


def _remove_scratch(ws: InvalidationWorkspace) -> None:
    for name in (REVAL_SCRIPT, REVAL_INPUT_NAME):
        ws.scratch(name).unlink(missing_ok=True)


def _restore_key(archive_key: str, hashes: list[int], ws: InvalidationWorkspace) -> int:
    archive_path = ws.archive_path(archive_key)
    entries = ws.offset_cache.get_inval_entries(hashes, archive_key)

    ws.temp_dir.mkdir(parents=True, exist_ok=True)
    _remove_scratch(ws)
    write_inval_entries(ws.scratch(REVAL_INPUT_NAME), entries)
    shutil.copyfile(ws.script(REVAL_SCRIPT), ws.scratch(REVAL_SCRIPT))

    result = ws.tool.run(ws.scratch(REVAL_SCRIPT), archive_path, ws.temp_dir, "write")
    if result.status is ToolStatus.CANCELED:
        raise ToolCanceledError(result.message or "Re-validation canceled by user")
    if result.status is ToolStatus.FAILED:
        raise ToolFailureError(result.message or "Failed to re-validate filepaths")

    return ws.offset_cache.remove_offsets(hashes, archive_key)


def revalidate_hashes(hashes: Iterable[int], ws: InvalidationWorkspace) -> dict[str, int]:
    """Restore every cached entry among *hashes*; return restored counts per key.

    Raises:
        CacheInconsistentError: If the offset cache was never initialized.
        ToolCanceledError: If the operator interrupted the restore.
        ToolFailureError: If the script failed; later keys are not attempted.
    """
    arc_map = ws.offset_cache.find_archive_keys(hashes)
    if arc_map is None:
        raise CacheInconsistentError("Failed to map hashes to their corresponding archive keys")

    restored: dict[str, int] = {}
    try:
        for archive_key, key_hashes in arc_map.items():
            if not key_hashes:
                continue
            restored[archive_key] = _restore_key(archive_key, key_hashes, ws)
            logger.info("Re-validated %d entries in %s", restored[archive_key], archive_key)
    finally:
        _remove_scratch(ws)
    return restored


def revalidate_file_paths(hashes: Iterable[int], ws: InvalidationWorkspace) -> RevalidationResult:
    """Restore *hashes* and fold the error taxonomy into a result."""
    try:
        restored = revalidate_hashes(hashes, ws)
    except CacheInconsistentError as exc:
        logger.error("Re-validation impossible: %s", exc)
        return RevalidationResult(
            status=OperationStatus.CACHE_INCONSISTENT,
            message=str(exc),
            reportable=True,
        )
    except ToolCanceledError:
        logger.info("Re-validation canceled by user")
        return RevalidationResult(
            status=OperationStatus.CANCELED,
            message="Re-validation canceled by user",
        )
    except (ToolFailureError, OSError) as exc:
        logger.error("Re-validation failed: %s", exc)
        return RevalidationResult(
            status=OperationStatus.FAILED,
            message=f"Failed to re-validate filepaths: {exc}",
            reportable=True,
        )

    if not restored:
        return RevalidationResult(
            status=OperationStatus.NOTHING_TO_RESTORE,
            message="None of the requested entries are invalidated",
        )
    total = sum(restored.values())
    return RevalidationResult(
        status=OperationStatus.REVALIDATED,
        message=f"Re-validated {total} entries",
        restored=restored,
    )
