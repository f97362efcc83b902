"""Invalidate pak directory entries so loose mod files take precedence.

One call handles one mod-sized batch of relative paths. Paths already
invalidated are filtered out, the rest are registered in the hash index,
matched against the game archives and handed to the invalidation script.
Offsets the script reports are committed to the offset cache only after
it succeeds, so a failed or cancelled run never leaves the cache pointing
at entries that were not actually zeroed.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable

from pak_invalidator.archive.murmur3 import path_hash
from pak_invalidator.archive.quickbms import ToolStatus
from pak_invalidator.constants import FILTERED_LIST_NAME, INVAL_SCRIPT, TEMPORARY_REPORT_NAME
from pak_invalidator.exceptions import (
    AllEntriesInvalidatedError,
    ArchiveNotFoundError,
    ToolCanceledError,
    ToolFailureError,
)
from pak_invalidator.schemas.invalidation import InvalidationResult, OperationStatus
from pak_invalidator.services.archive_locator import LocatedArchive, locate_archive
from pak_invalidator.services.offset_cache import read_new_inval_entries
from pak_invalidator.services.workspace import InvalidationWorkspace

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    return path.replace("\\", "/").lstrip("/")


def filter_out_invalidated(paths: list[str], ws: InvalidationWorkspace) -> list[str]:
    """Drop paths whose hash is already cached under any archive key.

    Raises:
        AllEntriesInvalidatedError: If nothing is left to invalidate.
    """
    hashes = {path: path_hash(path) for path in paths}
    arc_map = ws.offset_cache.find_archive_keys(hashes.values())
    if arc_map is None:
        return list(paths)

    invalidated = {h for key_hashes in arc_map.values() for h in key_hashes}
    filtered = [path for path in paths if hashes[path] not in invalidated]
    if not filtered:
        raise AllEntriesInvalidatedError("All entries invalidated")
    return filtered


def generate_filtered_list(matched_paths: Iterable[str], ws: InvalidationWorkspace) -> int:
    """Write the hash-index lines of *matched_paths* for the invalidation script.

    Returns the number of lines written.
    """
    ws.temp_dir.mkdir(parents=True, exist_ok=True)
    lines: list[str] = []
    for path in matched_paths:
        line = ws.hash_index.line_for(path)
        if line is None:
            logger.warning("No hash index line for %s, entry left untouched", path)
            continue
        lines.append(line)
    target = ws.scratch(FILTERED_LIST_NAME)
    target.unlink(missing_ok=True)
    target.write_text("\n".join(lines), encoding="utf-8")
    return len(lines)


def _remove_scratch(ws: InvalidationWorkspace) -> None:
    for name in (INVAL_SCRIPT, FILTERED_LIST_NAME, TEMPORARY_REPORT_NAME):
        ws.scratch(name).unlink(missing_ok=True)


def _zero_entries(located: LocatedArchive, ws: InvalidationWorkspace) -> int:
    """Run the invalidation script and commit the offsets it reports."""
    generate_filtered_list(located.matched_paths, ws)
    shutil.copyfile(ws.script(INVAL_SCRIPT), ws.scratch(INVAL_SCRIPT))
    report = ws.scratch(TEMPORARY_REPORT_NAME)
    report.unlink(missing_ok=True)

    result = ws.tool.run(
        ws.scratch(INVAL_SCRIPT),
        located.archive_path,
        ws.temp_dir,
        "write",
        keep_temporary_files=True,
    )
    if result.status is ToolStatus.CANCELED:
        raise ToolCanceledError(result.message or "Invalidation canceled by user")
    if result.status is ToolStatus.FAILED:
        raise ToolFailureError(result.message or "Invalidation script failed")

    if not report.is_file():
        raise ToolFailureError(f"Invalidation report missing: {report}")
    entries = read_new_inval_entries(report)
    return ws.offset_cache.insert_offsets(entries, located.archive_key)


def _invalidate(paths: list[str], ws: InvalidationWorkspace, force: bool) -> InvalidationResult:
    filtered = list(paths) if force else filter_out_invalidated(paths, ws)
    ws.hash_index.append(filtered)

    try:
        located = locate_archive(filtered, ws)
    except ArchiveNotFoundError:
        if len(filtered) != len(paths):
            # Part of this mod is already invalidated; the rest are extras such as readmes.
            logger.warning("Missing filepaths in game archive:\n%s", "\n".join(filtered))
            return InvalidationResult(
                status=OperationStatus.PARTIAL_MISMATCH,
                message=f"{len(filtered)} file(s) not found in any game archive",
                requested=len(paths),
                unmatched=filtered,
            )
        logger.error("Missing filepaths in game archive:\n%s", "\n".join(filtered))
        raise

    added = _zero_entries(located, ws)
    matched = set(located.matched_paths)
    unmatched = [path for path in filtered if path not in matched]
    if unmatched:
        logger.warning(
            "%d file(s) not present in %s:\n%s",
            len(unmatched),
            located.archive_path.name,
            "\n".join(unmatched),
        )
        status = OperationStatus.PARTIAL_MISMATCH
        message = f"Invalidated {added} entries, {len(unmatched)} file(s) not in archive"
    else:
        status = OperationStatus.INVALIDATED
        message = f"Invalidated {added} entries in {located.archive_path.name}"
    return InvalidationResult(
        status=status,
        message=message,
        archive_key=located.archive_key,
        requested=len(paths),
        invalidated=added,
        unmatched=unmatched,
    )


def invalidate_file_paths(
    paths: Iterable[str],
    ws: InvalidationWorkspace,
    *,
    force: bool = False,
) -> InvalidationResult:
    """Invalidate one mod's relative paths and report the outcome.

    All *paths* must belong to the same mod, and therefore to the same game
    archive. With *force* the already-invalidated filter is skipped. Scratch
    files are removed whatever the outcome.
    """
    batch = list(dict.fromkeys(normalize_path(p) for p in paths if p))
    if not batch:
        return InvalidationResult(
            status=OperationStatus.ALREADY_INVALIDATED,
            message="No paths to invalidate",
        )
    try:
        return _invalidate(batch, ws, force)
    except AllEntriesInvalidatedError:
        logger.debug("All %d entries already invalidated", len(batch))
        return InvalidationResult(
            status=OperationStatus.ALREADY_INVALIDATED,
            message="All entries invalidated",
            requested=len(batch),
        )
    except ArchiveNotFoundError:
        return InvalidationResult(
            status=OperationStatus.NOT_FOUND,
            message=(
                "Missing filepaths in game archives: the mod includes files the game "
                "archives do not contain (possibly missing DLC or a badly packed mod)"
            ),
            requested=len(batch),
            unmatched=batch,
            reportable=True,
        )
    except ToolCanceledError:
        logger.info("Invalidation canceled by user")
        return InvalidationResult(
            status=OperationStatus.CANCELED,
            message="Invalidation canceled by user",
            requested=len(batch),
        )
    except (ToolFailureError, OSError) as exc:
        logger.error("Invalidation failed: %s", exc)
        return InvalidationResult(
            status=OperationStatus.FAILED,
            message=f"Invalidation failed: {exc}",
            requested=len(batch),
            reportable=True,
        )
    finally:
        _remove_scratch(ws)
