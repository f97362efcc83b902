"""Find the pak archive that holds a mod's files.

The main game pak is tried first, then every installed DLC pak in folder
order. The first archive reporting any match wins; a mod spanning more
than one archive is not detected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from pak_invalidator.archive.quickbms import ListedFile, ToolStatus
from pak_invalidator.constants import (
    DLC_FOLDER_RGX,
    DLC_PAK_FILE,
    GAME_PAK_FILE,
    LIST_SCRIPT,
    NATIVE_ARCHIVE_KEY,
)
from pak_invalidator.exceptions import (
    ArchiveNotFoundError,
    ToolCanceledError,
    ToolFailureError,
)
from pak_invalidator.services.workspace import InvalidationWorkspace, archive_key_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LocatedArchive:
    archive_key: str
    archive_path: Path
    matched: list[ListedFile]

    @property
    def matched_paths(self) -> list[str]:
        return [f.file_path for f in self.matched]


def _test_archive(
    paths: list[str], archive_path: Path, ws: InvalidationWorkspace
) -> list[ListedFile]:
    """List *archive_path* filtered by *paths*; raise when nothing matches."""
    result = ws.tool.run(
        ws.script(LIST_SCRIPT),
        archive_path,
        ws.game_path,
        "list",
        wildcards=paths,
    )
    if result.status is ToolStatus.CANCELED:
        raise ToolCanceledError(result.message)
    if result.status is ToolStatus.FAILED:
        raise ToolFailureError(result.message)
    if not result.files:
        raise ArchiveNotFoundError(f"Files not found in {archive_path.name}")
    return result.files


def installed_dlc_folders(game_path: Path) -> list[str]:
    """Return DLC folder names (pure digits) that ship a DLC pak."""
    folders: list[str] = []
    for entry in sorted(game_path.iterdir(), key=lambda p: p.name):
        if not entry.is_dir() or not DLC_FOLDER_RGX.match(entry.name):
            continue
        if not (entry / DLC_PAK_FILE).is_file():
            logger.debug("DLC folder %s has no %s, skipping", entry.name, DLC_PAK_FILE)
            continue
        folders.append(entry.name)
    return folders


def locate_archive(paths: list[str], ws: InvalidationWorkspace) -> LocatedArchive:
    """Return the first archive containing any of *paths*.

    Raises:
        ArchiveNotFoundError: If no archive matches at all.
        ToolCanceledError: If the operator interrupted a listing.
        ToolFailureError: If a listing failed for another reason.
    """
    main_pak = ws.game_path / GAME_PAK_FILE
    try:
        matched = _test_archive(paths, main_pak, ws)
        logger.info("Matched %d file(s) in %s", len(matched), GAME_PAK_FILE)
        return LocatedArchive(NATIVE_ARCHIVE_KEY, main_pak, matched)
    except ArchiveNotFoundError:
        logger.debug("No match in %s, trying DLC archives", GAME_PAK_FILE)

    for dlc in installed_dlc_folders(ws.game_path):
        rel = f"{dlc}/{DLC_PAK_FILE}"
        archive_path = ws.game_path / dlc / DLC_PAK_FILE
        try:
            matched = _test_archive(paths, archive_path, ws)
        except ArchiveNotFoundError:
            continue
        logger.info("Matched %d file(s) in %s", len(matched), rel)
        return LocatedArchive(archive_key_for(rel), archive_path, matched)

    raise ArchiveNotFoundError("Failed to match mod files to game archives")
