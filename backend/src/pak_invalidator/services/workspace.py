"""Explicit handle bundling everything one game's invalidation passes need."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from pak_invalidator.archive.quickbms import PakTool, QuickBmsTool
from pak_invalidator.config import Settings
from pak_invalidator.constants import (
    DLC_PAK_FILE,
    GAME_PAK_FILE,
    NATIVE_ARCHIVE_KEY,
    NATIVES_DIR,
    REFERENCE_LIST_NAME,
)
from pak_invalidator.services.hash_index import HashIndex
from pak_invalidator.services.offset_cache import OffsetCache

logger = logging.getLogger(__name__)


def archive_key_for(archive_rel_path: str) -> str:
    """Map a pak path relative to the game folder to its archive key."""
    rel = PurePosixPath(archive_rel_path.replace("\\", "/"))
    if str(rel) == GAME_PAK_FILE:
        return NATIVE_ARCHIVE_KEY
    return "_" + str(rel.parent)


def archive_path_for(game_path: Path, archive_key: str) -> Path:
    """Map an archive key back to the pak file it identifies."""
    if archive_key == NATIVE_ARCHIVE_KEY:
        return game_path / GAME_PAK_FILE
    return game_path / archive_key[1:] / DLC_PAK_FILE


@dataclass
class InvalidationWorkspace:
    game_path: Path
    staging_folder: Path
    temp_dir: Path
    scripts_dir: Path
    reference_list: Path
    tool: PakTool
    hash_index: HashIndex = field(init=False)
    offset_cache: OffsetCache = field(init=False)

    def __post_init__(self) -> None:
        self.hash_index = HashIndex(self.staging_folder / REFERENCE_LIST_NAME)
        self.offset_cache = OffsetCache(self.staging_folder)

    @classmethod
    def from_settings(cls, settings: Settings, tool: PakTool | None = None) -> InvalidationWorkspace:
        return cls(
            game_path=settings.game_path,
            staging_folder=settings.staging_dir,
            temp_dir=settings.temp_dir,
            scripts_dir=settings.scripts_dir,
            reference_list=settings.reference_list,
            tool=tool or QuickBmsTool(settings.quickbms_path),
        )

    def setup(self) -> bool:
        """Seed the hash index ledger and make sure the loose-file root exists.

        Returns ``True`` when the ledger was seeded by this call.
        """
        seeded = self.hash_index.seed(self.reference_list)
        (self.game_path / NATIVES_DIR).mkdir(parents=True, exist_ok=True)
        logger.info("Workspace ready for %s (staging %s)", self.game_path, self.staging_folder)
        return seeded

    def archive_path(self, archive_key: str) -> Path:
        return archive_path_for(self.game_path, archive_key)

    def script(self, name: str) -> Path:
        return self.scripts_dir / name

    def scratch(self, name: str) -> Path:
        return self.temp_dir / name

    def mod_folder(self, mod_name: str) -> Path:
        return self.staging_folder / mod_name
