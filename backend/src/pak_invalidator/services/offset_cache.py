"""Durable per-archive store of zeroed pak directory entries.

Maps a path hash to the byte offset its directory entry pointed at before
the invalidation script zeroed it, grouped by archive key (``_native`` or
``_<dlc folder>``). Every mutation commits before returning, so readers
only ever see the last flushed state.

Callers must serialize access per staging folder and archive key.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from sqlmodel import Session, col, select

from pak_invalidator.database import get_engine
from pak_invalidator.exceptions import CacheInconsistentError
from pak_invalidator.models.offset_cache import ArchiveKeyRecord, InvalidatedOffset

logger = logging.getLogger(__name__)

# Stay well below SQLite's bound-parameter limit.
_IN_CHUNK = 500


@dataclass(frozen=True, slots=True)
class OffsetEntry:
    hash: int
    offset: int


def _chunks(values: Sequence[int]) -> Iterable[Sequence[int]]:
    for i in range(0, len(values), _IN_CHUNK):
        yield values[i : i + _IN_CHUNK]


class OffsetCache:
    def __init__(self, staging_folder: Path) -> None:
        self.staging_folder = staging_folder
        self._engine = get_engine(staging_folder)

    def _rows_for(self, session: Session, hashes: Sequence[int]) -> list[InvalidatedOffset]:
        rows: list[InvalidatedOffset] = []
        for chunk in _chunks(hashes):
            rows.extend(
                session.exec(
                    select(InvalidatedOffset).where(col(InvalidatedOffset.path_hash).in_(chunk))
                ).all()
            )
        return rows

    def find_archive_keys(self, hashes: Iterable[int]) -> dict[str, list[int]] | None:
        """Group the requested hashes that are currently invalidated by archive key.

        Every archive key that has ever been used appears in the result, with
        an empty list when none of *hashes* is cached under it. Returns
        ``None`` when the cache has never been initialized.
        """
        requested = list(dict.fromkeys(hashes))
        with Session(self._engine) as session:
            keys = session.exec(
                select(ArchiveKeyRecord.archive_key).order_by(col(ArchiveKeyRecord.id))
            ).all()
            if not keys:
                return None
            by_hash = {row.path_hash: row.archive_key for row in self._rows_for(session, requested)}

        result: dict[str, list[int]] = {key: [] for key in keys}
        for hash_val in requested:
            key = by_hash.get(hash_val)
            if key is not None:
                result.setdefault(key, []).append(hash_val)
        return result

    def get_inval_entries(self, hashes: Sequence[int], archive_key: str) -> list[OffsetEntry]:
        """Resolve *hashes* to their stored offsets under *archive_key*.

        Every hash must already be cached under that key.
        """
        with Session(self._engine) as session:
            rows = {
                row.path_hash: row
                for row in self._rows_for(session, list(hashes))
                if row.archive_key == archive_key
            }
        missing = [h for h in hashes if h not in rows]
        if missing:
            raise CacheInconsistentError(
                f"{len(missing)} hash(es) are not cached under {archive_key}: {missing[:5]}"
            )
        return [OffsetEntry(hash=h, offset=rows[h].offset) for h in hashes]

    def insert_offsets(self, entries: Iterable[OffsetEntry], archive_key: str) -> int:
        """Cache *entries* under *archive_key* and return the number of rows written.

        The report is authoritative for a hash already cached under the same
        key when it carries a non-zero offset: the entry was restored (for
        instance by a game update) and zeroed again from its new location.
        A zero offset means the entry was already zeroed, so the stored
        offset is kept. Hashes cached under another key are ignored.
        """
        by_hash: dict[int, OffsetEntry] = {}
        for entry in entries:
            by_hash.setdefault(entry.hash, entry)
        written = 0
        with Session(self._engine) as session:
            existing = {row.path_hash: row for row in self._rows_for(session, list(by_hash))}
            for entry in by_hash.values():
                row = existing.get(entry.hash)
                if row is None:
                    session.add(
                        InvalidatedOffset(
                            archive_key=archive_key,
                            path_hash=entry.hash,
                            offset=entry.offset,
                        )
                    )
                    written += 1
                elif row.archive_key != archive_key:
                    logger.warning(
                        "Hash %d already invalidated under %s, ignoring report from %s",
                        entry.hash,
                        row.archive_key,
                        archive_key,
                    )
                elif entry.offset and entry.offset != row.offset:
                    logger.info(
                        "Hash %d moved from offset %d to %d under %s",
                        entry.hash,
                        row.offset,
                        entry.offset,
                        archive_key,
                    )
                    row.offset = entry.offset
                    row.invalidated_at = datetime.now(UTC)
                    session.add(row)
                    written += 1

            if written:
                record = session.exec(
                    select(ArchiveKeyRecord).where(ArchiveKeyRecord.archive_key == archive_key)
                ).first()
                if record is None:
                    session.add(ArchiveKeyRecord(archive_key=archive_key))
            session.commit()
        logger.info("Cached %d offset(s) under %s", written, archive_key)
        return written

    def remove_offsets(self, hashes: Iterable[int], archive_key: str) -> int:
        """Forget *hashes* under *archive_key*; unknown hashes are ignored."""
        requested = list(dict.fromkeys(hashes))
        removed = 0
        with Session(self._engine) as session:
            for row in self._rows_for(session, requested):
                if row.archive_key != archive_key:
                    continue
                session.delete(row)
                removed += 1
            session.commit()
        logger.info("Removed %d offset(s) from %s", removed, archive_key)
        return removed

    def all_entries(self) -> dict[str, list[OffsetEntry]]:
        """Return every cached entry grouped by archive key."""
        with Session(self._engine) as session:
            keys = session.exec(
                select(ArchiveKeyRecord.archive_key).order_by(col(ArchiveKeyRecord.id))
            ).all()
            rows = session.exec(
                select(InvalidatedOffset).order_by(col(InvalidatedOffset.id))
            ).all()
            result: dict[str, list[OffsetEntry]] = {key: [] for key in keys}
            for row in rows:
                result.setdefault(row.archive_key, []).append(
                    OffsetEntry(hash=row.path_hash, offset=row.offset)
                )
        return result


def _parse_int(token: str) -> int:
    if token.lower().startswith("0x"):
        return int(token, 16)
    return int(token, 10)


def read_new_inval_entries(report_path: Path) -> list[OffsetEntry]:
    """Parse the invalidation script's report of freshly zeroed entries.

    One ``<hash> <offset>`` pair per line; both tokens may be decimal or
    ``0x``-prefixed hex. Malformed lines are logged and skipped.
    """
    entries: list[OffsetEntry] = []
    for lineno, line in enumerate(report_path.read_text(encoding="utf-8").splitlines(), 1):
        parts = line.split()
        if not parts:
            continue
        try:
            hash_val, offset = (_parse_int(tok) for tok in parts[:2])
        except ValueError:
            logger.warning("Skipping malformed report line %d: %r", lineno, line)
            continue
        entries.append(OffsetEntry(hash=hash_val, offset=offset))
    return entries


def write_inval_entries(target: Path, entries: Sequence[OffsetEntry]) -> None:
    """Write the restoration input consumed by the revalidation script."""
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(
        "\n".join(f"{e.hash} {e.offset}" for e in entries) + "\n",
        encoding="utf-8",
    )
