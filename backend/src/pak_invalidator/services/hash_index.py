"""Append-only ledger mapping pak path hashes back to relative paths.

The ledger is a per-staging-folder text file with one ``<hash> <path>``
line per entry, seeded from the names list shipped with the mod-support
scripts. It is loaded once and memoized; appends go to disk first and
then extend the in-memory copy, so no full reload is needed.

Only one writer per staging folder may use an index at a time.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

from pak_invalidator.archive.murmur3 import path_hash
from pak_invalidator.exceptions import ReferenceListMissingError

logger = logging.getLogger(__name__)


def parse_hash_token(token: str) -> int:
    """Parse a ledger hash written either in decimal or in hex."""
    token = token.strip()
    if token.lower().startswith("0x"):
        return int(token, 16)
    try:
        return int(token, 10)
    except ValueError:
        return int(token, 16)


def split_ledger_line(line: str) -> tuple[int, str] | None:
    """Split ``<hash> <path>`` into its parts, or ``None`` for blank/garbled lines."""
    hash_token, sep, path = line.strip().partition(" ")
    if not sep or not path:
        return None
    try:
        return parse_hash_token(hash_token), path.strip()
    except ValueError:
        return None


class HashIndex:
    def __init__(self, ledger_path: Path) -> None:
        self.ledger_path = ledger_path
        self._lines: list[str] | None = None
        self._by_path: dict[str, str] = {}
        self._by_hash: dict[int, str] = {}

    def seed(self, reference_list: Path) -> bool:
        """Copy *reference_list* into place unless a ledger already exists.

        Returns ``True`` when the ledger was created.
        """
        if self.ledger_path.exists():
            return False
        if not reference_list.is_file():
            raise ReferenceListMissingError(f"Names list not found: {reference_list}")
        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(reference_list, self.ledger_path)
        logger.info("Seeded hash index %s from %s", self.ledger_path, reference_list)
        return True

    def _remember(self, line: str) -> None:
        parsed = split_ledger_line(line)
        if parsed is None:
            return
        hash_val, path = parsed
        self._by_path.setdefault(path, line)
        self._by_hash.setdefault(hash_val, path)

    def lookup_or_load(self) -> list[str]:
        """Return the ledger lines, reading the file on first access."""
        if self._lines is None:
            data = self.ledger_path.read_text(encoding="utf-8")
            self._lines = data.split("\n")
            for line in self._lines:
                self._remember(line)
            logger.debug("Loaded %d hash index lines", len(self._lines))
        return self._lines

    def contains(self, path: str) -> bool:
        self.lookup_or_load()
        return path in self._by_path

    def line_for(self, path: str) -> str | None:
        self.lookup_or_load()
        return self._by_path.get(path)

    def path_for_hash(self, hash_val: int) -> str | None:
        self.lookup_or_load()
        return self._by_hash.get(hash_val)

    def append(self, paths: Iterable[str]) -> list[str]:
        """Record every path not already present; return the new lines."""
        lines = self.lookup_or_load()
        pending: dict[int, str] = {}
        new_lines: list[str] = []
        for path in dict.fromkeys(paths):
            if not path or path in self._by_path:
                continue
            hash_val = path_hash(path)
            known = self._by_hash.get(hash_val, pending.get(hash_val))
            if known is not None and known != path:
                logger.warning("Hash collision: %s and %s both hash to %d", known, path, hash_val)
            pending.setdefault(hash_val, path)
            new_lines.append(f"{hash_val} {path}")

        if not new_lines:
            return []

        data = "\n".join(new_lines)
        if lines and lines[-1] != "":
            data = "\n" + data
        with self.ledger_path.open("a", encoding="utf-8", newline="") as f:
            f.write(data)

        # A trailing blank line is consumed by the append above.
        if lines and lines[-1] == "":
            lines.pop()
        lines.extend(new_lines)
        for line in new_lines:
            self._remember(line)
        logger.info("Registered %d new path(s) in hash index", len(new_lines))
        return new_lines
