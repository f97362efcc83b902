"""External pak patching tool wrapper.

The archive directory format is never parsed here; QuickBMS scripts do
the listing, zeroing and restoring of pak entries. This module only
drives the CLI and turns its outcome into a typed ``ToolResult``.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Literal

logger = logging.getLogger(__name__)

ToolMode = Literal["list", "write"]

_LIST_LINE_RGX = re.compile(r"^\s*([0-9a-fA-F]+)\s+(\d+)\s+(\S.*?)\s*$")


class ToolStatus(StrEnum):
    OK = "ok"
    CANCELED = "canceled"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ListedFile:
    offset: int
    size: int
    file_path: str


@dataclass(frozen=True, slots=True)
class ToolResult:
    status: ToolStatus
    files: list[ListedFile] = field(default_factory=list)
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ToolStatus.OK


class PakTool(ABC):
    """Base class for tools able to list and patch pak directory entries."""

    @abstractmethod
    def run(
        self,
        script: Path,
        archive: Path,
        discovery: Path,
        mode: ToolMode,
        *,
        wildcards: list[str] | None = None,
        keep_temporary_files: bool = False,
    ) -> ToolResult:
        """Run *script* against *archive* and report the outcome.

        In ``"list"`` mode ``files`` holds the matched entries; in
        ``"write"`` mode only ``status`` matters.
        """


def parse_list_output(stdout: str) -> list[ListedFile]:
    """Parse QuickBMS ``-l`` output into listed files.

    Each matched entry is printed as ``<hex offset> <size> <path>``;
    banner and summary lines are ignored.
    """
    files: list[ListedFile] = []
    for line in stdout.splitlines():
        m = _LIST_LINE_RGX.match(line)
        if not m:
            continue
        offset_hex, size, name = m.groups()
        files.append(
            ListedFile(
                offset=int(offset_hex, 16),
                size=int(size),
                file_path=name.replace("\\", "/"),
            )
        )
    return files


def _find_quickbms(configured: str) -> str | None:
    if Path(configured).is_file():
        return configured
    return shutil.which(configured)


class QuickBmsTool(PakTool):
    """Runs QuickBMS as a subprocess.

    No timeout is applied: a hung script blocks the calling batch.
    """

    def __init__(self, executable: str = "quickbms") -> None:
        self._configured = executable

    def _build_command(
        self,
        exe: str,
        script: Path,
        archive: Path,
        discovery: Path,
        mode: ToolMode,
        filter_file: Path | None,
        keep_temporary_files: bool,
    ) -> list[str]:
        cmd = [exe, "-o"]
        if mode == "list":
            cmd.append("-l")
        else:
            cmd.append("-w")
        if filter_file is not None:
            cmd += ["-f", str(filter_file)]
        if keep_temporary_files:
            cmd.append("-T")
        cmd += [str(script), str(archive), str(discovery)]
        return cmd

    def run(
        self,
        script: Path,
        archive: Path,
        discovery: Path,
        mode: ToolMode,
        *,
        wildcards: list[str] | None = None,
        keep_temporary_files: bool = False,
    ) -> ToolResult:
        exe = _find_quickbms(self._configured)
        if not exe:
            return ToolResult(ToolStatus.FAILED, message=f"QuickBMS not found: {self._configured}")

        with tempfile.TemporaryDirectory(prefix="pakinv-") as tmpdir:
            filter_file: Path | None = None
            if wildcards:
                filter_file = Path(tmpdir) / "wildcards.list"
                filter_file.write_text("\n".join(wildcards), encoding="utf-8")

            cmd = self._build_command(
                exe, script, archive, discovery, mode, filter_file, keep_temporary_files
            )
            logger.debug("Running %s", " ".join(cmd))
            try:
                result = subprocess.run(
                    cmd,
                    cwd=discovery,
                    capture_output=True,
                    text=True,
                    errors="replace",
                )
            except KeyboardInterrupt:
                return ToolResult(ToolStatus.CANCELED, message="QuickBMS interrupted")
            except OSError as exc:
                return ToolResult(ToolStatus.FAILED, message=f"QuickBMS failed to start: {exc}")

        if result.returncode < 0:
            return ToolResult(
                ToolStatus.CANCELED,
                message=f"QuickBMS terminated by signal {-result.returncode}",
            )
        if result.returncode != 0:
            return ToolResult(
                ToolStatus.FAILED,
                message=f"QuickBMS {mode} failed (exit {result.returncode}): {result.stderr.strip()}",
            )

        files = parse_list_output(result.stdout) if mode == "list" else []
        return ToolResult(ToolStatus.OK, files=files)
