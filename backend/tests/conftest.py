from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from pak_invalidator.archive.murmur3 import path_hash
from pak_invalidator.archive.quickbms import ListedFile, PakTool, ToolResult, ToolStatus
from pak_invalidator.constants import (
    DLC_PAK_FILE,
    GAME_PAK_FILE,
    INVAL_SCRIPT,
    LIST_SCRIPT,
    REFERENCE_LIST_NAME,
    REVAL_INPUT_NAME,
    REVAL_SCRIPT,
    TEMPORARY_REPORT_NAME,
)
from pak_invalidator.database import dispose_engines
from pak_invalidator.services.workspace import InvalidationWorkspace


@dataclass
class ToolCall:
    script: Path
    archive: Path
    mode: str
    wildcards: list[str] | None
    keep_temporary_files: bool
    payload: str = ""


@dataclass
class FakePakTool(PakTool):
    """Scripted stand-in for QuickBMS.

    ``contents`` maps an archive path to the relative paths it holds.
    Invalidation runs report ``offsets[path]`` for every line of the
    filtered list; restoration runs capture the restoration input.
    """

    contents: dict[Path, list[str]] = field(default_factory=dict)
    offsets: dict[str, int] = field(default_factory=dict)
    write_status: ToolStatus = ToolStatus.OK
    list_status: ToolStatus = ToolStatus.OK
    write_report: bool = True
    calls: list[ToolCall] = field(default_factory=list)

    @property
    def write_calls(self) -> list[ToolCall]:
        return [c for c in self.calls if c.mode == "write"]

    @property
    def list_calls(self) -> list[ToolCall]:
        return [c for c in self.calls if c.mode == "list"]

    def run(self, script, archive, discovery, mode, *, wildcards=None, keep_temporary_files=False):
        call = ToolCall(script, archive, mode, wildcards, keep_temporary_files)
        self.calls.append(call)
        if mode == "list":
            if self.list_status is not ToolStatus.OK:
                return ToolResult(self.list_status, message="list failed")
            held = set(self.contents.get(archive, []))
            files = [
                ListedFile(offset=0x1000 * i, size=16, file_path=p)
                for i, p in enumerate(wildcards or [])
                if p in held
            ]
            return ToolResult(ToolStatus.OK, files=files)

        if script.name == INVAL_SCRIPT:
            filtered = (script.parent / "filtered.list").read_text(encoding="utf-8")
            call.payload = filtered
            if self.write_status is ToolStatus.OK and self.write_report:
                report = []
                for line in filter(None, filtered.split("\n")):
                    hash_token, _, path = line.partition(" ")
                    report.append(f"{hash_token} {self.offsets.get(path, 0)}")
                (Path(discovery) / TEMPORARY_REPORT_NAME).write_text(
                    "\n".join(report), encoding="utf-8"
                )
        elif script.name == REVAL_SCRIPT:
            call.payload = (script.parent / REVAL_INPUT_NAME).read_text(encoding="utf-8")
        if self.write_status is not ToolStatus.OK:
            return ToolResult(self.write_status, message=f"write {self.write_status}")
        return ToolResult(ToolStatus.OK)


@pytest.fixture(autouse=True)
def _dispose_engines():
    yield
    dispose_engines()


@pytest.fixture
def game_dir(tmp_path) -> Path:
    game = tmp_path / "game"
    game.mkdir()
    (game / GAME_PAK_FILE).write_bytes(b"pak")
    return game


@pytest.fixture
def scripts_dir(tmp_path) -> Path:
    scripts = tmp_path / "scripts"
    scripts.mkdir()
    for name in (LIST_SCRIPT, INVAL_SCRIPT, REVAL_SCRIPT):
        (scripts / name).write_text(f"# {name}\n", encoding="utf-8")
    reference = scripts / REFERENCE_LIST_NAME
    reference.write_text(
        f"{path_hash('natives/x64/base.tex')} natives/x64/base.tex\n"
        f"{path_hash('natives/x64/other.tex')} natives/x64/other.tex",
        encoding="utf-8",
    )
    return scripts


@pytest.fixture
def fake_tool() -> FakePakTool:
    return FakePakTool()


@pytest.fixture
def make_workspace(tmp_path, game_dir, scripts_dir, fake_tool):
    def _make(staging: Path | None = None, *, setup: bool = True) -> InvalidationWorkspace:
        ws = InvalidationWorkspace(
            game_path=game_dir,
            staging_folder=staging or tmp_path / "staging",
            temp_dir=tmp_path / "temp" / "qbms",
            scripts_dir=scripts_dir,
            reference_list=scripts_dir / REFERENCE_LIST_NAME,
            tool=fake_tool,
        )
        if setup:
            ws.setup()
        return ws

    return _make


@pytest.fixture
def ws(make_workspace) -> InvalidationWorkspace:
    return make_workspace()


@pytest.fixture
def add_dlc(game_dir):
    def _add(name: str) -> Path:
        folder = game_dir / name
        folder.mkdir()
        pak = folder / DLC_PAK_FILE
        pak.write_bytes(b"dlc")
        return pak

    return _add
