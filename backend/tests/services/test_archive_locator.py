"""Tests for locating the pak that owns a mod's files."""

from __future__ import annotations

import pytest

from pak_invalidator.archive.quickbms import ToolStatus
from pak_invalidator.constants import GAME_PAK_FILE, LIST_SCRIPT
from pak_invalidator.exceptions import ArchiveNotFoundError, ToolCanceledError, ToolFailureError
from pak_invalidator.services.archive_locator import installed_dlc_folders, locate_archive
from pak_invalidator.services.workspace import archive_key_for, archive_path_for


class TestLocateArchive:
    def test_prefers_main_archive(self, ws, fake_tool, game_dir, add_dlc):
        dlc = add_dlc("1")
        fake_tool.contents[game_dir / GAME_PAK_FILE] = ["natives/a.tex"]
        fake_tool.contents[dlc] = ["natives/a.tex"]

        located = locate_archive(["natives/a.tex"], ws)

        assert located.archive_key == "_native"
        assert located.archive_path == game_dir / GAME_PAK_FILE
        assert located.matched_paths == ["natives/a.tex"]
        assert len(fake_tool.list_calls) == 1
        assert fake_tool.list_calls[0].script == ws.script(LIST_SCRIPT)
        assert fake_tool.list_calls[0].wildcards == ["natives/a.tex"]

    def test_falls_back_to_first_matching_dlc(self, ws, fake_tool, add_dlc):
        add_dlc("1")
        second = add_dlc("2")
        fake_tool.contents[second] = ["natives/dlc.tex"]

        located = locate_archive(["natives/dlc.tex"], ws)

        assert located.archive_key == "_2"
        assert located.archive_path == second
        assert len(fake_tool.list_calls) == 3

    def test_stops_at_first_dlc_match(self, ws, fake_tool, add_dlc):
        first = add_dlc("1")
        second = add_dlc("2")
        fake_tool.contents[first] = ["natives/dlc.tex"]
        fake_tool.contents[second] = ["natives/dlc.tex"]

        located = locate_archive(["natives/dlc.tex"], ws)

        assert located.archive_key == "_1"
        assert [c.archive for c in fake_tool.list_calls][-1] == first

    def test_not_found_anywhere(self, ws, add_dlc):
        add_dlc("1")
        with pytest.raises(ArchiveNotFoundError):
            locate_archive(["natives/nowhere.tex"], ws)

    def test_list_cancellation_propagates(self, ws, fake_tool):
        fake_tool.list_status = ToolStatus.CANCELED
        with pytest.raises(ToolCanceledError):
            locate_archive(["natives/a.tex"], ws)

    def test_list_failure_propagates(self, ws, fake_tool):
        fake_tool.list_status = ToolStatus.FAILED
        with pytest.raises(ToolFailureError):
            locate_archive(["natives/a.tex"], ws)


class TestDlcFolders:
    def test_only_digit_folders_with_pak(self, game_dir, add_dlc):
        add_dlc("10")
        add_dlc("2")
        (game_dir / "natives").mkdir()
        (game_dir / "3").mkdir()
        (game_dir / "4").write_text("not a folder")

        assert installed_dlc_folders(game_dir) == ["10", "2"]


class TestArchiveKeys:
    def test_native_key(self, game_dir):
        assert archive_key_for(GAME_PAK_FILE) == "_native"
        assert archive_path_for(game_dir, "_native") == game_dir / GAME_PAK_FILE

    def test_dlc_key_round_trip(self, game_dir):
        assert archive_key_for("7/re_dlc_000.pak") == "_7"
        assert archive_key_for("7\\re_dlc_000.pak") == "_7"
        assert archive_path_for(game_dir, "_7") == game_dir / "7" / "re_dlc_000.pak"
