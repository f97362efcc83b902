"""Tests for deployment-driven invalidation passes."""

from __future__ import annotations

from pak_invalidator.archive.murmur3 import path_hash
from pak_invalidator.archive.quickbms import ToolStatus
from pak_invalidator.constants import GAME_PAK_FILE
from pak_invalidator.schemas.invalidation import OperationStatus
from pak_invalidator.services.deployment import (
    DeploymentTracker,
    bake_mods,
    invalidate_all,
    list_staged_mods,
    purge_mods,
    walk_mod_folder,
)
from pak_invalidator.services.invalidation import invalidate_file_paths

A = "natives/x64/a.tex"
B = "natives/x64/b.tex"


def _stage_mod(ws, name, paths):
    folder = ws.mod_folder(name)
    for rel in paths:
        target = folder / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"loose")
    return folder


def _stock(fake_tool, game_dir, paths):
    fake_tool.contents.setdefault(game_dir / GAME_PAK_FILE, []).extend(paths)
    for i, p in enumerate(paths):
        fake_tool.offsets[p] = 0x10 * (i + 1)


class TestWalk:
    def test_relative_slash_paths(self, ws):
        folder = _stage_mod(ws, "ModA", [A, "natives/x64/sub/c.tex"])
        assert walk_mod_folder(folder) == [A, "natives/x64/sub/c.tex"]

    def test_lists_only_mod_folders(self, ws):
        _stage_mod(ws, "ModB", [B])
        _stage_mod(ws, "ModA", [A])
        assert list_staged_mods(ws) == ["ModA", "ModB"]


class TestBakeAndInvalidateAll:
    def test_bake_invalidates_each_mod(self, ws, fake_tool, game_dir):
        _stage_mod(ws, "ModA", [A])
        _stage_mod(ws, "ModB", [B])
        _stock(fake_tool, game_dir, [A, B])
        progress: list[tuple[str, str, int]] = []

        results = bake_mods(ws, on_progress=lambda *a: progress.append(a))

        assert [r.mod_name for r in results] == ["ModA", "ModB"]
        assert all(r.status is OperationStatus.INVALIDATED for r in results)
        assert progress[-1] == ("invalidate", "Invalidation complete", 100)
        assert ws.offset_cache.find_archive_keys([path_hash(A), path_hash(B)]) == {
            "_native": [path_hash(A), path_hash(B)]
        }

    def test_bake_twice_skips_tool(self, ws, fake_tool, game_dir):
        _stage_mod(ws, "ModA", [A])
        _stock(fake_tool, game_dir, [A])
        bake_mods(ws)
        calls = len(fake_tool.calls)

        results = bake_mods(ws)

        assert results[0].status is OperationStatus.ALREADY_INVALIDATED
        assert len(fake_tool.calls) == calls

    def test_invalidate_all_forces_tool(self, ws, fake_tool, game_dir):
        _stage_mod(ws, "ModA", [A])
        _stock(fake_tool, game_dir, [A])
        bake_mods(ws)

        invalidate_all(ws)

        assert len(fake_tool.write_calls) == 2

    def test_missing_mod_is_skipped(self, ws):
        assert bake_mods(ws, ["Ghost"]) == []


class TestPurge:
    def test_restores_every_mod(self, ws, fake_tool, game_dir):
        _stage_mod(ws, "ModA", [A])
        _stock(fake_tool, game_dir, [A])
        bake_mods(ws)

        results = purge_mods(ws)

        assert results[0].status is OperationStatus.REVALIDATED
        assert ws.offset_cache.find_archive_keys([path_hash(A)]) == {"_native": []}

    def test_continues_past_failures(self, ws, fake_tool, game_dir):
        _stage_mod(ws, "ModA", [A])
        _stage_mod(ws, "ModB", [B])
        _stock(fake_tool, game_dir, [A, B])
        bake_mods(ws)
        fake_tool.write_status = ToolStatus.FAILED

        results = purge_mods(ws)

        assert [r.status for r in results] == [OperationStatus.FAILED, OperationStatus.FAILED]
        assert len(fake_tool.write_calls) == 4


class TestDeploymentTracker:
    def test_revalidates_removed_paths(self, ws, fake_tool, game_dir):
        _stock(fake_tool, game_dir, [A, B])
        invalidate_file_paths([A, B], ws)
        tracker = DeploymentTracker(ws)

        tracker.will_deploy([A, "natives\\x64\\b.tex"])
        result = tracker.did_deploy([A])

        assert result is not None
        assert result.status is OperationStatus.REVALIDATED
        assert ws.offset_cache.find_archive_keys([path_hash(A), path_hash(B)]) == {
            "_native": [path_hash(A)]
        }

    def test_nothing_removed(self, ws, fake_tool):
        tracker = DeploymentTracker(ws)
        tracker.will_deploy([A])
        assert tracker.did_deploy([A, B]) is None
        assert fake_tool.calls == []

    def test_without_previous_deployment(self, ws):
        assert DeploymentTracker(ws).did_deploy([A]) is None
