"""Endpoints for pak path invalidation, revalidation and mod install planning."""

import asyncio
import logging
from collections.abc import Callable
from typing import TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool

from pak_invalidator.archive.murmur3 import path_hash
from pak_invalidator.exceptions import ReferenceListMissingError, UnsupportedModError
from pak_invalidator.routers.deps import get_tracker, get_workspace
from pak_invalidator.schemas.invalidation import (
    InstallPlan,
    InstallPlanRequest,
    InvalidationResult,
    ModsRequest,
    OffsetCacheOut,
    OffsetEntryOut,
    PathsRequest,
    RevalidateRequest,
    RevalidationResult,
    SetupResult,
    SupportResult,
)
from pak_invalidator.services.deployment import (
    DeploymentTracker,
    bake_mods,
    invalidate_all,
    purge_mods,
    walk_mod_folder,
)
from pak_invalidator.services.invalidation import invalidate_file_paths, normalize_path
from pak_invalidator.services.mod_layout import check_supported_content, plan_install
from pak_invalidator.services.revalidation import revalidate_file_paths
from pak_invalidator.services.workspace import InvalidationWorkspace

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/paks", tags=["paks"])

T = TypeVar("T")

# The cache layer has no locking of its own; every pass that may touch
# the archives or the cache runs under this lock.
_pass_lock = asyncio.Lock()


async def _serialized(func: Callable[..., T], *args, **kwargs) -> T:
    async with _pass_lock:
        return await run_in_threadpool(func, *args, **kwargs)


@router.post("/setup", response_model=SetupResult)
async def setup(ws: InvalidationWorkspace = Depends(get_workspace)) -> SetupResult:
    """Seed the hash index ledger from the bundled names list."""
    try:
        seeded = await _serialized(ws.setup)
    except ReferenceListMissingError as exc:
        raise HTTPException(404, str(exc)) from exc
    lines = await _serialized(ws.hash_index.lookup_or_load)
    return SetupResult(
        ledger_path=str(ws.hash_index.ledger_path),
        seeded=seeded,
        ledger_lines=len(lines),
    )


@router.get("/offsets", response_model=OffsetCacheOut)
async def offsets(ws: InvalidationWorkspace = Depends(get_workspace)) -> OffsetCacheOut:
    """Return every cached invalidation, resolving paths where the ledger knows them."""
    cache = await _serialized(ws.offset_cache.all_entries)
    has_ledger = ws.hash_index.ledger_path.is_file()
    archives = {
        key: [
            OffsetEntryOut(
                hash=e.hash,
                offset=e.offset,
                path=ws.hash_index.path_for_hash(e.hash) if has_ledger else None,
            )
            for e in entries
        ]
        for key, entries in cache.items()
    }
    return OffsetCacheOut(
        initialized=bool(cache),
        archives=archives,
        total_entries=sum(len(v) for v in archives.values()),
    )


@router.post("/invalidate", response_model=InvalidationResult)
async def invalidate_paths(
    data: PathsRequest,
    force: bool = Query(False),
    ws: InvalidationWorkspace = Depends(get_workspace),
) -> InvalidationResult:
    """Invalidate one mod's relative paths."""
    return await _serialized(invalidate_file_paths, data.paths, ws, force=force)


@router.post("/mods/{mod_name}/invalidate", response_model=InvalidationResult)
async def invalidate_mod(
    mod_name: str,
    force: bool = Query(False),
    ws: InvalidationWorkspace = Depends(get_workspace),
) -> InvalidationResult:
    """Invalidate every file of a staged mod."""
    folder = ws.mod_folder(mod_name)
    if not folder.is_dir():
        raise HTTPException(404, f"Mod '{mod_name}' not found in staging folder")
    paths = walk_mod_folder(folder)
    result = await _serialized(invalidate_file_paths, paths, ws, force=force)
    result.mod_name = mod_name
    return result


@router.post("/bake", response_model=list[InvalidationResult])
async def bake(
    data: ModsRequest,
    ws: InvalidationWorkspace = Depends(get_workspace),
) -> list[InvalidationResult]:
    """Invalidate deployed mods, skipping entries already invalidated."""
    return await _serialized(bake_mods, ws, data.mods)


@router.post("/invalidate-all", response_model=list[InvalidationResult])
async def invalidate_everything(
    data: ModsRequest,
    ws: InvalidationWorkspace = Depends(get_workspace),
) -> list[InvalidationResult]:
    """Force invalidation of every staged mod, e.g. after a game update."""
    return await _serialized(invalidate_all, ws, data.mods)


@router.post("/revalidate", response_model=RevalidationResult)
async def revalidate(
    data: RevalidateRequest,
    ws: InvalidationWorkspace = Depends(get_workspace),
) -> RevalidationResult:
    """Restore entries given as relative paths and/or raw hashes."""
    if not data.paths and not data.hashes:
        raise HTTPException(400, "Provide at least one path or hash")
    hashes = list(data.hashes) + [path_hash(normalize_path(p)) for p in data.paths]
    return await _serialized(revalidate_file_paths, hashes, ws)


@router.post("/purge", response_model=list[RevalidationResult])
async def purge(
    data: ModsRequest,
    ws: InvalidationWorkspace = Depends(get_workspace),
) -> list[RevalidationResult]:
    """Restore the archive entries of staged mods before they are purged."""
    return await _serialized(purge_mods, ws, data.mods)


@router.post("/deployments/will-deploy")
async def will_deploy(
    data: PathsRequest,
    tracker: DeploymentTracker = Depends(get_tracker),
) -> dict[str, int]:
    """Record the deployment that is about to be replaced."""
    tracker.will_deploy(data.paths)
    return {"recorded": len(data.paths)}


@router.post("/deployments/did-deploy", response_model=RevalidationResult | None)
async def did_deploy(
    data: PathsRequest,
    tracker: DeploymentTracker = Depends(get_tracker),
) -> RevalidationResult | None:
    """Restore entries for paths that are no longer deployed."""
    return await _serialized(tracker.did_deploy, data.paths)


@router.post("/supported", response_model=SupportResult)
async def supported(data: InstallPlanRequest) -> SupportResult:
    return check_supported_content(data.files)


@router.post("/install-plan", response_model=InstallPlan)
async def install_plan(
    data: InstallPlanRequest,
    ws: InvalidationWorkspace = Depends(get_workspace),
) -> InstallPlan:
    """Build copy instructions for a mod package and register its paths."""
    try:
        return await _serialized(plan_install, data.files, ws.hash_index)
    except UnsupportedModError as exc:
        raise HTTPException(400, str(exc)) from exc
