"""Install planning for loose-file pak mods.

A supported mod carries a ``natives/`` tree somewhere in its package.
Everything above that root is stripped so files land next to the game
executable, and the destinations are registered in the hash index so
they can later be matched against the game archives.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath

from pak_invalidator.constants import FLUFFY_FILES, NATIVES_DIR
from pak_invalidator.exceptions import UnsupportedModError
from pak_invalidator.schemas.invalidation import InstallInstruction, InstallPlan, SupportResult
from pak_invalidator.services.hash_index import HashIndex

logger = logging.getLogger(__name__)


def _normalise(path: str) -> str:
    return path.replace("\\", "/")


def find_natives_root(files: list[str]) -> str | None:
    """Return the package prefix in front of the first ``natives/`` folder.

    ``"Mod/natives/x64/a.tex"`` yields ``"Mod/"``; a package that already
    starts at ``natives/`` yields ``""``.
    """
    marker = NATIVES_DIR + "/"
    for file in files:
        normalised = _normalise(file)
        if normalised.startswith(marker):
            return ""
        idx = normalised.find("/" + marker)
        if idx != -1:
            return normalised[: idx + 1]
    return None


def check_supported_content(files: list[str]) -> SupportResult:
    return SupportResult(supported=find_natives_root(files) is not None)


def detect_standalone_manager(files: list[str]) -> SupportResult:
    """Flag Fluffy Manager 5000 packages, which must not be installed as mods."""
    names = {PurePosixPath(_normalise(f)).name for f in files}
    return SupportResult(
        supported=any(name in names for name in FLUFFY_FILES),
        required_files=list(FLUFFY_FILES),
    )


def plan_install(files: list[str], hash_index: HashIndex | None = None) -> InstallPlan:
    """Build copy instructions for a pak mod and register its paths.

    Raises:
        UnsupportedModError: For standalone mod managers or packages
            without a ``natives/`` folder.
    """
    if detect_standalone_manager(files).supported:
        raise UnsupportedModError(
            "Fluffy Manager 5000 is a standalone mod manager, not a mod; "
            "using both managers together will break the game"
        )
    root = find_natives_root(files)
    if root is None:
        raise UnsupportedModError("Package has no natives folder")

    instructions: list[InstallInstruction] = []
    for file in files:
        normalised = _normalise(file)
        if normalised.endswith("/") or not normalised.startswith(root + NATIVES_DIR + "/"):
            continue
        instructions.append(
            InstallInstruction(source=file, destination=normalised[len(root) :])
        )

    wildcards = [i.destination for i in instructions]
    if hash_index is not None:
        hash_index.append(wildcards)
    logger.info("Planned install of %d file(s) from root %r", len(instructions), root or "/")
    return InstallPlan(instructions=instructions, wildcards=wildcards)
