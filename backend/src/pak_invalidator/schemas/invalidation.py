"""Schemas for pak invalidation, revalidation and mod installation."""

from enum import StrEnum

from pydantic import BaseModel, Field


class OperationStatus(StrEnum):
    INVALIDATED = "invalidated"
    ALREADY_INVALIDATED = "already_invalidated"
    PARTIAL_MISMATCH = "partial_mismatch"
    NOT_FOUND = "not_found"
    CANCELED = "canceled"
    FAILED = "failed"
    REVALIDATED = "revalidated"
    NOTHING_TO_RESTORE = "nothing_to_restore"
    CACHE_INCONSISTENT = "cache_inconsistent"


SUCCESS_STATUSES = frozenset(
    {
        OperationStatus.INVALIDATED,
        OperationStatus.ALREADY_INVALIDATED,
        OperationStatus.PARTIAL_MISMATCH,
        OperationStatus.REVALIDATED,
        OperationStatus.NOTHING_TO_RESTORE,
    }
)


class InvalidationResult(BaseModel):
    status: OperationStatus
    message: str
    archive_key: str | None = None
    requested: int = 0
    invalidated: int = 0
    unmatched: list[str] = Field(default_factory=list)
    reportable: bool = False
    mod_name: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in SUCCESS_STATUSES


class RevalidationResult(BaseModel):
    status: OperationStatus
    message: str
    restored: dict[str, int] = Field(default_factory=dict)
    reportable: bool = False
    mod_name: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in SUCCESS_STATUSES


class OffsetEntryOut(BaseModel):
    hash: int
    offset: int
    path: str | None = None


class OffsetCacheOut(BaseModel):
    initialized: bool
    archives: dict[str, list[OffsetEntryOut]]
    total_entries: int


class PathsRequest(BaseModel):
    paths: list[str]


class RevalidateRequest(BaseModel):
    paths: list[str] = Field(default_factory=list)
    hashes: list[int] = Field(default_factory=list)


class ModsRequest(BaseModel):
    mods: list[str] | None = None


class InstallInstruction(BaseModel):
    type: str = "copy"
    source: str
    destination: str


class InstallPlan(BaseModel):
    instructions: list[InstallInstruction]
    wildcards: list[str]


class InstallPlanRequest(BaseModel):
    files: list[str]


class SupportResult(BaseModel):
    supported: bool
    required_files: list[str] = Field(default_factory=list)


class SetupResult(BaseModel):
    ledger_path: str
    seeded: bool
    ledger_lines: int
