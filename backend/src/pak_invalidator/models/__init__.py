from pak_invalidator.models.offset_cache import ArchiveKeyRecord, InvalidatedOffset

__all__ = [
    "ArchiveKeyRecord",
    "InvalidatedOffset",
]
