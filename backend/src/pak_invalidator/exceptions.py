"""Error taxonomy for pak invalidation and revalidation."""


class PakInvalidatorError(Exception):
    """Base class for all invalidation errors."""


class ArchiveNotFoundError(PakInvalidatorError):
    """No game archive contains any of the requested paths."""


class AllEntriesInvalidatedError(PakInvalidatorError):
    """Every path in the batch is already invalidated."""


class ToolCanceledError(PakInvalidatorError):
    """The external tool was interrupted by the operator."""


class ToolFailureError(PakInvalidatorError):
    """The external tool reported an error other than cancellation."""


class CacheInconsistentError(PakInvalidatorError):
    """Revalidation was requested but the offset cache has never been populated."""


class ReferenceListMissingError(PakInvalidatorError):
    """The bundled names list required to seed the hash index is absent."""


class UnsupportedModError(PakInvalidatorError):
    """The mod package cannot be installed for this game."""
