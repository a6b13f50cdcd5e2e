from __future__ import annotations


class StorageError(RuntimeError):
    pass


class StorageInitError(StorageError):
    """Startup failure. The manager stays unusable until reinitialize()."""


class StorageNotReadyError(StorageError):
    def __init__(self, reason: str = "storage_not_initialized") -> None:
        super().__init__(reason)


class StorageQueryError(StorageError):
    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class IntegrityViolationError(StorageQueryError):
    pass
