"""Discoverer specific exceptions."""


class ConfigurationError(Exception):
    """Exception raised when the discoverer can't be safely started."""

    def __init__(self, message: str, *args):
        self.message = message
        super().__init__(message, *args)


class InvalidYamlError(Exception):
    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args)


class DirectoryListError(OSError):
    """Exception raised when a mount directory can't be enumerated."""

    def __init__(self, message: str, *, path: str):
        self.message = message
        self.path = path
        super().__init__(message)


class UnknownMediaError(Exception):
    """Neither the directory nor the block device check recognized the path."""

    def __init__(
        self,
        path: str,
        *,
        dir_error: Exception | None = None,
        block_error: Exception | None = None,
    ):
        self.path = path
        self.dir_error = dir_error
        self.block_error = block_error
        self.message = f"Block device check for {path!r} failed: "
        self.message += f"DirErr - {dir_error} BlkErr - {block_error}"
        super().__init__(self.message)


class CapacityProbeError(Exception):
    """Exception raised when the capacity of a volume can't be read."""

    def __init__(self, message: str, *, path: str):
        self.message = message
        self.path = path
        super().__init__(message)


class ApiError(Exception):
    """Generic failure talking with the API server."""

    def __init__(self, message: str, *, status: int | None = None):
        self.message = message
        self.status = status
        super().__init__(message)


class AlreadyExistsError(ApiError):
    """The API server already holds an object with the same name."""
