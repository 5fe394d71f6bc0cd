# cache_monitor/core/exceptions.py


class CacheMonitorError(Exception):
    """Base class for errors raised by the cache monitor core."""


class PathNotFoundError(CacheMonitorError):
    """Raised when a resolved scan root does not exist."""
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Path not found: {path}")


class InvalidConfigError(CacheMonitorError):
    """Raised when a monitor list fails validation (import or save)."""
    def __init__(self, message: str = "Invalid config file"):
        super().__init__(message)


class RegistryIOError(CacheMonitorError):
    """Persisted registry state exists but could not be read or written."""
    def __init__(self, file_path: str, reason: str, action: str):
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"Could not {action} {file_path}: {reason}")


class RegistryReadError(RegistryIOError):
    def __init__(self, file_path: str, reason: str):
        super().__init__(file_path, reason, "read")


class RegistryWriteError(RegistryIOError):
    def __init__(self, file_path: str, reason: str):
        super().__init__(file_path, reason, "write")
