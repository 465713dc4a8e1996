class RodoError(Exception):
    """Base class for every error raised by the task core."""


class ValidationError(RodoError):
    """Bad user input, e.g. an empty title."""


class NotFoundError(RodoError):
    def __init__(self, task_id: str, what: str = "task"):
        super().__init__(f"{what} not found: {task_id}")
        self.task_id = task_id


class CorruptDataError(RodoError):
    """The persisted file exists but cannot be understood."""


class UnsupportedVersionError(CorruptDataError):
    def __init__(self, version: int, supported: int):
        super().__init__(f"schema version {version} is newer than supported version {supported}")
        self.version = version
        self.supported = supported


class StorageIOError(RodoError):
    """Writing the task file failed (after the single retry)."""
