"""Exception hierarchy shared by the parse, analysis and build stages"""

from pathlib import Path


class WorkdbError(Exception):
    """Base class for every error raised by workdb."""


class BuildInProgressError(WorkdbError):
    """Another build holds the lock on the output database."""

    def __init__(self, lock_path: Path):
        super().__init__(
            f"another build is in progress (could not acquire build lock {lock_path})"
        )
        self.lock_path = lock_path


class DatabaseRootError(WorkdbError):
    """The works directory cannot be listed or an output directory cannot be created."""


class DescriptionError(WorkdbError):
    """A single description file cannot be read."""


class LayoutError(WorkdbError):
    """A declared layout references a block that does not exist."""

    def __init__(self, language: str, reference: str, reason: str = "unknown content block"):
        super().__init__(f"layout for language {language!r} references {reference!r}: {reason}")
        self.language = language
        self.reference = reference


class MediaAnalysisError(WorkdbError):
    """A single media file could not be analyzed."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"while analyzing {path}: {reason}")
        self.path = path
