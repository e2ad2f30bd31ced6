"""Centralized customized exceptions for arenacontent.

All project-specific exceptions live in this module (the architecture guard
rejects exception classes defined anywhere else). Internal code should prefer
explicit imports:

    from arenacontent.core.exception import ContentNotFoundError

The HTTP layer maps these classes to status codes; backend-level failures
inside the resolver never escape it (they select the next backend instead).
"""

from __future__ import annotations

__all__ = [
    "ArenaContentError",
    "SpecError",
    "InvalidInputError",
    "ContentNotFoundError",
    "SourceNotFoundError",
    "SourceNotReadyError",
    "VersionNotFoundError",
    "FileNotFoundInContent",
    "CorruptArchiveError",
    "UpstreamError",
]


class ArenaContentError(RuntimeError):
    """Base error for content and version resolution failures."""


class SpecError(ArenaContentError, ValueError):
    """Raised when a Source/Workspace manifest is malformed."""


class InvalidInputError(ArenaContentError, ValueError):
    """Raised when request parameters are missing or malformed."""


class ContentNotFoundError(ArenaContentError):
    """Raised when no backend yielded content for a source."""


class SourceNotFoundError(ContentNotFoundError):
    """Raised by a source lookup when the named source does not exist."""


class SourceNotReadyError(ContentNotFoundError):
    """Raised when the source exists but its backend has not produced content yet."""

    def __init__(self, message: str, *, phase: str | None = None):
        super().__init__(message)
        self.phase = phase


class VersionNotFoundError(ContentNotFoundError):
    """Raised when switching to a version directory that does not exist."""

    def __init__(self, version: str):
        super().__init__("Version not found. It may have been garbage collected.")
        self.version = version


class FileNotFoundInContent(ContentNotFoundError):
    """Raised when the resolved content root lacks the requested path."""

    def __init__(self, path: str):
        super().__init__(f"File not found: {path}")
        self.path = path


class CorruptArchiveError(ArenaContentError):
    """Raised when a remote bundle fails to decompress or parse."""


class UpstreamError(ArenaContentError):
    """Network or storage failure reported by an external collaborator."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
