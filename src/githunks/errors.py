"""Exceptions raised while reading a repository."""

from __future__ import annotations

from typing import Optional


class GitConnectorError(Exception):
    """Base class for every error raised by githunks."""


class NoRepositoryError(GitConnectorError):
    """No repository could be discovered from the supplied path."""


class UnbornBranchError(GitConnectorError):
    """The repository exists but ``HEAD`` does not point at a commit yet."""


class UnknownRevisionError(GitConnectorError):
    """A revision expression did not resolve to an object."""

    def __init__(self, rev: str):
        super().__init__(f"Unknown revision: {rev!r}")
        self.rev = rev


class ObjectLoadError(GitConnectorError):
    """An object id resolved but the object could not be read."""

    def __init__(self, message: str, oid: Optional[str] = None):
        super().__init__(message)
        self.oid = oid


class ObjectTypeError(ObjectLoadError):
    """The object exists but is not of the requested type."""

    def __init__(self, oid: str, expected: str, actual: str):
        super().__init__(f"Object {oid} is a {actual}, not a {expected}", oid)
        self.expected = expected
        self.actual = actual


class DiffError(GitConnectorError):
    """Computing the diff between two trees failed."""


class PatchParseError(GitConnectorError):
    """A patch could not be turned into hunks.

    ``path`` names the file being parsed when the error surfaced through
    :meth:`githunks.connector.GitConnector.get_change_hunks`.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        message = super().__str__()
        if self.path:
            return f"{self.path}: {message}"
        return message


class RepositoryIOError(GitConnectorError, OSError):
    """Filesystem error not covered by a more specific kind."""


class RepositoryClosedError(GitConnectorError):
    """The repository handle was used before connecting or after closing."""


__all__ = [
    "GitConnectorError",
    "NoRepositoryError",
    "UnbornBranchError",
    "UnknownRevisionError",
    "ObjectLoadError",
    "ObjectTypeError",
    "DiffError",
    "PatchParseError",
    "RepositoryIOError",
    "RepositoryClosedError",
]
