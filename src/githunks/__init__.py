"""githunks package.

Structured change hunks from a local Git repository: resolve commits, walk
history and pair every ``@@`` section of a diff with the post-image lines it
produced. Logging goes through loguru and is disabled for this package until
the application calls ``logger.enable("githunks")``.
"""

from loguru import logger

from .config import DEFAULT_CONFIG, ConnectorConfig
from .connector import GitConnector
from .errors import (
    DiffError,
    GitConnectorError,
    NoRepositoryError,
    ObjectLoadError,
    ObjectTypeError,
    PatchParseError,
    RepositoryClosedError,
    RepositoryIOError,
    UnbornBranchError,
    UnknownRevisionError,
)
from .git import DEV_NULL, ChangeKind, CommitRef, DiffRecord, ObjectId, ObjectStore, Signature, TreeDiffer
from .hunks import CodeHunk, parse_hunks

logger.disable(__name__)

__all__ = [
    "DEFAULT_CONFIG",
    "ConnectorConfig",
    "GitConnector",
    "DEV_NULL",
    "ChangeKind",
    "CommitRef",
    "DiffRecord",
    "ObjectId",
    "ObjectStore",
    "Signature",
    "TreeDiffer",
    "CodeHunk",
    "parse_hunks",
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
