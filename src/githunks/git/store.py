"""Object store access backed by GitPython.

:class:`ObjectStore` owns the GitPython :class:`~git.Repo` for one local
repository and exposes the handful of operations the hunk pipeline needs:
revision resolution, commit and blob loading, and a history walk. GitPython
errors are translated into :mod:`githunks.errors` here so callers only deal
with one hierarchy.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

from git import Commit, Git, Repo
from git.exc import GitCommandError, GitError, InvalidGitRepositoryError, NoSuchPathError
from loguru import logger

from ..config import DEFAULT_CONFIG, ConnectorConfig
from ..errors import (
    GitConnectorError,
    NoRepositoryError,
    ObjectLoadError,
    ObjectTypeError,
    RepositoryClosedError,
    RepositoryIOError,
    UnbornBranchError,
    UnknownRevisionError,
)

PathLike = Union[str, "os.PathLike[str]"]

_HEX_LENGTHS = (40, 64)


@dataclass(frozen=True, slots=True)
class ObjectId:
    """Binary name of a Git object (SHA-1 or SHA-256)."""

    binsha: bytes

    @classmethod
    def from_hex(cls, text: str) -> "ObjectId":
        text = text.strip()
        if len(text) not in _HEX_LENGTHS:
            raise ValueError(f"Not a full object id: {text!r}")
        return cls(bytes.fromhex(text))

    @property
    def hex(self) -> str:
        return self.binsha.hex()

    def __str__(self) -> str:
        return self.hex


@dataclass(frozen=True, slots=True)
class Signature:
    """Name, email and time recorded on a commit."""

    name: str
    email: str
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class CommitRef:
    """A parsed commit.

    Only ``tree_id`` matters to the diff pipeline; the remaining fields are
    carried for callers walking history.
    """

    id: ObjectId
    tree_id: ObjectId
    parent_ids: Tuple[ObjectId, ...]
    author: Signature
    committer: Signature
    message: str

    @property
    def hexsha(self) -> str:
        return self.id.hex

    @property
    def summary(self) -> str:
        return self.message.split("\n", 1)[0]


def _type_name(value: Union[bytes, str]) -> str:
    if isinstance(value, bytes):
        return value.decode("ascii")
    return value


class ObjectStore:
    """Read-only handle on a single local repository.

    Use :meth:`open` to discover and open a repository; the returned store is
    a context manager and must be closed to stop the ``git cat-file``
    processes GitPython keeps alive for object reads.
    """

    def __init__(self, repo: Repo, config: ConnectorConfig | None = None):
        self._repo: Optional[Repo] = repo
        self.config = config or DEFAULT_CONFIG

    # -------------------------------
    # Lifecycle
    # -------------------------------

    @classmethod
    def open(cls, working_dir: PathLike, config: ConnectorConfig | None = None) -> "ObjectStore":
        """Discover the repository for ``working_dir`` and open it.

        Discovery is delegated to ``git rev-parse`` so that a ``.git``
        directly beneath ``working_dir`` wins, parent directories are searched
        next, and ``GIT_DIR``, ``GIT_WORK_TREE``, ``GIT_CEILING_DIRECTORIES``
        and ``GIT_DISCOVERY_ACROSS_FILESYSTEM`` behave as they do for git
        itself.

        Raises
        ------
        NoRepositoryError
            ``working_dir`` is missing or no repository encloses it.
        UnbornBranchError
            The repository has no commit on ``HEAD`` yet.
        RepositoryIOError
            The filesystem or the git executable could not be accessed.
        """

        path = Path(working_dir)
        if not path.is_dir():
            raise NoRepositoryError(f"Not a directory: {path}")

        try:
            git_dir = Git(str(path)).rev_parse("--absolute-git-dir")
        except GitCommandError as exc:
            raise NoRepositoryError(f"No git repository found from {path}") from exc
        except (OSError, GitError) as exc:
            raise RepositoryIOError(f"Could not run git in {path}: {exc}") from exc

        logger.debug("Discovered git dir {} from {}", git_dir, path)
        try:
            repo = Repo(git_dir)
        except (InvalidGitRepositoryError, NoSuchPathError) as exc:
            raise NoRepositoryError(f"Not a valid git repository: {git_dir}") from exc
        except OSError as exc:
            raise RepositoryIOError(f"Could not open {git_dir}: {exc}") from exc
        except GitError as exc:
            raise NoRepositoryError(f"Could not open {git_dir}: {exc}") from exc

        if not repo.head.is_valid():
            repo.close()
            raise UnbornBranchError(f"HEAD of {git_dir} does not point at a commit")

        return cls(repo, config)

    def close(self) -> None:
        """Release the repository handle. Safe to call more than once."""

        if self._repo is not None:
            self._repo.close()
            self._repo = None

    @property
    def closed(self) -> bool:
        return self._repo is None

    def __enter__(self) -> "ObjectStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def repository(self) -> Repo:
        """The underlying GitPython repository."""

        if self._repo is None:
            raise RepositoryClosedError("Object store is closed")
        return self._repo

    @property
    def git_dir(self) -> Path:
        return Path(self.repository.git_dir)

    @property
    def working_tree_dir(self) -> Optional[Path]:
        tree_dir = self.repository.working_tree_dir
        return Path(tree_dir) if tree_dir is not None else None

    # -------------------------------
    # Object access
    # -------------------------------

    def resolve(self, rev: str) -> ObjectId:
        """Resolve any revision expression ``git rev-parse`` understands."""

        repo = self.repository
        if not rev or rev.startswith("-"):
            raise UnknownRevisionError(rev)
        try:
            # ^{object} forces a lookup; a bare full-length hex id is echoed unchecked.
            hexsha = repo.git.rev_parse("--verify", "--quiet", f"{rev}^{{object}}")
        except GitCommandError as exc:
            raise UnknownRevisionError(rev) from exc
        return ObjectId.from_hex(hexsha)

    def _object_type(self, oid: ObjectId) -> str:
        try:
            info = self.repository.odb.info(oid.binsha)
        except (ValueError, GitError) as exc:
            raise ObjectLoadError(f"Could not read object {oid}: {exc}", oid.hex) from exc
        return _type_name(info.type)

    def load_commit(self, oid: ObjectId) -> CommitRef:
        """Load and parse the commit named by ``oid``."""

        actual = self._object_type(oid)
        if actual != "commit":
            raise ObjectTypeError(oid.hex, "commit", actual)
        try:
            return self._commit_ref(Commit(self.repository, oid.binsha))
        except (ValueError, GitError) as exc:
            raise ObjectLoadError(f"Could not parse commit {oid}: {exc}", oid.hex) from exc

    def load_blob(self, oid: ObjectId) -> bytes:
        """Return the uncompressed contents of the blob named by ``oid``."""

        actual = self._object_type(oid)
        if actual != "blob":
            raise ObjectTypeError(oid.hex, "blob", actual)
        try:
            return self.repository.odb.stream(oid.binsha).read()
        except (ValueError, GitError) as exc:
            raise ObjectLoadError(f"Could not read blob {oid}: {exc}", oid.hex) from exc

    def head(self) -> Optional[CommitRef]:
        """Return the commit at ``HEAD`` or ``None`` when it cannot be loaded."""

        try:
            return self.load_commit(self.resolve("HEAD"))
        except (GitConnectorError, GitError) as exc:
            logger.debug("Could not load HEAD: {}", exc)
            return None

    def log(self, max_count: Optional[int] = None) -> Iterator[CommitRef]:
        """Walk history from ``HEAD``.

        ``HEAD`` is resolved eagerly so a broken repository fails here rather
        than on the first ``next()``. The walk itself is lazy and each call
        starts a new one.
        """

        start = self.resolve("HEAD")
        kwargs = {}
        if self.config.first_parent:
            kwargs["first_parent"] = True
        if self.config.topo_order:
            kwargs["topo_order"] = True
        if max_count is not None:
            kwargs["max_count"] = max_count
        commits = self.repository.iter_commits(start.hex, **kwargs)
        return (self._commit_ref(commit) for commit in commits)

    def _commit_ref(self, commit: Commit) -> CommitRef:
        message = commit.message
        if isinstance(message, bytes):
            message = self.config.decode(message)
        return CommitRef(
            id=ObjectId(commit.binsha),
            tree_id=ObjectId(commit.tree.binsha),
            parent_ids=tuple(ObjectId(parent.binsha) for parent in commit.parents),
            author=Signature(commit.author.name, commit.author.email, commit.authored_datetime),
            committer=Signature(
                commit.committer.name, commit.committer.email, commit.committed_datetime
            ),
            message=message,
        )


__all__ = ["ObjectId", "Signature", "CommitRef", "ObjectStore"]
