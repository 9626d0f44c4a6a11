"""Facade binding one local repository to the change-hunk pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from git import Repo
from git.exc import GitError
from loguru import logger

from .config import DEFAULT_CONFIG, ConnectorConfig
from .errors import (
    GitConnectorError,
    NoRepositoryError,
    PatchParseError,
    RepositoryClosedError,
    RepositoryIOError,
    UnbornBranchError,
)
from .git.differ import DiffRecord, TreeDiffer
from .git.store import CommitRef, ObjectId, ObjectStore, PathLike
from .hunks.parser import CodeHunk, parse_hunks

ObjectRef = Union[ObjectId, str]


class GitConnector:
    """Read change hunks and history from a local repository.

    The connector is created unconnected; :meth:`connect` discovers and opens
    the repository. It is a context manager and :meth:`close` releases every
    handle it holds, so the usual shape is::

        with GitConnector(path) as connector:
            if connector.connect():
                hunks = connector.get_change_hunks("HEAD~1", "HEAD", ".py")

    Instances are not safe for concurrent use.
    """

    def __init__(self, url: PathLike, config: ConnectorConfig | None = None):
        self.url = Path(url)
        self.config = config or DEFAULT_CONFIG
        self._store: Optional[ObjectStore] = None

    # -------------------------------
    # Lifecycle
    # -------------------------------

    def connect(self) -> bool:
        """Open the repository, returning ``False`` when none can be used."""

        self.close()
        try:
            store = ObjectStore.open(self.url, self.config)
        except (NoRepositoryError, UnbornBranchError, RepositoryIOError, GitError) as exc:
            logger.warning("Cannot connect to {}: {}", self.url, exc)
            return False
        self._store = store
        logger.debug("Connected to {}", store.git_dir)
        return True

    def close(self) -> None:
        if self._store is not None:
            self._store.close()
        self._store = None

    @property
    def is_connected(self) -> bool:
        return self._store is not None

    def __enter__(self) -> "GitConnector":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _require_store(self) -> ObjectStore:
        if self._store is None:
            raise RepositoryClosedError(f"Not connected to {self.url}")
        return self._store

    @property
    def repository(self) -> Repo:
        return self._require_store().repository

    # -------------------------------
    # History
    # -------------------------------

    def log(self, max_count: Optional[int] = None) -> Optional[Iterator[CommitRef]]:
        """Commits reachable from ``HEAD``, or ``None`` if the walk cannot start."""

        store = self._require_store()
        try:
            return store.log(max_count=max_count)
        except (GitConnectorError, GitError) as exc:
            logger.warning("Cannot walk history of {}: {}", self.url, exc)
            return None

    def get_commit(self, rev: str) -> CommitRef:
        store = self._require_store()
        return store.load_commit(store.resolve(rev))

    def get_head_commit(self) -> Optional[CommitRef]:
        return self._require_store().head()

    def get_head_commit_id(self) -> Optional[str]:
        head = self.get_head_commit()
        return head.hexsha if head is not None else None

    # -------------------------------
    # Contents
    # -------------------------------

    def _object_id(self, oid: ObjectRef) -> ObjectId:
        if isinstance(oid, ObjectId):
            return oid
        return ObjectId.from_hex(oid)

    def get_file_bytes(self, oid: ObjectRef) -> bytes:
        """Raw contents of the blob ``oid``; raises on any failure."""

        return self._require_store().load_blob(self._object_id(oid))

    def get_file_content(self, oid: ObjectRef) -> Optional[str]:
        """Blob contents decoded with the configured codec, ``None`` on failure."""

        try:
            return self.config.decode(self.get_file_bytes(oid))
        except RepositoryClosedError:
            raise
        except (GitConnectorError, ValueError) as exc:
            logger.warning("Cannot read blob {}: {}", oid, exc)
            return None

    def _post_image(self, record: DiffRecord) -> str:
        if record.new_blob_id is None:
            return ""
        if record.is_submodule:
            return f"Subproject commit {record.new_blob_id.hex}\n"
        return self.config.decode(self._require_store().load_blob(record.new_blob_id))

    # -------------------------------
    # Change hunks
    # -------------------------------

    def get_change_hunks(
        self, base_commit_id: str, head_commit_id: str, extension: Optional[str] = None
    ) -> Dict[str, List[CodeHunk]]:
        """Map each changed path between two commits to its hunks.

        Parameters
        ----------
        base_commit_id, head_commit_id:
            Any revision expressions naming commits. The diff runs from base to
            head; passing them the other way round yields the reverse patch.
        extension:
            Optional path suffix; only files ending with it are reported.

        Returns
        -------
        Dictionary keyed by new path. Deleted files are not included, renamed
        files appear under their new name.

        Raises
        ------
        PatchParseError
            The patch of one file could not be parsed; no partial mapping is
            returned. The error's ``path`` names the file.
        """

        base = self.get_commit(base_commit_id)
        head = self.get_commit(head_commit_id)
        records = TreeDiffer(self._require_store()).diff(base, head, extension)

        file_code_hunks: Dict[str, List[CodeHunk]] = {}
        for record in records:
            content = self._post_image(record)
            try:
                file_code_hunks[record.new_path] = parse_hunks(record.patch_text, content)
            except PatchParseError as exc:
                exc.path = record.new_path
                logger.error("Cannot parse patch: {}", exc)
                raise
        logger.debug(
            "Collected hunks for {} files between {} and {}",
            len(file_code_hunks),
            base.hexsha[:12],
            head.hexsha[:12],
        )
        return file_code_hunks


__all__ = ["GitConnector"]
