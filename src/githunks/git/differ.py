"""Tree-to-tree diffs with one unified patch per changed file."""

from __future__ import annotations

import enum
import re
import stat
from dataclasses import dataclass
from typing import List, Optional

from git import Commit, Diff
from git.exc import GitError
from loguru import logger

from ..errors import DiffError
from .store import CommitRef, ObjectId, ObjectStore

DEV_NULL = "/dev/null"

_GITLINK_MODE = 0o160000
_DIFF_HEADER_RE = re.compile(rb"^diff --git ", re.MULTILINE)
_PATHSPEC_SPECIAL_RE = re.compile(r"([*?\[\]\\])")

# Pathspec magic is taken from the suffix alone, never from the environment.
_PATHSPEC_ENV = {
    "GIT_LITERAL_PATHSPECS": "0",
    "GIT_GLOB_PATHSPECS": "0",
    "GIT_NOGLOB_PATHSPECS": "0",
    "GIT_ICASE_PATHSPECS": "0",
}


class ChangeKind(enum.Enum):
    """Kind of change recorded for one path."""

    ADD = "add"
    MODIFY = "modify"
    DELETE = "delete"
    RENAME = "rename"
    COPY = "copy"


_CHANGE_KINDS = {
    "A": ChangeKind.ADD,
    "M": ChangeKind.MODIFY,
    "D": ChangeKind.DELETE,
    "R": ChangeKind.RENAME,
    "C": ChangeKind.COPY,
    "T": ChangeKind.MODIFY,
}


@dataclass(frozen=True, slots=True)
class DiffRecord:
    """One changed path between two trees together with its patch text."""

    old_path: str
    new_path: str
    change_kind: ChangeKind
    new_blob_id: Optional[ObjectId]
    new_mode: int
    patch_text: str

    @property
    def is_submodule(self) -> bool:
        return stat.S_IFMT(self.new_mode) == _GITLINK_MODE


def suffix_pathspec(suffix: str) -> str:
    """Return a pathspec matching every path that ends with ``suffix``.

    Git's default pathspec wildcards let ``*`` cross directory separators, so
    a leading ``*`` followed by the escaped suffix is a plain "ends with"
    test on the full path.
    """

    return "*" + _PATHSPEC_SPECIAL_RE.sub(r"\\\1", suffix)


def split_patch(raw: bytes) -> List[bytes]:
    """Cut ``diff-tree -p`` output into one block per ``diff --git`` header."""

    starts = [match.start() for match in _DIFF_HEADER_RE.finditer(raw)]
    ends = starts[1:] + [len(raw)]
    return [raw[start:end] for start, end in zip(starts, ends)]


class TreeDiffer:
    """Compute per-file unified diffs between two commits.

    The scan runs twice over the same trees with identical options: once in
    raw form through GitPython to get paths, change types and blob ids, once
    as a patch. Git emits file pairs in the same order for both, so each raw
    entry takes the next patch block. Type changes are the exception: the
    patch output splits them into a deletion followed by a creation and the
    entry takes both blocks.
    """

    def __init__(self, store: ObjectStore):
        self._store = store

    def diff(
        self,
        base: CommitRef,
        head: CommitRef,
        suffix: Optional[str] = None,
        include_deletions: bool = False,
    ) -> List[DiffRecord]:
        """Diff ``base`` against ``head``.

        Parameters
        ----------
        base, head:
            The commits whose trees are compared. The diff is directional; if
            ``head`` is an ancestor of ``base`` the reverse patch is produced.
        suffix:
            When non-empty, only paths ending with this string (case
            sensitive) are considered, both for rename pairing and in the
            result.
        include_deletions:
            Keep entries for deleted paths. They are dropped by default since
            they carry no new-side content.

        Returns
        -------
        Records in the order git reports them.
        """

        if base.id == head.id:
            return []

        paths = [suffix_pathspec(suffix)] if suffix else None
        with self._store.repository.git.custom_environment(**_PATHSPEC_ENV):
            entries = self._scan(base, head, paths)
            blocks = split_patch(self._format(base, head, paths))
        logger.debug(
            "Diff {}..{}: {} entries, {} patch blocks",
            base.hexsha[:12],
            head.hexsha[:12],
            len(entries),
            len(blocks),
        )

        records: List[DiffRecord] = []
        position = 0
        for entry in entries:
            width = 2 if entry.change_type == "T" else 1
            chunk = blocks[position : position + width]
            position += width
            if len(chunk) != width:
                raise DiffError(
                    f"Patch output for {base.hexsha}..{head.hexsha} is missing"
                    f" blocks ({len(entries)} entries, {len(blocks)} blocks)"
                )
            record = self._record(entry, b"".join(chunk))
            if record.change_kind is ChangeKind.DELETE:
                if include_deletions and (not suffix or record.old_path.endswith(suffix)):
                    records.append(record)
                continue
            if suffix and not record.new_path.endswith(suffix):
                continue
            records.append(record)

        if position != len(blocks):
            raise DiffError(
                f"Patch output for {base.hexsha}..{head.hexsha} has"
                f" {len(blocks) - position} unmatched blocks"
            )
        return records

    def _scan(self, base: CommitRef, head: CommitRef, paths: Optional[List[str]]) -> List[Diff]:
        # GitPython always passes -M, matching the patch run below.
        repo = self._store.repository
        try:
            return list(Commit(repo, base.id.binsha).diff(head.hexsha, paths=paths))
        except (ValueError, GitError) as exc:
            raise DiffError(f"Could not scan {base.hexsha}..{head.hexsha}: {exc}") from exc

    def _format(self, base: CommitRef, head: CommitRef, paths: Optional[List[str]]) -> bytes:
        args = [
            base.hexsha,
            head.hexsha,
            "-r",
            "-p",
            "-M",
            "--full-index",
            "--no-color",
            "--no-ext-diff",
            "--no-textconv",
        ]
        if paths:
            args.append("--")
            args.extend(paths)
        try:
            return self._store.repository.git.diff_tree(
                *args, stdout_as_string=False, strip_newline_in_stdout=False
            )
        except GitError as exc:
            raise DiffError(f"Could not format {base.hexsha}..{head.hexsha}: {exc}") from exc

    def _record(self, entry: Diff, patch: bytes) -> DiffRecord:
        kind = _CHANGE_KINDS.get(entry.change_type)
        if kind is None:
            raise DiffError(f"Unsupported change type {entry.change_type!r} for {entry.b_path}")

        old_path = entry.a_path or DEV_NULL
        new_path = entry.b_path or DEV_NULL
        if kind is ChangeKind.ADD:
            old_path = DEV_NULL
        elif kind is ChangeKind.DELETE:
            new_path = DEV_NULL

        new_blob_id = None
        new_mode = 0
        if kind is not ChangeKind.DELETE and entry.b_blob is not None:
            new_blob_id = ObjectId(entry.b_blob.binsha)
            new_mode = entry.b_mode or 0

        return DiffRecord(
            old_path=old_path,
            new_path=new_path,
            change_kind=kind,
            new_blob_id=new_blob_id,
            new_mode=new_mode,
            patch_text=self._store.config.decode(patch),
        )


__all__ = [
    "DEV_NULL",
    "ChangeKind",
    "DiffRecord",
    "TreeDiffer",
    "split_patch",
    "suffix_pathspec",
]
