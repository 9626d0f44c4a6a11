"""Git object store access and tree diffs."""

from .differ import DEV_NULL, ChangeKind, DiffRecord, TreeDiffer, split_patch, suffix_pathspec
from .store import CommitRef, ObjectId, ObjectStore, Signature

__all__ = [
    "CommitRef",
    "ObjectId",
    "ObjectStore",
    "Signature",
    "DEV_NULL",
    "ChangeKind",
    "DiffRecord",
    "TreeDiffer",
    "split_patch",
    "suffix_pathspec",
]
