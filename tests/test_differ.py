from __future__ import annotations

import os

import pytest
from conftest import numbered_lines

from githunks.git import DEV_NULL, ChangeKind, ObjectStore, TreeDiffer, split_patch, suffix_pathspec


def _diff(builder, base, head, suffix=None, include_deletions=False):
    with ObjectStore.open(builder.root) as store:
        differ = TreeDiffer(store)
        return differ.diff(
            store.load_commit(store.resolve(base)),
            store.load_commit(store.resolve(head)),
            suffix,
            include_deletions=include_deletions,
        )


def test_same_commit_has_no_entries(builder) -> None:
    head = builder.commit("first", {"a.txt": "a\n"})

    assert _diff(builder, head, head) == []


def test_modify_record(builder) -> None:
    base = builder.commit("first", {"x.txt": "alpha\n"})
    head = builder.commit("second", {"x.txt": "alpha\nbeta\n"})

    (record,) = _diff(builder, base, head)

    assert record.old_path == "x.txt"
    assert record.new_path == "x.txt"
    assert record.change_kind is ChangeKind.MODIFY
    assert record.new_blob_id.hex == (builder.repo.commit(head).tree / "x.txt").hexsha
    assert record.patch_text.startswith("diff --git a/x.txt b/x.txt\n")
    assert record.patch_text.endswith("@@ -1 +1,2 @@\n alpha\n+beta\n")
    assert not record.is_submodule


def test_add_uses_dev_null_for_old_path(builder) -> None:
    base = builder.commit("first", {"a.txt": "a\n"})
    head = builder.commit("second", {"b.txt": "b\n"})

    (record,) = _diff(builder, base, head)

    assert record.change_kind is ChangeKind.ADD
    assert record.old_path == DEV_NULL
    assert record.new_path == "b.txt"


def test_deletions_dropped_unless_requested(builder) -> None:
    base = builder.commit("first", {"a.md": "a\n", "keep.txt": "k\n"})
    head = builder.commit("second", removed=["a.md"])

    assert _diff(builder, base, head) == []

    (record,) = _diff(builder, base, head, include_deletions=True)
    assert record.change_kind is ChangeKind.DELETE
    assert record.old_path == "a.md"
    assert record.new_path == DEV_NULL
    assert record.new_blob_id is None


def test_rename_record(builder) -> None:
    body = numbered_lines(10)
    base = builder.commit("first", {"old.txt": body})
    head = builder.commit("rename", {"new.txt": body}, removed=["old.txt"])

    (record,) = _diff(builder, base, head)

    assert record.change_kind is ChangeKind.RENAME
    assert (record.old_path, record.new_path) == ("old.txt", "new.txt")
    assert "rename from old.txt\n" in record.patch_text
    assert "@@" not in record.patch_text


def test_each_entry_gets_only_its_own_patch(builder) -> None:
    base = builder.commit("first", {"a.txt": "a\n", "b.txt": "b\n", "c.txt": "c\n"})
    head = builder.commit("second", {"a.txt": "A\n", "c.txt": "C\n"})

    records = _diff(builder, base, head)

    assert [record.new_path for record in records] == ["a.txt", "c.txt"]
    for record in records:
        assert record.patch_text.count("diff --git ") == 1
        assert f"+++ b/{record.new_path}\n" in record.patch_text


def test_suffix_limits_rename_pairing(builder) -> None:
    body = numbered_lines(10)
    base = builder.commit("first", {"Main.py": body})
    head = builder.commit("move", {"Main.java": body}, removed=["Main.py"])

    renamed = _diff(builder, base, head)
    filtered = _diff(builder, base, head, ".java")

    assert [(r.change_kind, r.new_path) for r in renamed] == [(ChangeKind.RENAME, "Main.java")]
    assert [(r.change_kind, r.new_path) for r in filtered] == [(ChangeKind.ADD, "Main.java")]


def test_suffix_is_case_sensitive_and_crosses_directories(builder) -> None:
    base = builder.commit("first", {"README": "r\n"})
    head = builder.commit(
        "second", {"src/deep/A.java": "a\n", "B.JAVA": "b\n", "c.py": "c\n"}
    )

    records = _diff(builder, base, head, ".java")

    assert [record.new_path for record in records] == ["src/deep/A.java"]


def test_binary_change(builder) -> None:
    base = builder.commit("first", {"blob.bin": b"\x00\x01\x02"})
    head = builder.commit("second", {"blob.bin": b"\x00\x01\x03"})

    (record,) = _diff(builder, base, head)

    assert "Binary files" in record.patch_text


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_type_change_takes_both_patch_blocks(builder) -> None:
    base = builder.commit("first", {"link": "old\n", "z.txt": "z\n"})
    builder.symlink("link", "target")
    head = builder.commit("second", {"z.txt": "Z\n"})

    link, other = _diff(builder, base, head)

    assert link.change_kind is ChangeKind.MODIFY
    assert link.new_mode == 0o120000
    assert link.patch_text.count("diff --git a/link b/link\n") == 2
    assert "deleted file mode 100644\n" in link.patch_text
    assert "new file mode 120000\n" in link.patch_text
    assert other.new_path == "z.txt"
    assert other.patch_text.count("diff --git ") == 1


def test_gitlink_record(builder) -> None:
    first = builder.commit("first", {"a.txt": "a\n"})
    second = builder.commit("second", {"a.txt": "b\n"})
    builder.gitlink("sub", first)
    base = builder.commit("add submodule")
    builder.gitlink("sub", second)
    head = builder.commit("bump submodule")

    (record,) = _diff(builder, base, head)

    assert record.is_submodule
    assert record.new_blob_id.hex == second
    assert f"-Subproject commit {first}\n" in record.patch_text


def test_suffix_pathspec_escapes_wildcards() -> None:
    assert suffix_pathspec(".java") == "*.java"
    assert suffix_pathspec("[x]*.py") == "*\\[x\\]\\*.py"


def test_split_patch() -> None:
    raw = b"diff --git a/a b/a\n+x\ndiff --git a/b b/b\n-y\n"

    assert split_patch(raw) == [b"diff --git a/a b/a\n+x\n", b"diff --git a/b b/b\n-y\n"]
    assert split_patch(b"") == []
