"""Fixtures building small real repositories with GitPython."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import pytest
from git import Actor, Commit, Repo

AUTHOR = Actor("Test User", "test@example.com")

Content = Union[str, bytes]


class RepoBuilder:
    """Writes files into a working tree and commits them."""

    def __init__(self, root: Path):
        self.root = root
        self.repo = Repo.init(root)

    def commit(
        self,
        message: str,
        files: Optional[Dict[str, Content]] = None,
        removed: Iterable[str] = (),
        parents: Optional[List[Commit]] = None,
        head: bool = True,
    ) -> str:
        for path, content in (files or {}).items():
            target = self.root / path
            target.parent.mkdir(parents=True, exist_ok=True)
            data = content.encode("utf-8") if isinstance(content, str) else content
            target.write_bytes(data)
            self.repo.index.add([str(target)])
        removed = [str(self.root / path) for path in removed]
        if removed:
            self.repo.index.remove(removed, working_tree=True)
        commit = self.repo.index.commit(
            message,
            parent_commits=parents,
            head=head,
            author=AUTHOR,
            committer=AUTHOR,
        )
        return commit.hexsha

    def symlink(self, path: str, target: str) -> None:
        link = self.root / path
        if link.is_symlink() or link.exists():
            link.unlink()
        os.symlink(target, link)
        self.repo.index.add([str(link)])

    def gitlink(self, path: str, hexsha: str) -> None:
        """Stage a submodule entry without a checkout behind it."""

        self.repo.git.update_index("--add", "--cacheinfo", f"160000,{hexsha},{path}")

    def blob_text(self, rev: str, path: str) -> str:
        blob = self.repo.commit(rev).tree / path
        return blob.data_stream.read().decode("utf-8", "surrogateescape")

    def close(self) -> None:
        self.repo.close()


@pytest.fixture(autouse=True)
def _isolate_discovery(tmp_path, monkeypatch) -> None:
    # Keep repository discovery from escaping into whatever encloses tmp_path.
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
    for name in ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def builder(tmp_path):
    repo_builder = RepoBuilder(tmp_path / "repo")
    yield repo_builder
    repo_builder.close()


def numbered_lines(count: int, prefix: str = "line") -> str:
    return "".join(f"{prefix} {number}\n" for number in range(1, count + 1))
