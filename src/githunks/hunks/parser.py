"""Turn a single file's unified diff into :class:`CodeHunk` records.

Each hunk pairs the ``@@`` header and body from the patch with the matching
lines of the post-image, so consumers get both the change and the code it
produced without re-reading the blob.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Tuple

from ..errors import PatchParseError

_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$")
_LINE_RE = re.compile(r"[^\n]*\n|[^\n]+")

# Markers for binary changes in the preamble.
_BINARY_MARKERS = ("Binary files ", "GIT binary patch")


@dataclass(frozen=True, slots=True)
class CodeHunk:
    """One ``@@`` section of a unified diff and the new-file text it covers."""

    old_start_line: int
    old_line_count: int
    new_start_line: int
    new_line_count: int
    header_text: str
    section_heading: str
    body_text: str
    new_file_slice: str

    @property
    def new_end_line(self) -> int:
        """Last post-image line covered; one before the start for empty hunks."""

        return self.new_start_line + self.new_line_count - 1

    @property
    def added_lines(self) -> List[str]:
        return [line[1:] for line in split_lines(self.body_text) if line.startswith("+")]

    @property
    def removed_lines(self) -> List[str]:
        return [line[1:] for line in split_lines(self.body_text) if line.startswith("-")]


def split_lines(text: str) -> List[str]:
    """Split ``text`` on ``\\n`` keeping terminators.

    A trailing line without a newline is kept, an empty string has no lines.
    Only ``\\n`` separates lines, matching how git counts them; ``\\r`` stays
    part of the line.
    """

    return _LINE_RE.findall(text)


def _strip_newline(line: str) -> str:
    return line[:-1] if line.endswith("\n") else line


def parse_header(line: str) -> Tuple[int, int, int, int, str]:
    """Parse ``@@ -a[,b] +c[,d] @@ heading`` into its numbers and heading."""

    match = _HUNK_HEADER_RE.match(_strip_newline(line))
    if match is None:
        raise PatchParseError(f"Malformed hunk header: {line.rstrip()!r}")
    old_start, old_count, new_start, new_count, heading = match.groups()
    if heading.startswith(" "):
        heading = heading[1:]
    return (
        int(old_start),
        1 if old_count is None else int(old_count),
        int(new_start),
        1 if new_count is None else int(new_count),
        heading,
    )


def is_binary_patch(patch_text: str) -> bool:
    for line in split_lines(patch_text):
        if line.startswith("@@ "):
            return False
        if line.startswith(_BINARY_MARKERS):
            return True
    return False


def _split_sections(patch_text: str) -> List[Tuple[str, List[str]]]:
    sections: List[Tuple[str, List[str]]] = []
    body: List[str] | None = None
    for line in split_lines(patch_text):
        if line.startswith("@@ "):
            body = []
            sections.append((line, body))
        elif line.startswith("diff --git "):
            # A type change carries a second file header; it is preamble again.
            body = None
        elif body is not None:
            body.append(line)
    return sections


def _check_counts(header: str, body: List[str], old_count: int, new_count: int) -> None:
    old_seen = new_seen = 0
    for line in body:
        marker = line[:1]
        if marker == " ":
            old_seen += 1
            new_seen += 1
        elif marker == "+":
            new_seen += 1
        elif marker == "-":
            old_seen += 1
        elif marker != "\\":
            raise PatchParseError(f"Unexpected line in hunk {header.rstrip()!r}: {line.rstrip()!r}")
    if old_seen != old_count or new_seen != new_count:
        raise PatchParseError(
            f"Hunk {header.rstrip()!r} declares {old_count}/{new_count} lines"
            f" but its body has {old_seen}/{new_seen}"
        )


def parse_hunks(patch_text: str, content: str) -> List[CodeHunk]:
    """Parse ``patch_text`` for one file against its post-image ``content``.

    Parameters
    ----------
    patch_text:
        Unified diff for a single file, starting with its ``diff --git`` line.
    content:
        Full text of the new-side blob the patch was produced against.

    Returns
    -------
    Hunks in patch order, which git guarantees ascends by new start line. A
    binary change or a header-only patch (pure rename, mode change) yields an
    empty list.

    Raises
    ------
    PatchParseError
        A header is malformed, a body disagrees with its header counts, or a
        hunk reaches past the end of ``content``. Nothing is returned for the
        file in that case.
    """

    if is_binary_patch(patch_text):
        return []

    lines = split_lines(content)
    hunks: List[CodeHunk] = []
    for header, body in _split_sections(patch_text):
        old_start, old_count, new_start, new_count, heading = parse_header(header)
        _check_counts(header, body, old_count, new_count)

        if new_count == 0:
            new_slice = ""
        else:
            if new_start < 1 or new_start + new_count - 1 > len(lines):
                raise PatchParseError(
                    f"Hunk {header.rstrip()!r} covers lines {new_start}-"
                    f"{new_start + new_count - 1} but the new file has {len(lines)}"
                )
            new_slice = "".join(lines[new_start - 1 : new_start - 1 + new_count])

        hunks.append(
            CodeHunk(
                old_start_line=old_start,
                old_line_count=old_count,
                new_start_line=new_start,
                new_line_count=new_count,
                header_text=_strip_newline(header),
                section_heading=heading,
                body_text="".join(body),
                new_file_slice=new_slice,
            )
        )
    return hunks


__all__ = ["CodeHunk", "parse_hunks", "parse_header", "split_lines", "is_binary_patch"]
