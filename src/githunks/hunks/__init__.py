"""Unified diff hunk parsing."""

from .parser import CodeHunk, is_binary_patch, parse_header, parse_hunks, split_lines

__all__ = ["CodeHunk", "is_binary_patch", "parse_header", "parse_hunks", "split_lines"]
