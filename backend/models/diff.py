"""Diff-related data models"""

from __future__ import annotations

from pydantic import BaseModel, Field


class DiffHunk(BaseModel):
    """A contiguous block of new-file lines in a diff"""

    start_line: int  # 1-indexed
    end_line: int
    header: str  # The @@ header line


class DiffInfo(BaseModel):
    """Changed lines and hunks for a single file"""

    changed_lines: set[int] = Field(default_factory=set)  # context + additions
    hunks: list[DiffHunk] = Field(default_factory=list)


# Repo-relative path -> diff information
DiffModel = dict[str, DiffInfo]
