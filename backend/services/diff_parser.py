"""
Diff Parser Service - Build a per-file model of changed lines from a unified diff
"""

from __future__ import annotations

import logging
import re

from models.diff import DiffHunk, DiffInfo, DiffModel

logger = logging.getLogger(__name__)

FILE_SPLIT_PATTERN = re.compile(r"^diff --git ", re.MULTILINE)
FILE_HEADER_PATTERN = re.compile(r"^a/(?P<old>.+?) b/(?P<new>.+?)\s*$")
HUNK_HEADER_PATTERN = re.compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d+))? "
    r"\+(?P<new_start>\d+)(?:,(?P<new_count>\d+))? @@"
)


class DiffParser:
    """Turn unified diff text into a DiffModel"""

    def parse(self, diff_text: str) -> DiffModel:
        """Parse a (possibly multi-file) unified diff.

        Sections or hunks that do not match the diff grammar are skipped, so a
        malformed section never invalidates the rest of the diff.
        """
        diff_model: DiffModel = {}
        if not diff_text:
            return diff_model

        # The first chunk is whatever precedes the first file header
        for section in FILE_SPLIT_PATTERN.split(diff_text)[1:]:
            header, _, body = section.partition("\n")
            match = FILE_HEADER_PATTERN.match(header)
            if not match:
                logger.debug("[DiffParser] Skipping section with unparseable header: %r", header[:120])
                continue

            diff_model[match.group("new")] = self._parse_file_section(body)

        return diff_model

    def _parse_file_section(self, body: str) -> DiffInfo:
        """Collect hunks and new-file line numbers for one file"""
        info = DiffInfo()
        in_hunk = False
        line_number = 0
        end_line = 0

        for raw_line in body.split("\n"):
            line = raw_line.rstrip("\r")

            if line.startswith("@@"):
                match = HUNK_HEADER_PATTERN.match(line)
                if not match:
                    # Ignore the body of a malformed hunk until the next header
                    in_hunk = False
                    continue
                new_start = int(match.group("new_start"))
                new_count = int(match.group("new_count") or 1)
                line_number = new_start
                end_line = new_start + new_count - 1
                info.hunks.append(DiffHunk(start_line=new_start, end_line=end_line, header=line))
                in_hunk = True
                continue

            if not in_hunk:
                continue

            # "\ No newline at end of file" and removed lines are not in the new file
            if line.startswith("\\") or line.startswith("-"):
                continue

            if line_number <= end_line:
                info.changed_lines.add(line_number)
                line_number += 1

        return info


def find_hunk_for_line(hunks: list[DiffHunk], line_number: int) -> DiffHunk | None:
    """Return the hunk that contains a new-file line, if any"""
    for hunk in hunks:
        if hunk.start_line <= line_number <= hunk.end_line:
            return hunk
    return None


def are_in_same_hunk(hunks: list[DiffHunk], start_line: int, end_line: int) -> bool:
    """Check whether two new-file lines fall inside the same hunk"""
    start_hunk = find_hunk_for_line(hunks, start_line)
    end_hunk = find_hunk_for_line(hunks, end_line)
    return start_hunk is not None and start_hunk is end_hunk


def parse_diff(diff_text: str) -> DiffModel:
    """Convenience function to parse a diff with a default parser."""
    return DiffParser().parse(diff_text)
