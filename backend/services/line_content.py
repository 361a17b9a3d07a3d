"""
Line Content - Hash the code under an annotation to detect when it changes
"""

from __future__ import annotations

import hashlib

from services.identity_codec import extract_content_hash

HASH_LENGTH = 8


def create_line_content_hash(content: str) -> str:
    """Short sha256 of the content, ignoring indentation and blank lines"""
    normalized = "\n".join(line.strip() for line in content.split("\n") if line.strip())
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def extract_line_content(file_content: str, line: int, start_line: int | None = None) -> str:
    """Return lines start_line..line (1-indexed, inclusive), or just `line`"""
    lines = file_content.split("\n")

    if start_line is not None:
        start = max(0, start_line - 1)
        end = min(len(lines), line)
        return "\n".join(lines[start:end])

    if 1 <= line <= len(lines):
        return lines[line - 1]
    return ""


def should_replace_comment(existing_body: str | None, current_hash: str) -> bool:
    """Replace unless the existing marker carries the same content hash"""
    if existing_body is None:
        return True
    return extract_content_hash(existing_body) != current_hash
