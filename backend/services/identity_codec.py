"""
Identity Codec - Encode annotation identities into hidden comment markers
"""

from __future__ import annotations

import re

from pydantic import ValidationError

from models.annotation import AnnotationIdentity, ParseFailure

MARKER_PREFIX = "<!-- REVU-AI-COMMENT "
MARKER_SUFFIX = " -->"

# Anchored at line start; only an optional content hash may sit between range and suffix
MARKER_PATTERN = re.compile(
    r"^" + re.escape(MARKER_PREFIX)
    + r"(?P<path>[^:\n]+):(?P<first>\d+)(?:-(?P<second>\d+))?"
    + r"(?: HASH:(?P<hash>[a-f0-9]{8}))?"
    + re.escape(MARKER_SUFFIX),
    re.MULTILINE,
)
_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def encode_path(path: str) -> str:
    """Replace path separators (and anything that would break the marker) with '_'"""
    return _UNSAFE_PATH_CHARS.sub("_", path)


def encode_marker(identity: AnnotationIdentity, content_hash: str | None = None) -> str:
    """Build the hidden marker for an annotation identity, optionally stamped with a content hash"""
    if identity.start_line is not None:
        line_range = f"{identity.start_line}-{identity.end_line}"
    else:
        line_range = f"{identity.end_line}"
    marker_id = f"{encode_path(identity.path)}:{line_range}"
    if content_hash:
        marker_id = f"{marker_id} HASH:{content_hash}"
    return f"{MARKER_PREFIX}{marker_id}{MARKER_SUFFIX}"


def decode_marker(body: str | None) -> AnnotationIdentity | ParseFailure:
    """Recover an annotation identity from a comment body.

    The returned path is the encoded one; callers hold the authoritative path
    from the remote comment object.
    """
    if not body:
        return ParseFailure(reason="empty body")

    match = MARKER_PATTERN.search(body)
    if not match:
        return ParseFailure(reason="marker not found")

    try:
        first = int(match.group("first"))
        second = int(match.group("second")) if match.group("second") is not None else None
    except ValueError:
        return ParseFailure(reason="line number is not numeric")

    try:
        if second is None:
            return AnnotationIdentity(path=match.group("path"), end_line=first)
        return AnnotationIdentity(path=match.group("path"), start_line=first, end_line=second)
    except ValidationError as e:
        return ParseFailure(reason=f"invalid line range: {e.errors()[0]['msg']}")


def extract_content_hash(body: str | None) -> str | None:
    """Content hash stamped in the marker, if any"""
    if not body:
        return None
    match = MARKER_PATTERN.search(body)
    return match.group("hash") if match else None


def format_comment_body(identity: AnnotationIdentity, text: str, content_hash: str | None = None) -> str:
    """Prefix free text with the identity marker and a blank line"""
    return f"{encode_marker(identity, content_hash)}\n\n{text}"
