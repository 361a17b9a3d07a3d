"""Models module - Pydantic data models"""

from .annotation import (
    AnnotationIdentity,
    CleanupResult,
    CommentExistence,
    ExistenceReason,
    LineComment,
    ParseFailure,
    PostedAnnotation,
    ReconcileStats,
    ReviewComment,
)
from .diff import DiffHunk, DiffInfo, DiffModel
from .reviews import CleanupEvent, ReconcileRequest, ReconcileResponse
from .transport import (
    RequestOptions,
    RetryPolicy,
    RetryPolicyClass,
    RetrySettings,
    TransportContext,
    TransportResponse,
)

__all__ = [
    # Annotation models
    "AnnotationIdentity",
    "CleanupResult",
    "CommentExistence",
    "ExistenceReason",
    "LineComment",
    "ParseFailure",
    "PostedAnnotation",
    "ReconcileStats",
    "ReviewComment",
    # Diff models
    "DiffHunk",
    "DiffInfo",
    "DiffModel",
    # Review API models
    "CleanupEvent",
    "ReconcileRequest",
    "ReconcileResponse",
    # Transport models
    "RequestOptions",
    "RetryPolicy",
    "RetryPolicyClass",
    "RetrySettings",
    "TransportContext",
    "TransportResponse",
]
