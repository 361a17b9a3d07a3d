"""Review API request/response models"""

from __future__ import annotations

from pydantic import BaseModel

from .annotation import LineComment, ReconcileStats


class ReconcileRequest(BaseModel):
    """Request to reconcile line comments on a pull request"""

    commit_sha: str | None = None  # defaults to the PR head
    comments: list[LineComment] = []


class ReconcileResponse(BaseModel):
    """Result of a reconciliation pass"""

    pr_number: int
    reviewer: str | None = None
    stats: ReconcileStats
    message: str


class CleanupEvent(BaseModel):
    """SSE stream event for an obsolete-annotation cleanup"""

    type: str  # "deleted", "failed", "done", "error"
    comment_id: int | None = None
    path: str | None = None
    deleted_count: int | None = None
    done: bool = False
    error: str | None = None
