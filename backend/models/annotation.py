"""Review annotation data models"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class AnnotationIdentity(BaseModel):
    """Stable identity of a posted annotation: path plus line range"""

    model_config = ConfigDict(frozen=True)

    path: str
    start_line: int | None = Field(default=None, ge=1)
    end_line: int = Field(ge=1)

    @model_validator(mode="after")
    def _check_range(self) -> "AnnotationIdentity":
        if self.start_line is not None and self.start_line > self.end_line:
            raise ValueError("start_line must be less than or equal to end_line")
        return self

    @property
    def first_line(self) -> int:
        return self.start_line if self.start_line is not None else self.end_line


class ParseFailure(BaseModel):
    """Marker could not be decoded from a comment body"""

    model_config = ConfigDict(frozen=True)

    reason: str


class ReviewComment(BaseModel):
    """Review comment as returned by the remote service"""

    model_config = ConfigDict(extra="ignore")

    id: int
    path: str
    body: str = ""
    line: int | None = None
    start_line: int | None = None


class PostedAnnotation(BaseModel):
    """A remote comment together with its decoded identity"""

    remote_id: int
    path: str  # authoritative, unencoded
    body: str = ""
    identity: AnnotationIdentity | ParseFailure


class LineComment(BaseModel):
    """A line-level comment to be posted on a pull request"""

    path: str = Field(min_length=1)
    line: int = Field(ge=1)
    start_line: int | None = Field(default=None, ge=1)
    body: str = Field(min_length=1)

    @model_validator(mode="after")
    def _check_range(self) -> "LineComment":
        # start_line == line is a valid single-line range
        if self.start_line is not None and self.start_line > self.line:
            raise ValueError("start_line must be less than or equal to line")
        return self

    def identity(self) -> AnnotationIdentity:
        return AnnotationIdentity(path=self.path, start_line=self.start_line, end_line=self.line)


class ExistenceReason(str, Enum):
    """Why a comment is reported missing"""

    NOT_FOUND = "not_found"
    ERROR = "error"


class CommentExistence(BaseModel):
    """Result of checking whether a remote comment still exists.

    `error` holds the repr() of the underlying exception rather than the
    exception itself, so the result stays serializable in API responses.
    """

    exists: bool
    reason: ExistenceReason | None = None
    error: str | None = None


class CleanupResult(BaseModel):
    """Outcome of deleting obsolete annotations"""

    deleted_ids: list[int] = []
    failed_ids: list[int] = []

    @computed_field
    @property
    def deleted_count(self) -> int:
        return len(self.deleted_ids)


class ReconcileStats(BaseModel):
    """Counters for one reconciliation pass"""

    created: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
