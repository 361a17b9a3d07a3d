"""
Reconciliation Engine - Keep posted line annotations in sync with the current PR diff
"""

from __future__ import annotations

import logging
import time
from typing import Any, AsyncIterator, Optional

from models.annotation import (
    AnnotationIdentity,
    CleanupResult,
    CommentExistence,
    ExistenceReason,
    LineComment,
    PostedAnnotation,
    ReconcileStats,
    ReviewComment,
)
from models.diff import DiffModel
from services.diff_parser import DiffParser, are_in_same_hunk, find_hunk_for_line
from services.identity_codec import decode_marker, format_comment_body
from services.line_content import create_line_content_hash, extract_line_content, should_replace_comment
from services.transport import get_status

logger = logging.getLogger(__name__)


def is_comment_valid_for_diff(comment: LineComment, diff_model: DiffModel) -> bool:
    """Check that a new comment lands entirely on visible lines of a single hunk"""
    info = diff_model.get(comment.path)
    if info is None:
        return False

    if comment.start_line is not None:
        all_lines_in_diff = all(
            line in info.changed_lines for line in range(comment.start_line, comment.line + 1)
        )
        return all_lines_in_diff and are_in_same_hunk(info.hunks, comment.start_line, comment.line)

    return comment.line in info.changed_lines and find_hunk_for_line(info.hunks, comment.line) is not None


class ReconciliationEngine:
    """Decide which annotations to keep, delete, and create for one pull request"""

    def __init__(self, client, parser: DiffParser | None = None):
        self.client = client
        self.parser = parser or DiffParser()

    # ========== Pure Decisions ==========

    @staticmethod
    def find_existing(remote_comments: list[ReviewComment]) -> list[PostedAnnotation]:
        """Keep only comments carrying a decodable marker"""
        annotations = []
        for comment in remote_comments:
            identity = decode_marker(comment.body)
            if not isinstance(identity, AnnotationIdentity):
                continue
            annotations.append(
                PostedAnnotation(remote_id=comment.id, path=comment.path, body=comment.body, identity=identity)
            )
        return annotations

    @staticmethod
    def is_obsolete(annotation: PostedAnnotation, diff_model: DiffModel) -> bool:
        """An annotation is obsolete unless its whole range is still in the diff"""
        identity = annotation.identity
        if not isinstance(identity, AnnotationIdentity):
            return False  # not ours

        info = diff_model.get(annotation.path)
        if info is None:
            return True

        return not all(
            line in info.changed_lines for line in range(identity.first_line, identity.end_line + 1)
        )

    @staticmethod
    def build_create_params(path: str, comment: LineComment, comment_body: str, commit_sha: str) -> dict[str, Any]:
        """Build the create-comment request body"""
        params: dict[str, Any] = {
            "commit_id": commit_sha,
            "path": path,
            "line": comment.line,
            "body": comment_body,
        }
        # Emitted even when start_line == line to keep one request shape
        if comment.start_line is not None:
            params.update(start_line=comment.start_line, side="RIGHT", start_side="RIGHT")
        return params

    # ========== Remote Operations ==========

    async def build_diff_model(self, pr_number: int) -> DiffModel:
        """Fetch the PR diff and parse it; never cached across passes"""
        diff_text = await self.client.get_pull_request_diff(pr_number)
        return self.parser.parse(diff_text)

    async def fetch_existing(self, pr_number: int) -> list[PostedAnnotation]:
        return self.find_existing(await self.client.list_review_comments(pr_number))

    async def iter_cleanup(
        self, annotations: list[PostedAnnotation], diff_model: DiffModel
    ) -> AsyncIterator[tuple[PostedAnnotation, Optional[Exception]]]:
        """Delete obsolete annotations one at a time, yielding (annotation, error) per candidate"""
        for annotation in annotations:
            if not self.is_obsolete(annotation, diff_model):
                continue
            try:
                await self.client.delete_review_comment(annotation.remote_id)
            except Exception as e:
                logger.warning(
                    "[Reconciliation] Failed to delete comment %s on %s: %s",
                    annotation.remote_id,
                    annotation.path,
                    e,
                )
                yield annotation, e
                continue
            logger.debug("[Reconciliation] Deleted obsolete comment %s on %s", annotation.remote_id, annotation.path)
            yield annotation, None

    async def cleanup_obsolete(self, annotations: list[PostedAnnotation], diff_model: DiffModel) -> CleanupResult:
        """Delete every obsolete annotation; individual failures are counted, not raised"""
        result = CleanupResult()
        async for annotation, error in self.iter_cleanup(annotations, diff_model):
            if error is None:
                result.deleted_ids.append(annotation.remote_id)
            else:
                result.failed_ids.append(annotation.remote_id)
        return result

    async def check_existence(self, remote_id: int) -> CommentExistence:
        """Check whether a remote comment still exists"""
        try:
            await self.client.get_review_comment(remote_id)
        except Exception as e:
            if get_status(e) == 404:
                return CommentExistence(exists=False, reason=ExistenceReason.NOT_FOUND)
            logger.warning("[Reconciliation] Unable to verify comment %s: %r", remote_id, e)
            return CommentExistence(exists=False, reason=ExistenceReason.ERROR, error=repr(e))
        return CommentExistence(exists=True)

    async def get_line_content(
        self, comment: LineComment, commit_sha: str, file_cache: dict[str, str] | None = None
    ) -> str:
        """Text of the commented lines at `commit_sha`; empty if the file cannot be read"""
        cache = file_cache if file_cache is not None else {}
        if comment.path not in cache:
            try:
                cache[comment.path] = await self.client.get_file_content(comment.path, commit_sha)
            except Exception as e:
                logger.warning(
                    "[Reconciliation] Failed to fetch line content for %s:%s: %s", comment.path, comment.line, e
                )
                return ""
        return extract_line_content(cache[comment.path], comment.line, comment.start_line)

    # ========== Full Pass ==========

    async def reconcile(
        self,
        pr_number: int,
        comments: list[LineComment],
        commit_sha: str | None = None,
    ) -> ReconcileStats:
        """Run one reconciliation pass: clean up obsolete annotations, then post new ones"""
        start_time = time.monotonic()
        stats = ReconcileStats()

        if commit_sha is None:
            pull_request = await self.client.get_pull_request(pr_number)
            commit_sha = pull_request["head"]["sha"]

        diff_model = await self.build_diff_model(pr_number)

        cleanup = await self.cleanup_obsolete(await self.fetch_existing(pr_number), diff_model)
        stats.deleted = cleanup.deleted_count

        # Re-list so annotations deleted above are not matched
        existing = await self.fetch_existing(pr_number)
        file_cache: dict[str, str] = {}

        for comment in comments:
            if not is_comment_valid_for_diff(comment, diff_model):
                logger.info(
                    "[Reconciliation] Skipping comment on %s:%s-%s - not valid for current diff",
                    comment.path,
                    comment.start_line or comment.line,
                    comment.line,
                )
                stats.skipped += 1
                continue

            identity = comment.identity()
            content_hash = create_line_content_hash(await self.get_line_content(comment, commit_sha, file_cache))
            comment_body = format_comment_body(identity, comment.body, content_hash)
            match = self._find_matching(existing, comment, identity)

            if match is None:
                await self._create(pr_number, comment, comment_body, commit_sha)
                stats.created += 1
                continue

            if not should_replace_comment(match.body, content_hash):
                logger.info(
                    "[Reconciliation] Skipping comment on %s:%s-%s - content unchanged",
                    comment.path,
                    comment.start_line or comment.line,
                    comment.line,
                )
                stats.skipped += 1
                continue

            existence = await self.check_existence(match.remote_id)
            if existence.exists:
                await self.client.update_review_comment(match.remote_id, comment_body)
                stats.updated += 1
            elif existence.reason == ExistenceReason.NOT_FOUND:
                logger.info("[Reconciliation] Comment %s no longer exists, creating new one", match.remote_id)
                await self._create(pr_number, comment, comment_body, commit_sha)
                stats.created += 1
            else:
                stats.skipped += 1

        logger.info(
            "[Reconciliation] PR #%s: created %d, updated %d, deleted %d, skipped %d (%.0f ms)",
            pr_number,
            stats.created,
            stats.updated,
            stats.deleted,
            stats.skipped,
            (time.monotonic() - start_time) * 1000,
        )
        return stats

    @staticmethod
    def _find_matching(
        existing: list[PostedAnnotation], comment: LineComment, identity: AnnotationIdentity
    ) -> Optional[PostedAnnotation]:
        for annotation in existing:
            posted = annotation.identity
            if (
                annotation.path == comment.path
                and isinstance(posted, AnnotationIdentity)
                and posted.start_line == identity.start_line
                and posted.end_line == identity.end_line
            ):
                return annotation
        return None

    async def _create(self, pr_number: int, comment: LineComment, comment_body: str, commit_sha: str):
        params = self.build_create_params(comment.path, comment, comment_body, commit_sha)
        await self.client.create_review_comment(pr_number, params)


def format_summary(pr_number: int, stats: ReconcileStats) -> str:
    return (
        f"PR #{pr_number}: Created {stats.created}, updated {stats.updated}, "
        f"deleted {stats.deleted}, and skipped {stats.skipped} line comments"
    )
