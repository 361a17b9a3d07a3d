"""Shared fixtures and fakes for the test suite."""

from __future__ import annotations

from typing import Any

import pytest

from models.annotation import ReviewComment
from models.transport import RetryPolicy, RetryPolicyClass, RetrySettings, TransportResponse
from services.config_manager import ConfigManager
from services.transport import RemoteServiceError

SAMPLE_DIFF = """\
diff --git a/src/app.py b/src/app.py
index 1111111..2222222 100644
--- a/src/app.py
+++ b/src/app.py
@@ -8,6 +8,8 @@ def main():
 line8
 line9
-old10
+new10
+new11
+new12
 line11
 line12
 line13
diff --git a/README.md b/README.md
index 3333333..4444444 100644
--- a/README.md
+++ b/README.md
@@ -1,2 +1,3 @@
 # Title
+Intro line
 Body
"""


def zero_delay_settings() -> RetrySettings:
    """Default retry budgets with all delays zeroed"""
    return RetrySettings(
        read=RetryPolicy(policy_class=RetryPolicyClass.READ, retries=5, min_delay=0, max_delay=0),
        write=RetryPolicy(policy_class=RetryPolicyClass.WRITE, retries=2, min_delay=0, max_delay=0),
        delete=RetryPolicy(policy_class=RetryPolicyClass.DELETE, retries=2, min_delay=0, max_delay=0),
        randomize=False,
    )


class ScriptedSender:
    """Request sender that replays a list of outcomes; the last one repeats."""

    def __init__(self, *outcomes: Any):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.requests: list = []

    async def __call__(self, options):
        self.calls += 1
        self.requests.append(options)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def ok(status: int = 200, data: Any = None) -> TransportResponse:
    return TransportResponse(status=status, data=data)


def http_error(status: int, headers: dict[str, str] | None = None) -> RemoteServiceError:
    return RemoteServiceError(f"HTTP {status}", status=status, headers=headers)


def make_comment(comment_id: int, path: str, body: str, line: int | None = None) -> ReviewComment:
    return ReviewComment(id=comment_id, path=path, body=body, line=line)


class FakeReviewClient:
    """In-memory stand-in for GitHubClient."""

    native_retry = True  # attach_retry() leaves it alone

    def __init__(
        self,
        diff: str = "",
        comments: list[ReviewComment] | None = None,
        head_sha: str = "abc123",
        files: dict[str, str] | None = None,
    ):
        self.diff = diff
        self.files = files or {}
        self.file_fetches: list[tuple[str, str]] = []
        self.file_errors: dict[str, Exception] = {}
        self.head_sha = head_sha
        self.comments = {c.id: c for c in comments or []}
        self.deleted: list[int] = []
        self.created: list[dict] = []
        self.updated: list[tuple[int, str]] = []
        self.failing_deletes: set[int] = set()
        self.get_errors: dict[int, Exception] = {}
        self.user_calls = 0
        self._next_id = 1000
        self.owner = "octo"
        self.repo = "widgets"

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    async def get_pull_request(self, pr_number):
        return {"number": pr_number, "head": {"sha": self.head_sha}}

    async def get_pull_request_diff(self, pr_number):
        return self.diff

    async def get_file_content(self, path, ref):
        self.file_fetches.append((path, ref))
        if path in self.file_errors:
            raise self.file_errors[path]
        return self.files.get(path, "")

    async def get_authenticated_user(self):
        self.user_calls += 1
        return {"login": "revu-bot"}

    async def list_review_comments(self, pr_number):
        return list(self.comments.values())

    async def get_review_comment(self, comment_id):
        if comment_id in self.get_errors:
            raise self.get_errors[comment_id]
        if comment_id not in self.comments:
            raise http_error(404)
        return self.comments[comment_id]

    async def delete_review_comment(self, comment_id, treat_missing_as_success=True):
        if comment_id in self.failing_deletes:
            raise http_error(500)
        self.deleted.append(comment_id)
        self.comments.pop(comment_id, None)

    async def create_review_comment(self, pr_number, params):
        self._next_id += 1
        self.created.append(params)
        comment = ReviewComment(id=self._next_id, path=params["path"], body=params["body"], line=params["line"])
        self.comments[comment.id] = comment
        return comment

    async def update_review_comment(self, comment_id, body):
        self.updated.append((comment_id, body))
        comment = self.comments[comment_id].model_copy(update={"body": body})
        self.comments[comment_id] = comment
        return comment


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config manager at a temp dir and drop the singleton."""
    monkeypatch.setenv("REVU_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    ConfigManager.reset_instance()
    yield tmp_path / "config"
    ConfigManager.reset_instance()
