"""
GitHub Client - Review comment operations against the GitHub REST API
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional
from urllib.parse import quote

import aiohttp

from models.annotation import ReviewComment
from models.transport import RequestOptions, TransportResponse
from services.transport import RemoteServiceError, ResilientTransport

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"
PAGE_SIZE = 100


class GitHubClient:
    """Pull request review comment client for a single repository"""

    # No built-in retry; attach_retry() wraps send()
    native_retry = False

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str = "",
        api_url: str = DEFAULT_API_URL,
        session: aiohttp.ClientSession | None = None,
        user_agent: str = "revu-annotations",
        timeout_seconds: int = 30,
    ):
        self.owner = owner
        self.repo = repo
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds
        self._session = session
        self.retry_transport: Optional[ResilientTransport] = None

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    # ========== Request Pipeline ==========

    def _build_url(self, url: str) -> str:
        if url.startswith("http://") or url.startswith("https://"):
            return url
        return f"{self.api_url}{url}"

    def _build_headers(self, options: RequestOptions) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self.user_agent,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        headers.update(options.headers)
        return headers

    async def _read_response(self, options: RequestOptions, response: aiohttp.ClientResponse) -> TransportResponse:
        headers = dict(response.headers)
        if response.status >= 400:
            error_text = await response.text()
            raise RemoteServiceError(
                f"{options.operation} failed: {error_text[:300]}",
                status=response.status,
                headers=headers,
                method=options.method.upper(),
                url=options.url,
                body=error_text,
            )

        data: Any = None
        if response.status != 204:
            if "json" in (response.content_type or ""):
                data = await response.json()
            else:
                data = await response.text()
        return TransportResponse(status=response.status, data=data, headers=headers)

    async def send(self, options: RequestOptions) -> TransportResponse:
        """Execute one HTTP request without retry"""
        kwargs: dict[str, Any] = {
            "params": options.params,
            "headers": self._build_headers(options),
        }
        if options.json_body is not None:
            kwargs["json"] = options.json_body

        method = options.method.upper()
        url = self._build_url(options.url)
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        if self._session is not None:
            async with self._session.request(method, url, timeout=timeout, **kwargs) as response:
                return await self._read_response(options, response)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(method, url, **kwargs) as response:
                return await self._read_response(options, response)

    async def request(self, options: RequestOptions) -> TransportResponse:
        """Execute a request through the attached transport, if any"""
        if self.retry_transport is not None:
            return await self.retry_transport.execute(options)
        return await self.send(options)

    # ========== Pull Requests ==========

    async def get_pull_request(self, pr_number: int) -> dict[str, Any]:
        response = await self.request(
            RequestOptions(method="GET", url=f"/repos/{self.owner}/{self.repo}/pulls/{pr_number}")
        )
        return response.data

    async def get_pull_request_diff(self, pr_number: int) -> str:
        """Fetch the unified diff of a pull request"""
        response = await self.request(
            RequestOptions(
                method="GET",
                url=f"/repos/{self.owner}/{self.repo}/pulls/{pr_number}",
                headers={"Accept": DIFF_MEDIA_TYPE},
            )
        )
        return response.data or ""

    async def get_file_content(self, path: str, ref: str) -> str:
        """Fetch a file's text at a given commit; empty for directories and empty files"""
        response = await self.request(
            RequestOptions(
                method="GET",
                url=f"/repos/{self.owner}/{self.repo}/contents/{quote(path)}",
                params={"ref": ref},
            )
        )
        data = response.data
        if not isinstance(data, dict) or not data.get("content"):
            return ""
        return base64.b64decode(data["content"]).decode("utf-8", errors="replace")

    async def get_authenticated_user(self) -> dict[str, Any]:
        response = await self.request(RequestOptions(method="GET", url="/user"))
        return response.data

    # ========== Review Comments ==========

    async def list_review_comments(self, pr_number: int) -> list[ReviewComment]:
        """List every review comment on a pull request, following pagination"""
        comments: list[ReviewComment] = []
        page = 1
        while True:
            response = await self.request(
                RequestOptions(
                    method="GET",
                    url=f"/repos/{self.owner}/{self.repo}/pulls/{pr_number}/comments",
                    params={"per_page": PAGE_SIZE, "page": page},
                )
            )
            batch = response.data or []
            comments.extend(ReviewComment.model_validate(item) for item in batch)
            if len(batch) < PAGE_SIZE:
                break
            page += 1
        return comments

    async def get_review_comment(self, comment_id: int) -> ReviewComment:
        response = await self.request(
            RequestOptions(method="GET", url=f"/repos/{self.owner}/{self.repo}/pulls/comments/{comment_id}")
        )
        return ReviewComment.model_validate(response.data)

    async def delete_review_comment(self, comment_id: int, treat_missing_as_success: bool = True) -> None:
        """Delete a review comment; an already-deleted comment counts as deleted by default"""
        await self.request(
            RequestOptions(
                method="DELETE",
                url=f"/repos/{self.owner}/{self.repo}/pulls/comments/{comment_id}",
                treat_delete_404_as_success=treat_missing_as_success,
            )
        )

    async def create_review_comment(self, pr_number: int, params: dict[str, Any]) -> ReviewComment:
        response = await self.request(
            RequestOptions(
                method="POST",
                url=f"/repos/{self.owner}/{self.repo}/pulls/{pr_number}/comments",
                json_body=params,
            )
        )
        return ReviewComment.model_validate(response.data)

    async def update_review_comment(self, comment_id: int, body: str) -> ReviewComment:
        response = await self.request(
            RequestOptions(
                method="PATCH",
                url=f"/repos/{self.owner}/{self.repo}/pulls/comments/{comment_id}",
                json_body={"body": body},
            )
        )
        return ReviewComment.model_validate(response.data)
