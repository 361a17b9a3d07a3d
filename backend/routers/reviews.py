"""Review annotation API endpoints"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

import aiohttp
from fastapi import APIRouter, Depends, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

from models.annotation import CommentExistence
from models.reviews import CleanupEvent, ReconcileRequest, ReconcileResponse
from models.transport import RetrySettings, TransportContext
from services.config_manager import ConfigManager, retry_settings_from_config
from services.github_client import DEFAULT_API_URL, GitHubClient
from services.identity_cache import ReviewerIdentityCache
from services.reconciliation import ReconciliationEngine, format_summary
from services.transport import RemoteServiceError, attach_retry

logger = logging.getLogger(__name__)

router = APIRouter()

ClientFactory = Callable[[str, str], GitHubClient]


# ========== Dependencies ==========


def get_client_factory(request: Request) -> ClientFactory:
    """Build GitHub clients sharing the application's HTTP session"""
    config_manager = ConfigManager.get_instance()
    github = config_manager.get_config().get("github", {})
    session = getattr(request.app.state, "http_session", None)
    token = config_manager.get_github_token()

    def factory(owner: str, repo: str) -> GitHubClient:
        return GitHubClient(
            owner,
            repo,
            token=token,
            api_url=github.get("apiUrl", DEFAULT_API_URL),
            session=session,
            user_agent=github.get("userAgent", "revu-annotations"),
            timeout_seconds=github.get("timeoutSeconds", 30),
        )

    return factory


def get_retry_settings() -> RetrySettings:
    return retry_settings_from_config(ConfigManager.get_instance().get_config())


def get_identity_cache(request: Request) -> ReviewerIdentityCache:
    return request.app.state.identity_cache


def connect(
    factory: ClientFactory,
    settings: RetrySettings,
    owner: str,
    repo: str,
    pr_number: int | None = None,
) -> GitHubClient:
    """Create a client and route its requests through the retry pipeline"""
    client = factory(owner, repo)
    attach_retry(client, TransportContext(repository=f"{owner}/{repo}", pr_number=pr_number), settings)
    return client


def upstream_error(e: Exception) -> HTTPException:
    if isinstance(e, RemoteServiceError):
        return HTTPException(status_code=502, detail=f"GitHub API error ({e.status}): {e}")
    return HTTPException(status_code=502, detail=f"GitHub API unreachable: {str(e) or type(e).__name__}")


# ========== Endpoints ==========


@router.post("/{owner}/{repo}/pulls/{pr_number}/reconcile", response_model=ReconcileResponse)
async def reconcile_pull_request(
    owner: str,
    repo: str,
    pr_number: int,
    request: ReconcileRequest,
    factory: ClientFactory = Depends(get_client_factory),
    settings: RetrySettings = Depends(get_retry_settings),
    identity_cache: ReviewerIdentityCache = Depends(get_identity_cache),
) -> ReconcileResponse:
    """Delete obsolete line comments and post the given ones"""
    client = connect(factory, settings, owner, repo, pr_number)
    engine = ReconciliationEngine(client)

    try:
        stats = await engine.reconcile(pr_number, request.comments, request.commit_sha)
    except (RemoteServiceError, aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error("[Reviews] Reconciliation failed for %s#%s: %s", client.repository, pr_number, e)
        raise upstream_error(e)

    try:
        reviewer = await identity_cache.get(client)
    except (RemoteServiceError, aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.warning("[Reviews] Could not resolve reviewer login: %s", e)
        reviewer = None

    return ReconcileResponse(
        pr_number=pr_number,
        reviewer=reviewer,
        stats=stats,
        message=format_summary(pr_number, stats),
    )


@router.post("/{owner}/{repo}/pulls/{pr_number}/cleanup/stream")
async def cleanup_stream(
    owner: str,
    repo: str,
    pr_number: int,
    factory: ClientFactory = Depends(get_client_factory),
    settings: RetrySettings = Depends(get_retry_settings),
):
    """Delete obsolete line comments, streaming one event per candidate (SSE)"""
    client = connect(factory, settings, owner, repo, pr_number)
    engine = ReconciliationEngine(client)

    async def event_generator():
        deleted_count = 0
        try:
            diff_model = await engine.build_diff_model(pr_number)
            annotations = await engine.fetch_existing(pr_number)

            async for annotation, error in engine.iter_cleanup(annotations, diff_model):
                if error is None:
                    deleted_count += 1
                    event = CleanupEvent(type="deleted", comment_id=annotation.remote_id, path=annotation.path)
                else:
                    event = CleanupEvent(
                        type="failed", comment_id=annotation.remote_id, path=annotation.path, error=str(error)
                    )
                yield {"event": "message", "data": event.model_dump_json()}

            event = CleanupEvent(type="done", deleted_count=deleted_count, done=True)
            yield {"event": "message", "data": event.model_dump_json()}

        except Exception as e:
            event = CleanupEvent(type="error", error=str(e))
            yield {"event": "message", "data": event.model_dump_json()}

    return EventSourceResponse(event_generator())


@router.get("/{owner}/{repo}/comments/{comment_id}/exists", response_model=CommentExistence)
async def comment_exists(
    owner: str,
    repo: str,
    comment_id: int,
    factory: ClientFactory = Depends(get_client_factory),
    settings: RetrySettings = Depends(get_retry_settings),
) -> CommentExistence:
    """Check whether a review comment still exists"""
    client = connect(factory, settings, owner, repo)
    return await ReconciliationEngine(client).check_existence(comment_id)
