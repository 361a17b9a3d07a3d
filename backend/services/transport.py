"""
Resilient Transport - Retry/backoff pipeline for remote service requests
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional

from models.transport import (
    RequestOptions,
    RetryPolicy,
    RetryPolicyClass,
    RetrySettings,
    TransportContext,
    TransportResponse,
)

logger = logging.getLogger(__name__)

READ_METHODS = ("GET", "HEAD", "OPTIONS")
IDEMPOTENT_DELETE_STATUSES = (404, 410)

RequestSender = Callable[[RequestOptions], Awaitable[TransportResponse]]


class RemoteServiceError(Exception):
    """Raised when the remote service answers with an error status"""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        headers: dict[str, str] | None = None,
        method: str | None = None,
        url: str | None = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.status = status
        self.headers = headers or {}
        self.method = method
        self.url = url
        self.body = body

    def __str__(self) -> str:
        message = super().__str__()
        return f"[{self.status}] {message}" if self.status is not None else message


# ========== Failure Classification ==========


def get_status(error: BaseException) -> Optional[int]:
    """Extract an HTTP status from an error, if it carries one"""
    raw = getattr(error, "status", None)
    if raw is None:
        response = getattr(error, "response", None)
        raw = getattr(response, "status", None)
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def get_headers(error: BaseException) -> dict[str, str]:
    """Extract response headers from an error, lower-cased"""
    headers = getattr(error, "headers", None)
    if headers is None:
        headers = getattr(getattr(error, "response", None), "headers", None)
    if not headers:
        return {}
    return {str(k).lower(): str(v) for k, v in headers.items()}


def is_rate_limited(error: BaseException) -> bool:
    headers = get_headers(error)
    return bool(headers.get("retry-after")) or headers.get("x-ratelimit-remaining") == "0"


def should_abort(error: BaseException) -> bool:
    """Decide whether a failed attempt is permanent (True) or retryable (False)"""
    status = get_status(error)
    if status is None:
        return False  # network failure or timeout
    if status == 429:
        return False
    if status == 403:
        return not is_rate_limited(error)
    if status >= 500:
        return False
    return 400 <= status < 500


# ========== Policy Resolution ==========


def resolve_policy(
    method: str,
    override: RetryPolicyClass | str | None = None,
    settings: RetrySettings | None = None,
) -> RetryPolicy:
    """Pick the retry profile for a call from its method and an optional override"""
    settings = settings or RetrySettings()
    if override is not None:
        override = RetryPolicyClass(override)

    if override == RetryPolicyClass.NONE:
        return RetryPolicy(policy_class=RetryPolicyClass.NONE, retries=0, min_delay=0, max_delay=0)

    if override in (RetryPolicyClass.READ, RetryPolicyClass.WRITE, RetryPolicyClass.DELETE):
        effective = override
    else:
        method = (method or "GET").upper()
        if method in READ_METHODS:
            effective = RetryPolicyClass.READ
        elif method == "DELETE":
            effective = RetryPolicyClass.DELETE
        else:
            effective = RetryPolicyClass.WRITE

    profile = getattr(settings, effective.value)
    return profile.model_copy(update={"policy_class": effective})


def compute_delay(policy: RetryPolicy, attempt: int, factor: float = 2.0, randomize: bool = False) -> float:
    """Exponential backoff for the given 1-based attempt, capped at max_delay"""
    delay = policy.min_delay * (factor ** max(attempt - 1, 0))
    if randomize:
        delay *= random.uniform(1, 2)
    return min(delay, policy.max_delay)


# ========== Transport ==========


class ResilientTransport:
    """Wrap a request sender with per-policy retry and delete idempotency"""

    def __init__(
        self,
        send: RequestSender,
        settings: RetrySettings | None = None,
        context: TransportContext | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._send = send
        self.settings = settings or RetrySettings()
        self.context = context or TransportContext()
        self._sleep = sleep

    def update_context(self, context: TransportContext | None):
        """Replace the logging context without re-wrapping"""
        if context is not None:
            self.context = context

    async def execute(self, options: RequestOptions) -> TransportResponse:
        """Send a request through the retry pipeline"""
        policy = resolve_policy(options.method, options.retry_policy, self.settings)

        if policy.policy_class == RetryPolicyClass.NONE:
            return await self._send(options)

        try:
            return await self._send_with_retry(options, policy)
        except Exception as e:
            if policy.policy_class == RetryPolicyClass.DELETE and self._treat_missing_as_success(options):
                status = get_status(e)
                if status is None and e.__cause__ is not None:
                    status = get_status(e.__cause__)
                if status in IDEMPOTENT_DELETE_STATUSES:
                    logger.info(
                        "[Transport] %s returned %s; resource already gone, treating as deleted",
                        options.operation,
                        status,
                    )
                    return TransportResponse(status=204, data=None)
            raise

    def _treat_missing_as_success(self, options: RequestOptions) -> bool:
        if options.treat_delete_404_as_success is None:
            return True
        return options.treat_delete_404_as_success

    async def _send_with_retry(self, options: RequestOptions, policy: RetryPolicy) -> TransportResponse:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._send(options)
            except Exception as e:
                if should_abort(e):
                    raise
                retries_left = policy.retries - attempt + 1
                if retries_left <= 0:
                    raise
                delay = compute_delay(policy, attempt, self.settings.factor, self.settings.randomize)
                logger.warning(
                    "[Transport] %s failed (attempt %d, retries left %d): %s "
                    "(repository=%s, pr_number=%s). Retrying in %.2fs...",
                    options.operation,
                    attempt,
                    retries_left,
                    e,
                    self.context.repository,
                    self.context.pr_number,
                    delay,
                )
                await self._sleep(delay)


def attach_retry(
    client,
    context: TransportContext | None = None,
    settings: RetrySettings | None = None,
) -> Optional[ResilientTransport]:
    """Attach a ResilientTransport to a client's request primitive at most once.

    The client exposes its raw sender as ``send`` and records the attached
    transport in ``retry_transport``. Clients with ``native_retry`` set are
    left alone. Re-attaching only refreshes the logging context.
    """
    if getattr(client, "native_retry", False):
        logger.info("[Transport] Client %s has native retry; not attaching", type(client).__name__)
        return None

    existing = getattr(client, "retry_transport", None)
    if existing is not None:
        existing.update_context(context)
        return existing

    transport = ResilientTransport(client.send, settings=settings, context=context)
    client.retry_transport = transport
    return transport
