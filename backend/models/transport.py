"""Remote transport data models"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class RetryPolicyClass(str, Enum):
    """Retry/backoff profile assigned to a call"""

    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    NONE = "none"
    DEFAULT = "default"  # derive from the HTTP method


class RetryPolicy(BaseModel):
    """Resolved retry parameters for one call (delays in seconds)"""

    policy_class: RetryPolicyClass
    retries: int = Field(ge=0)
    min_delay: float = Field(ge=0)
    max_delay: float = Field(ge=0)


class RequestOptions(BaseModel):
    """A single request to the remote service"""

    method: str = "GET"
    url: str  # path relative to the API root, or absolute
    params: dict[str, Any] | None = None
    json_body: dict[str, Any] | None = None
    headers: dict[str, str] = {}
    retry_policy: RetryPolicyClass | None = None
    treat_delete_404_as_success: bool | None = None  # None: on for deletes

    @property
    def operation(self) -> str:
        return f"{self.method.upper()} {self.url}"


class TransportResponse(BaseModel):
    """Response returned by the request pipeline"""

    status: int
    data: Any = None
    headers: dict[str, str] = {}


class TransportContext(BaseModel):
    """Logging context attached to a transport"""

    repository: str | None = None
    pr_number: int | None = None


def _default_policy(policy_class: RetryPolicyClass) -> RetryPolicy:
    if policy_class == RetryPolicyClass.READ:
        return RetryPolicy(policy_class=policy_class, retries=5, min_delay=0.5, max_delay=5.0)
    return RetryPolicy(policy_class=policy_class, retries=2, min_delay=1.0, max_delay=2.0)


class RetrySettings(BaseModel):
    """Retry profiles for each policy class"""

    read: RetryPolicy = Field(default_factory=lambda: _default_policy(RetryPolicyClass.READ))
    write: RetryPolicy = Field(default_factory=lambda: _default_policy(RetryPolicyClass.WRITE))
    delete: RetryPolicy = Field(default_factory=lambda: _default_policy(RetryPolicyClass.DELETE))
    factor: float = 2.0
    randomize: bool = True
