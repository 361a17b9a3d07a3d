"""Services module - Business logic layer"""

from .config_manager import ConfigManager
from .diff_parser import DiffParser, parse_diff
from .github_client import GitHubClient
from .identity_cache import ReviewerIdentityCache
from .reconciliation import ReconciliationEngine
from .transport import RemoteServiceError, ResilientTransport, attach_retry

__all__ = [
    "ConfigManager",
    "DiffParser",
    "parse_diff",
    "GitHubClient",
    "ReviewerIdentityCache",
    "ReconciliationEngine",
    "RemoteServiceError",
    "ResilientTransport",
    "attach_retry",
]
