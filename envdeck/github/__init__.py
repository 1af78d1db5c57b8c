"""GitHub REST API access -- typed models and the async client."""

from envdeck.github.client import ApiResult, GitHubClient
from envdeck.github.models import (
    Environment,
    Organization,
    PublicKey,
    Repository,
    Secret,
    Variable,
)

__all__ = [
    "ApiResult",
    "GitHubClient",
    "Environment",
    "Organization",
    "PublicKey",
    "Repository",
    "Secret",
    "Variable",
]
