"""Console configuration.

Everything is read from the process environment at call time so a
self-hosted installation can be targeted without code changes:

- ``GITHUB_ENTERPRISE_URL`` -- root of a GitHub Enterprise Server install
- ``ENVDECK_TIMEOUT`` -- transport timeout in seconds
- ``ENVDECK_REPOS_PER_PAGE`` -- page size used when listing repositories
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

PUBLIC_API_URL = "https://api.github.com"
ACCEPT_HEADER = "application/vnd.github.v3+json"

COMMON_ENVIRONMENTS = ["production", "staging", "development", "preview"]

DEFAULT_TIMEOUT = 30.0
DEFAULT_REPOS_PER_PAGE = 100


def get_api_url() -> str:
    """Return the REST API root, honouring ``GITHUB_ENTERPRISE_URL``."""
    enterprise_url = os.environ.get("GITHUB_ENTERPRISE_URL", "").strip()
    if enterprise_url:
        return f"{enterprise_url.rstrip('/')}/api/v3"
    return PUBLIC_API_URL


def get_headers(token: str) -> dict[str, str]:
    """Headers attached to every outgoing request."""
    return {
        "Authorization": f"Bearer {token}",
        "Accept": ACCEPT_HEADER,
    }


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


@dataclass
class Settings:
    """Resolved console settings."""

    api_url: str = field(default_factory=get_api_url)
    timeout: float = DEFAULT_TIMEOUT
    repos_per_page: int = DEFAULT_REPOS_PER_PAGE
    environments: list[str] = field(default_factory=lambda: list(COMMON_ENVIRONMENTS))

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_url=get_api_url(),
            timeout=_float_env("ENVDECK_TIMEOUT", DEFAULT_TIMEOUT),
            repos_per_page=_int_env("ENVDECK_REPOS_PER_PAGE", DEFAULT_REPOS_PER_PAGE),
        )
