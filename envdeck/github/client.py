"""Async client for the GitHub REST API.

``request`` is the single primitive: exactly one round-trip, no retries,
no caching. Non-2xx responses and transport failures come back as an
:class:`ApiResult` carrying an :class:`~envdeck.errors.HttpError` instead
of raising, so callers can branch on the status code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

import httpx

from envdeck.config import DEFAULT_REPOS_PER_PAGE, DEFAULT_TIMEOUT, get_api_url, get_headers
from envdeck.errors import TRANSPORT_ERROR_STATUS, HttpError
from envdeck.github.models import (
    Environment,
    Organization,
    PublicKey,
    Repository,
    Secret,
    Variable,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiResult:
    """Normalized outcome of one API call."""

    ok: bool
    status: int
    data: Any = None
    error: Optional[HttpError] = None

    @classmethod
    def success(cls, status: int, data: Any = None) -> "ApiResult":
        return cls(ok=True, status=status, data=data)

    @classmethod
    def failure(cls, status: int, message: str = "") -> "ApiResult":
        return cls(ok=False, status=status, error=HttpError(status=status, message=message))

    def with_data(self, data: Any) -> "ApiResult":
        return ApiResult(ok=self.ok, status=self.status, data=data, error=self.error)


def _seg(value: str) -> str:
    """Quote one path segment."""
    return quote(str(value), safe="")


def _env_path(org: str, repo: str, env: str) -> str:
    return f"/repos/{_seg(org)}/{_seg(repo)}/environments/{_seg(env)}"


class GitHubClient:
    """Authenticated client bound to one credential.

    Parameters
    ----------
    token : str
        Personal access token, sent as a bearer credential.
    base_url : str | None
        API root. Defaults to :func:`envdeck.config.get_api_url`.
    timeout : float
        Handed to the transport; the client imposes no timeout of its own.
    transport : httpx.AsyncBaseTransport | None
        Custom transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        token: str,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or get_api_url()
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=get_headers(token),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Primitive
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Optional[dict] = None,
    ) -> ApiResult:
        """Issue one request and normalize the outcome."""
        logger.debug("%s %s", method, path)
        try:
            response = await self._http.request(
                method,
                path,
                json=body,
                params=params,
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc.__class__.__name__)
            return ApiResult.failure(TRANSPORT_ERROR_STATUS, "Network error")

        if not response.is_success:
            logger.debug("%s %s -> HTTP %d", method, path, response.status_code)
            return ApiResult.failure(response.status_code)

        data = None
        if response.content:
            try:
                data = response.json()
            except ValueError:
                logger.debug("%s %s returned an undecodable body", method, path)
                data = None
        return ApiResult.success(response.status_code, data)

    # ------------------------------------------------------------------
    # Typed helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_list(result: ApiResult, key: Optional[str], model: type) -> ApiResult:
        if not result.ok:
            return result
        raw = result.data
        if key is not None:
            raw = raw.get(key, []) if isinstance(raw, dict) else []
        if not isinstance(raw, list):
            raw = []
        items = []
        for entry in raw:
            try:
                items.append(model.from_api(entry))
            except ValueError as exc:
                logger.warning("Skipping malformed %s entry: %s", model.__name__, exc)
        return result.with_data(items)

    async def list_orgs(self) -> ApiResult:
        result = await self.request("GET", "/user/orgs")
        return self._parse_list(result, None, Organization)

    async def list_repos(self, org: str, per_page: int = DEFAULT_REPOS_PER_PAGE) -> ApiResult:
        """List one page of repositories, most recently updated first."""
        result = await self.request(
            "GET",
            f"/orgs/{_seg(org)}/repos",
            params={"per_page": per_page, "sort": "updated"},
        )
        return self._parse_list(result, None, Repository)

    async def list_environments(self, org: str, repo: str) -> ApiResult:
        result = await self.request("GET", f"/repos/{_seg(org)}/{_seg(repo)}/environments")
        return self._parse_list(result, "environments", Environment)

    async def get_environment(self, org: str, repo: str, env: str) -> ApiResult:
        return await self.request("GET", _env_path(org, repo, env))

    async def create_environment(self, org: str, repo: str, env: str) -> ApiResult:
        """Create or update an environment (the remote PUT is an upsert)."""
        return await self.request("PUT", _env_path(org, repo, env), body={})

    async def list_secrets(self, org: str, repo: str, env: str) -> ApiResult:
        result = await self.request("GET", f"{_env_path(org, repo, env)}/secrets")
        return self._parse_list(result, "secrets", Secret)

    async def get_secret_public_key(self, org: str, repo: str, env: str) -> ApiResult:
        result = await self.request("GET", f"{_env_path(org, repo, env)}/secrets/public-key")
        if not result.ok:
            return result
        try:
            return result.with_data(PublicKey.from_api(result.data))
        except ValueError as exc:
            logger.warning("Malformed public key for %s/%s: %s", repo, env, exc)
            return ApiResult.failure(result.status, "Malformed public key")

    async def put_secret(
        self, org: str, repo: str, env: str, name: str, encrypted_value: str, key_id: str
    ) -> ApiResult:
        return await self.request(
            "PUT",
            f"{_env_path(org, repo, env)}/secrets/{_seg(name)}",
            body={"encrypted_value": encrypted_value, "key_id": key_id},
        )

    async def delete_secret(self, org: str, repo: str, env: str, name: str) -> ApiResult:
        return await self.request("DELETE", f"{_env_path(org, repo, env)}/secrets/{_seg(name)}")

    async def list_variables(self, org: str, repo: str, env: str) -> ApiResult:
        result = await self.request("GET", f"{_env_path(org, repo, env)}/variables")
        return self._parse_list(result, "variables", Variable)

    async def create_variable(self, org: str, repo: str, env: str, name: str, value: str) -> ApiResult:
        return await self.request(
            "POST",
            f"{_env_path(org, repo, env)}/variables",
            body={"name": name, "value": value},
        )

    async def update_variable(self, org: str, repo: str, env: str, name: str, value: str) -> ApiResult:
        return await self.request(
            "PATCH",
            f"{_env_path(org, repo, env)}/variables/{_seg(name)}",
            body={"value": value},
        )

    async def delete_variable(self, org: str, repo: str, env: str, name: str) -> ApiResult:
        return await self.request("DELETE", f"{_env_path(org, repo, env)}/variables/{_seg(name)}")
