"""Session facade used by the CLI and the REST surface.

A :class:`Session` owns one credential for the lifetime of a session. It
is never written anywhere and is dropped by :meth:`Session.sign_out`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

import httpx

from envdeck.bulk.engine import execute
from envdeck.bulk.environments import CreatedCallback, ProgressCallback, create_environments
from envdeck.bulk.models import BulkReport, BulkRequest, check_name
from envdeck.bulk.writers import secret_setter
from envdeck.config import Settings
from envdeck.errors import NotSignedInError, OperationValidationError, RemoteError
from envdeck.github.client import ApiResult, GitHubClient
from envdeck.github.models import Environment, Organization, Repository, Secret, Variable
from envdeck.inventory.reconciler import Inventory, scan

logger = logging.getLogger(__name__)


def _unwrap(result: ApiResult, action: str):
    if not result.ok:
        raise RemoteError(action, result.error)
    return result.data


def _require_text(**fields: str) -> None:
    for label, text in fields.items():
        if not (text or "").strip():
            raise OperationValidationError(f"A {label} is required")


@dataclass
class EnvironmentGrid:
    """Environments per repository for one organization."""

    repositories: list[Repository] = field(default_factory=list)
    environments: dict[str, list[Environment]] = field(default_factory=dict)

    def columns(self) -> list[str]:
        """Sorted union of environment names across repositories."""
        names = {env.name for envs in self.environments.values() for env in envs}
        return sorted(names)

    def has_environment(self, repo: str, env: str) -> bool:
        return any(e.name == env for e in self.environments.get(repo, []))


class EnvironmentManager:
    """Secrets and variables of a single (repository, environment)."""

    def __init__(self, client: GitHubClient, org: str, repo: str, env: str) -> None:
        self._client = client
        self.org = org
        self.repo = repo
        self.env = env

    @property
    def location(self) -> str:
        return f"{self.repo}/{self.env}"

    async def list_secrets(self) -> list[Secret]:
        result = await self._client.list_secrets(self.org, self.repo, self.env)
        return _unwrap(result, f"List secrets in {self.location}")

    async def list_variables(self) -> list[Variable]:
        result = await self._client.list_variables(self.org, self.repo, self.env)
        return _unwrap(result, f"List variables in {self.location}")

    async def set_secret(self, name: str, value: str) -> None:
        """Create or update a secret (sealed before it leaves the process)."""
        check_name(name, "secret")
        _require_text(value=value)
        result = await secret_setter(self._client, self.org, name, value)(self.repo, self.env)
        _unwrap(result, f"Set secret {name} in {self.location}")

    async def create_variable(self, name: str, value: str) -> None:
        check_name(name, "variable")
        _require_text(value=value)
        result = await self._client.create_variable(self.org, self.repo, self.env, name, value)
        _unwrap(result, f"Create variable {name} in {self.location}")

    async def update_variable(self, name: str, value: str) -> None:
        check_name(name, "variable")
        _require_text(value=value)
        result = await self._client.update_variable(self.org, self.repo, self.env, name, value)
        _unwrap(result, f"Update variable {name} in {self.location}")

    async def delete_secret(self, name: str) -> None:
        check_name(name, "secret")
        result = await self._client.delete_secret(self.org, self.repo, self.env, name)
        _unwrap(result, f"Delete secret {name} in {self.location}")

    async def delete_variable(self, name: str) -> None:
        check_name(name, "variable")
        result = await self._client.delete_variable(self.org, self.repo, self.env, name)
        _unwrap(result, f"Delete variable {name} in {self.location}")


class Session:
    """One signed-in session against the remote API."""

    def __init__(
        self,
        token: str,
        settings: Optional[Settings] = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self._client: Optional[GitHubClient] = GitHubClient(
            token,
            base_url=self.settings.api_url,
            timeout=self.settings.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.sign_out()

    @property
    def signed_in(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> GitHubClient:
        if self._client is None:
            raise NotSignedInError("Not signed in")
        return self._client

    async def sign_out(self) -> None:
        """Close the transport and forget the credential."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Browsing
    # ------------------------------------------------------------------

    async def list_orgs(self) -> list[Organization]:
        return _unwrap(await self.client.list_orgs(), "List organizations")

    async def list_repos(self, org: str) -> list[Repository]:
        result = await self.client.list_repos(org, per_page=self.settings.repos_per_page)
        return _unwrap(result, f"List repositories of {org}")

    async def list_environments(self, org: str, repo: str) -> list[Environment]:
        result = await self.client.list_environments(org, repo)
        return _unwrap(result, f"List environments of {repo}")

    async def environment_grid(self, org: str, repos: Optional[list[Repository]] = None) -> EnvironmentGrid:
        """List environments for every repository; failures count as none."""
        if repos is None:
            repos = await self.list_repos(org)
        grid = EnvironmentGrid(repositories=list(repos))
        for repo in repos:
            result = await self.client.list_environments(org, repo.name)
            if not result.ok:
                logger.warning("Could not list environments for %s: %s", repo.name, result.error.describe())
            grid.environments[repo.name] = result.data if result.ok else []
        return grid

    def manager(self, org: str, repo: str, env: str) -> EnvironmentManager:
        return EnvironmentManager(self.client, org, repo, env)

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    async def create_environments(
        self,
        org: str,
        repositories: Iterable[str],
        env_name: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BulkReport:
        return await create_environments(self.client, org, repositories, env_name, on_progress=on_progress)

    async def run_bulk(
        self,
        request: BulkRequest,
        on_progress: Optional[ProgressCallback] = None,
        on_environment_created: Optional[CreatedCallback] = None,
    ) -> BulkReport:
        return await execute(
            self.client,
            request,
            on_progress=on_progress,
            on_environment_created=on_environment_created,
        )

    async def all_repository_names(self, org: str) -> list[str]:
        return [r.name for r in await self.list_repos(org)]

    async def inventory(
        self,
        org: str,
        repositories: Optional[Iterable[str]] = None,
        environments: Optional[Iterable[str]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Inventory:
        """Reconcile secrets and variables across the org's grid."""
        if repositories is None:
            repositories = await self.all_repository_names(org)
        if environments is None:
            environments = self.settings.environments
        return await scan(self.client, org, repositories, environments, on_progress=on_progress)
