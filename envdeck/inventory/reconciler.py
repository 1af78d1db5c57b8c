"""Inventory reconciler.

Scans every repository x environment pair for secrets and variables,
groups the sightings by name and works out, for each name, where it is
defined and where it is missing. ``defined_in`` and ``missing_in`` always
partition the scanned grid exactly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Union

from envdeck.bulk.models import normalize_selection
from envdeck.config import COMMON_ENVIRONMENTS
from envdeck.errors import HttpError
from envdeck.github.client import GitHubClient
from envdeck.github.models import Repository

logger = logging.getLogger(__name__)

RepoLike = Union[str, Repository]


@dataclass(frozen=True)
class Location:
    """A (repository, environment) pair, with the value for variables."""

    repository: str
    environment: str
    value: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.repository}:{self.environment}"


@dataclass(frozen=True)
class InventoryEntry:
    """Where one named secret or variable is defined and where it is not."""

    name: str
    defined_in: tuple[Location, ...] = ()
    missing_in: tuple[Location, ...] = ()

    @property
    def coverage(self) -> float:
        """Share of the grid that defines this name (0-1)."""
        total = len(self.defined_in) + len(self.missing_in)
        return len(self.defined_in) / total if total else 0.0

    @property
    def values(self) -> set[str]:
        """Distinct variable values across locations."""
        return {loc.value for loc in self.defined_in if loc.value is not None}


@dataclass(frozen=True)
class ScanFailure:
    """A listing that could not be read; treated as 'nothing here'."""

    location: Location
    resource: str
    error: str


@dataclass(frozen=True)
class Inventory:
    """Result of one reconciliation scan."""

    secrets: dict[str, InventoryEntry] = field(default_factory=dict)
    variables: dict[str, InventoryEntry] = field(default_factory=dict)
    repositories: tuple[str, ...] = ()
    environments: tuple[str, ...] = ()
    failures: tuple[ScanFailure, ...] = ()

    @property
    def grid_size(self) -> int:
        return len(self.repositories) * len(self.environments)


def _repo_name(repo: RepoLike) -> str:
    return repo.name if isinstance(repo, Repository) else str(repo)


def _record_failure(failures: list[ScanFailure], pair: Location, resource: str, error: HttpError) -> None:
    if error.is_not_found:
        logger.debug("No %s listing for %s (environment missing)", resource, pair.key)
        return
    logger.warning("Could not list %s for %s: %s", resource, pair.key, error.describe())
    failures.append(ScanFailure(pair, resource, error.describe()))


def grid(repositories: Iterable[str], environments: Iterable[str]) -> list[Location]:
    return [Location(r, e) for r in repositories for e in environments]


def reconcile(
    sightings: Iterable[tuple[str, Location]],
    full_grid: list[Location],
) -> dict[str, InventoryEntry]:
    """Group ``(name, location)`` sightings into name-sorted entries."""
    defined: dict[str, dict[str, Location]] = {}
    for name, location in sightings:
        defined.setdefault(name, {}).setdefault(location.key, location)

    entries: dict[str, InventoryEntry] = {}
    for name in sorted(defined):
        present = defined[name]
        missing = tuple(
            Location(loc.repository, loc.environment) for loc in full_grid if loc.key not in present
        )
        entries[name] = InventoryEntry(name=name, defined_in=tuple(present.values()), missing_in=missing)
    return entries


async def scan(
    client: GitHubClient,
    org: str,
    repositories: Iterable[RepoLike],
    environments: Iterable[str] = COMMON_ENVIRONMENTS,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> Inventory:
    """Scan the full grid, one pair at a time.

    A failed secret or variable listing never stops the scan; the pair is
    counted as having no entries. A 404 (environment absent) is expected
    and silent, other failures are kept in ``failures``.
    """
    repos = normalize_selection(_repo_name(r) for r in repositories)
    envs = normalize_selection(environments)
    full_grid = grid(repos, envs)

    secret_sightings: list[tuple[str, Location]] = []
    variable_sightings: list[tuple[str, Location]] = []
    failures: list[ScanFailure] = []

    for done, pair in enumerate(full_grid, start=1):
        repo, env = pair.repository, pair.environment

        secrets = await client.list_secrets(org, repo, env)
        if secrets.ok:
            secret_sightings.extend((s.name, Location(repo, env)) for s in secrets.data)
        else:
            _record_failure(failures, pair, "secrets", secrets.error)

        variables = await client.list_variables(org, repo, env)
        if variables.ok:
            variable_sightings.extend((v.name, Location(repo, env, v.value)) for v in variables.data)
        else:
            _record_failure(failures, pair, "variables", variables.error)

        if on_progress is not None:
            on_progress(done, len(full_grid))

    return Inventory(
        secrets=reconcile(secret_sightings, full_grid),
        variables=reconcile(variable_sightings, full_grid),
        repositories=repos,
        environments=envs,
        failures=tuple(failures),
    )
