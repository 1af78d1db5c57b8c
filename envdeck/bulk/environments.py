"""Environment ensure-or-create and bulk environment creation."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from envdeck.bulk.models import BulkReport, OperationResult, normalize_selection
from envdeck.errors import OperationValidationError
from envdeck.github.client import GitHubClient

logger = logging.getLogger(__name__)

CreatedCallback = Callable[[str, str], None]
ProgressCallback = Callable[[int, int], None]


async def ensure_environment(
    client: GitHubClient,
    org: str,
    repo: str,
    env: str,
    on_created: Optional[CreatedCallback] = None,
) -> bool:
    """Return True when ``repo``/``env`` exists or was just created.

    Only a 404 on the lookup triggers a create; any other failure means
    the target is not writable and nothing is created.
    """
    found = await client.get_environment(org, repo, env)
    if found.ok:
        return True
    if found.error is None or not found.error.is_not_found:
        logger.warning("Cannot access environment %s/%s: %s", repo, env, found.error.describe())
        return False

    created = await client.create_environment(org, repo, env)
    if not created.ok:
        logger.warning("Failed to create environment %s/%s: %s", repo, env, created.error.describe())
        return False

    logger.info("Created environment %s in %s", env, repo)
    if on_created is not None:
        on_created(repo, env)
    return True


async def create_environments(
    client: GitHubClient,
    org: str,
    repositories: Iterable[str],
    env_name: str,
    on_progress: Optional[ProgressCallback] = None,
) -> BulkReport:
    """Create ``env_name`` in every selected repository, one at a time."""
    env_name = (env_name or "").strip()
    repos = normalize_selection(repositories)
    if not env_name:
        raise OperationValidationError("An environment name is required")
    if not repos:
        raise OperationValidationError("Select at least one repository")

    total = len(repos)
    results: list[OperationResult] = []
    for repo in repos:
        outcome = await client.create_environment(org, repo, env_name)
        if outcome.ok:
            results.append(OperationResult(repo, env_name, True, status=outcome.status))
        else:
            logger.warning("Failed to create environment %s in %s: %s", env_name, repo, outcome.error.describe())
            results.append(
                OperationResult(repo, env_name, False, error=outcome.error.describe(), status=outcome.status)
            )
        if on_progress is not None:
            on_progress(len(results), total)

    return BulkReport(results=tuple(results), total_count=total)
