"""Cross-product operation engine.

Targets are processed strictly one at a time in repository-major order.
A failing target never stops the batch; every target attempted gets a
result, and the caller always receives the full report.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable, Optional

from envdeck.bulk.environments import CreatedCallback, ProgressCallback, ensure_environment
from envdeck.bulk.models import (
    ENVIRONMENT_UNAVAILABLE,
    UNKNOWN_ERROR,
    BulkReport,
    BulkRequest,
    OperationResult,
    OperationTarget,
    cross_product,
)
from envdeck.bulk.writers import Writer, writer_for
from envdeck.github.client import GitHubClient

logger = logging.getLogger(__name__)

EnsureFn = Callable[[str, str], Awaitable[bool]]


async def _apply(target: OperationTarget, writer: Writer, ensure: Optional[EnsureFn]) -> OperationResult:
    repo, env = target.repository, target.environment
    if ensure is not None and not await ensure(repo, env):
        return OperationResult(repo, env, False, error=ENVIRONMENT_UNAVAILABLE)

    outcome = await writer(repo, env)
    if outcome.ok:
        return OperationResult(repo, env, True, status=outcome.status)
    detail = outcome.error.describe() if outcome.error else f"HTTP {outcome.status}"
    logger.warning("Write to %s failed: %s", target.key, detail)
    return OperationResult(repo, env, False, error=detail, status=outcome.status)


async def run_bulk(
    repositories: Iterable[str],
    environments: Iterable[str],
    writer: Writer,
    ensure: Optional[EnsureFn] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> BulkReport:
    """Apply ``writer`` to every (repository, environment) pair.

    When ``ensure`` is given it runs once per target before the write; a
    False result records the target as failed and skips the write. An
    unexpected exception on one target is recorded as "Unknown error".
    ``on_progress`` receives ``(completed, total)`` after every target.
    """
    targets = cross_product(repositories, environments)
    total = len(targets)
    results: list[OperationResult] = []

    for target in targets:
        try:
            results.append(await _apply(target, writer, ensure))
        except Exception:
            logger.exception("Unexpected error while writing to %s", target.key)
            results.append(OperationResult(target.repository, target.environment, False, error=UNKNOWN_ERROR))

        if on_progress is not None:
            on_progress(len(results), total)

    report = BulkReport(results=tuple(results), total_count=total)
    logger.info("Bulk operation finished: %s", report.summary())
    return report


async def execute(
    client: GitHubClient,
    request: BulkRequest,
    on_progress: Optional[ProgressCallback] = None,
    on_environment_created: Optional[CreatedCallback] = None,
) -> BulkReport:
    """Validate ``request`` and run it against the remote API."""
    request.validate()

    ensure: Optional[EnsureFn] = None
    if request.kind.ensures_environment:

        async def _ensure(repo: str, env: str) -> bool:
            return await ensure_environment(client, request.org, repo, env, on_created=on_environment_created)

        ensure = _ensure

    return await run_bulk(
        request.repositories,
        request.environments,
        writer_for(client, request),
        ensure=ensure,
        on_progress=on_progress,
    )
