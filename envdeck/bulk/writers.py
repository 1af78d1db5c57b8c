"""Per-target writers used by the bulk engine.

A writer is an async callable ``(repo, env) -> ApiResult`` closed over
the client, organization and the name/value being written.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from nacl.exceptions import CryptoError

from envdeck.bulk.models import BulkRequest, OperationKind
from envdeck.github.client import ApiResult, GitHubClient
from envdeck.sealing import seal_secret

logger = logging.getLogger(__name__)

Writer = Callable[[str, str], Awaitable[ApiResult]]

# Statuses the variables API uses when the name is already taken.
VARIABLE_EXISTS_STATUSES = (409, 422)


def secret_setter(client: GitHubClient, org: str, name: str, value: str) -> Writer:
    """Create or update a secret. The remote PUT is an upsert."""

    async def write(repo: str, env: str) -> ApiResult:
        key = await client.get_secret_public_key(org, repo, env)
        if not key.ok:
            return key
        try:
            sealed = seal_secret(value, key.data)
        except (CryptoError, TypeError, ValueError) as exc:
            logger.warning("Cannot seal secret for %s/%s: %s", repo, env, exc.__class__.__name__)
            return ApiResult.failure(key.status, "Invalid public key")
        return await client.put_secret(org, repo, env, name, sealed, key.data.key_id)

    return write


def variable_setter(client: GitHubClient, org: str, name: str, value: str) -> Writer:
    """Create a variable, falling back to an update when it already exists."""

    async def write(repo: str, env: str) -> ApiResult:
        created = await client.create_variable(org, repo, env, name, value)
        if created.ok or created.status not in VARIABLE_EXISTS_STATUSES:
            return created
        logger.debug("Variable %s exists in %s/%s, updating", name, repo, env)
        updated = await client.update_variable(org, repo, env, name, value)
        if created.status == 422 and updated.status == 404:
            # The 422 was a validation error, not an existing name.
            return created
        return updated

    return write


def secret_deleter(client: GitHubClient, org: str, name: str) -> Writer:
    """Delete a secret; a missing secret or environment is a 404 failure."""

    async def write(repo: str, env: str) -> ApiResult:
        return await client.delete_secret(org, repo, env, name)

    return write


def variable_deleter(client: GitHubClient, org: str, name: str) -> Writer:
    """Delete a variable; a missing variable or environment is a 404 failure."""

    async def write(repo: str, env: str) -> ApiResult:
        return await client.delete_variable(org, repo, env, name)

    return write


def writer_for(client: GitHubClient, request: BulkRequest) -> Writer:
    """Pick the writer matching ``request.kind``."""
    if request.kind is OperationKind.set_secret:
        return secret_setter(client, request.org, request.name, request.value)
    if request.kind is OperationKind.set_variable:
        return variable_setter(client, request.org, request.name, request.value)
    if request.kind is OperationKind.delete_secret:
        return secret_deleter(client, request.org, request.name)
    return variable_deleter(client, request.org, request.name)
