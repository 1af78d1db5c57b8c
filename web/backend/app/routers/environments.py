"""Environments router -- bulk environment creation and the secrets and
variables of a single repository environment.
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from envdeck.session import Session
from web.backend.app.middleware.auth import get_session
from web.backend.app.models.api import (
    BulkReportResponse,
    CreateEnvironmentsRequest,
    EnvironmentResponse,
    SecretResponse,
    SecretWriteRequest,
    VariableCreateRequest,
    VariableResponse,
    VariableUpdateRequest,
)
from web.backend.app.routers.bulk import report_response

router = APIRouter(prefix="/api/orgs", tags=["environments"])

_LOCATION = "/{org}/repos/{repo}/environments/{env}"


@router.post(
    "/{org}/environments",
    response_model=BulkReportResponse,
    summary="Create an environment in many repositories",
)
async def create_environments(
    org: str,
    body: CreateEnvironmentsRequest,
    session: Session = Depends(get_session),
):
    """Create ``body.name`` in each selected repository, one at a time."""
    repositories = body.repositories
    if body.all_repositories:
        repositories = await session.all_repository_names(org)
    report = await session.create_environments(org, repositories, body.name)
    return report_response(report)


@router.get("/{org}/repos/{repo}/environments", response_model=list[EnvironmentResponse])
async def list_environments(org: str, repo: str, session: Session = Depends(get_session)):
    return [EnvironmentResponse(**asdict(e)) for e in await session.list_environments(org, repo)]


# ---------------------------------------------------------------------------
# Secrets
# ---------------------------------------------------------------------------


@router.get(f"{_LOCATION}/secrets", response_model=list[SecretResponse])
async def list_secrets(org: str, repo: str, env: str, session: Session = Depends(get_session)):
    secrets = await session.manager(org, repo, env).list_secrets()
    return [SecretResponse(**asdict(s)) for s in secrets]


@router.put(f"{_LOCATION}/secrets/{{name}}", summary="Create or update a secret")
async def put_secret(
    org: str,
    repo: str,
    env: str,
    name: str,
    body: SecretWriteRequest,
    session: Session = Depends(get_session),
):
    """The value is sealed with the environment's public key before sending."""
    await session.manager(org, repo, env).set_secret(name, body.value)
    return {"ok": True}


@router.delete(f"{_LOCATION}/secrets/{{name}}")
async def delete_secret(org: str, repo: str, env: str, name: str, session: Session = Depends(get_session)):
    await session.manager(org, repo, env).delete_secret(name)
    return {"ok": True}


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------


@router.get(f"{_LOCATION}/variables", response_model=list[VariableResponse])
async def list_variables(org: str, repo: str, env: str, session: Session = Depends(get_session)):
    variables = await session.manager(org, repo, env).list_variables()
    return [VariableResponse(**asdict(v)) for v in variables]


@router.post(f"{_LOCATION}/variables")
async def create_variable(
    org: str,
    repo: str,
    env: str,
    body: VariableCreateRequest,
    session: Session = Depends(get_session),
):
    await session.manager(org, repo, env).create_variable(body.name, body.value)
    return {"ok": True}


@router.patch(f"{_LOCATION}/variables/{{name}}")
async def update_variable(
    org: str,
    repo: str,
    env: str,
    name: str,
    body: VariableUpdateRequest,
    session: Session = Depends(get_session),
):
    await session.manager(org, repo, env).update_variable(name, body.value)
    return {"ok": True}


@router.delete(f"{_LOCATION}/variables/{{name}}")
async def delete_variable(org: str, repo: str, env: str, name: str, session: Session = Depends(get_session)):
    await session.manager(org, repo, env).delete_variable(name)
    return {"ok": True}
