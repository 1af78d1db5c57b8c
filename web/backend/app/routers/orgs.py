"""Organizations router -- organizations, repositories and the environment grid."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from envdeck.session import Session
from web.backend.app.middleware.auth import get_session
from web.backend.app.models.api import (
    GridResponse,
    OrganizationResponse,
    RepositoryResponse,
)

router = APIRouter(prefix="/api/orgs", tags=["organizations"])


@router.get(
    "",
    response_model=list[OrganizationResponse],
    summary="List organizations visible to the token",
)
async def list_orgs(session: Session = Depends(get_session)):
    """List every organization the caller's credential can see."""
    return [OrganizationResponse(**asdict(o)) for o in await session.list_orgs()]


@router.get(
    "/{org}/repos",
    response_model=list[RepositoryResponse],
    summary="List organization repositories",
)
async def list_repos(org: str, session: Session = Depends(get_session)):
    """List one page of repositories, most recently updated first."""
    return [RepositoryResponse(**asdict(r)) for r in await session.list_repos(org)]


@router.get(
    "/{org}/grid",
    response_model=GridResponse,
    summary="Environments per repository",
)
async def environment_grid(org: str, session: Session = Depends(get_session)):
    """Return the repository x environment grid.

    ``cells`` maps each repository to the environments it has. A repository
    whose environments cannot be listed shows up with an empty list.
    """
    grid = await session.environment_grid(org)
    return GridResponse(
        repositories=[r.name for r in grid.repositories],
        environments=grid.columns(),
        cells={repo: [e.name for e in envs] for repo, envs in grid.environments.items()},
    )
