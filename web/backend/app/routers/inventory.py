"""Inventory router -- where each secret and variable is defined or missing."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from envdeck.inventory.reconciler import InventoryEntry
from envdeck.session import Session
from web.backend.app.middleware.auth import get_session
from web.backend.app.models.api import (
    InventoryEntryResponse,
    InventoryResponse,
    LocationResponse,
    ScanFailureResponse,
)

router = APIRouter(prefix="/api/orgs", tags=["inventory"])


def _entry_response(entry: InventoryEntry) -> InventoryEntryResponse:
    return InventoryEntryResponse(
        name=entry.name,
        defined_in=[
            LocationResponse(repository=loc.repository, environment=loc.environment, value=loc.value)
            for loc in entry.defined_in
        ],
        missing_in=[
            LocationResponse(repository=loc.repository, environment=loc.environment) for loc in entry.missing_in
        ],
    )


@router.get(
    "/{org}/inventory",
    response_model=InventoryResponse,
    summary="Reconcile secrets and variables across the organization",
)
async def get_inventory(
    org: str,
    repos: Optional[list[str]] = Query(None, description="Limit to these repositories"),
    envs: Optional[list[str]] = Query(None, description="Limit to these environments"),
    session: Session = Depends(get_session),
):
    """Scan every repository x environment pair (sequentially) and group by name."""
    inv = await session.inventory(org, repositories=repos or None, environments=envs or None)
    return InventoryResponse(
        repositories=list(inv.repositories),
        environments=list(inv.environments),
        secrets=[_entry_response(e) for e in inv.secrets.values()],
        variables=[_entry_response(e) for e in inv.variables.values()],
        failures=[
            ScanFailureResponse(
                repository=f.location.repository,
                environment=f.location.environment,
                resource=f.resource,
                error=f.error,
            )
            for f in inv.failures
        ],
    )
