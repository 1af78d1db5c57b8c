"""Bulk router -- one write applied across repositories x environments."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from envdeck.bulk.models import BulkReport, BulkRequest
from envdeck.config import COMMON_ENVIRONMENTS
from envdeck.session import Session
from web.backend.app.middleware.auth import get_session
from web.backend.app.models.api import (
    BulkOperationRequest,
    BulkReportResponse,
    OperationResultResponse,
)

router = APIRouter(prefix="/api/orgs", tags=["bulk"])


def report_response(report: BulkReport) -> BulkReportResponse:
    """Convert a domain BulkReport to the Pydantic response model."""
    return BulkReportResponse(
        results=[OperationResultResponse(**asdict(r)) for r in report.results],
        success_count=report.success_count,
        failure_count=report.failure_count,
        total_count=report.total_count,
        progress=report.progress,
    )


@router.post(
    "/{org}/bulk",
    response_model=BulkReportResponse,
    summary="Run a bulk secret/variable operation",
)
async def run_bulk(
    org: str,
    body: BulkOperationRequest,
    session: Session = Depends(get_session),
):
    """Apply one write to every selected repository/environment pair.

    Missing environments are created first for set operations. Per-target
    failures are reported in the body; the response is 200 even when every
    target failed. Malformed requests are rejected with 400 before any
    remote call.
    """
    repositories = body.repositories
    if body.all_repositories:
        repositories = await session.all_repository_names(org)
    environments = list(COMMON_ENVIRONMENTS) if body.all_environments else body.environments

    request = BulkRequest(
        org=org,
        repositories=tuple(repositories),
        environments=tuple(environments),
        kind=body.kind,
        name=body.name,
        value=body.value,
    )
    return report_response(await session.run_bulk(request))
