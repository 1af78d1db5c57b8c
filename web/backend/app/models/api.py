"""Pydantic models for API request/response serialization.

These models mirror the envdeck dataclasses and provide proper JSON
serialization for the FastAPI endpoints.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from envdeck.bulk.models import OperationKind


# ---------------------------------------------------------------------------
# Browsing models
# ---------------------------------------------------------------------------


class OrganizationResponse(BaseModel):
    """Mirrors envdeck.github.models.Organization."""

    login: str
    id: int = 0
    description: str = ""


class RepositoryResponse(BaseModel):
    """Mirrors envdeck.github.models.Repository."""

    name: str
    full_name: str = ""
    private: bool = False
    default_branch: str = "main"
    updated_at: str = ""


class EnvironmentResponse(BaseModel):
    """Mirrors envdeck.github.models.Environment."""

    name: str
    protection_rules: list[Any] = Field(default_factory=list)
    deployment_branch_policy: Optional[dict[str, Any]] = None
    created_at: str = ""
    updated_at: str = ""


class GridResponse(BaseModel):
    """Environments present in each repository of an organization."""

    repositories: list[str] = Field(default_factory=list)
    environments: list[str] = Field(default_factory=list)
    cells: dict[str, list[str]] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Secrets / variables (single location)
# ---------------------------------------------------------------------------


class SecretResponse(BaseModel):
    """Mirrors envdeck.github.models.Secret. Values are never returned."""

    name: str
    created_at: str = ""
    updated_at: str = ""


class VariableResponse(BaseModel):
    """Mirrors envdeck.github.models.Variable."""

    name: str
    value: str = ""
    created_at: str = ""
    updated_at: str = ""


class SecretWriteRequest(BaseModel):
    """Request body for creating or updating a secret."""

    value: str


class VariableCreateRequest(BaseModel):
    """Request body for creating a variable."""

    name: str
    value: str


class VariableUpdateRequest(BaseModel):
    """Request body for updating a variable."""

    value: str


# ---------------------------------------------------------------------------
# Bulk models
# ---------------------------------------------------------------------------


class CreateEnvironmentsRequest(BaseModel):
    """Create one environment in many repositories."""

    name: str
    repositories: list[str] = Field(default_factory=list)
    all_repositories: bool = False


class BulkOperationRequest(BaseModel):
    """Mirrors envdeck.bulk.models.BulkRequest, with 'select all' flags."""

    kind: OperationKind
    name: str
    value: str = ""
    repositories: list[str] = Field(default_factory=list)
    all_repositories: bool = False
    environments: list[str] = Field(default_factory=list)
    all_environments: bool = False


class OperationResultResponse(BaseModel):
    """Mirrors envdeck.bulk.models.OperationResult."""

    repository: str
    environment: str
    success: bool
    error: Optional[str] = None
    status: Optional[int] = None


class BulkReportResponse(BaseModel):
    """Mirrors envdeck.bulk.models.BulkReport."""

    results: list[OperationResultResponse] = Field(default_factory=list)
    success_count: int = 0
    failure_count: int = 0
    total_count: int = 0
    progress: float = 0.0


# ---------------------------------------------------------------------------
# Inventory models
# ---------------------------------------------------------------------------


class LocationResponse(BaseModel):
    """Mirrors envdeck.inventory.reconciler.Location."""

    repository: str
    environment: str
    value: Optional[str] = None


class InventoryEntryResponse(BaseModel):
    """Mirrors envdeck.inventory.reconciler.InventoryEntry."""

    name: str
    defined_in: list[LocationResponse] = Field(default_factory=list)
    missing_in: list[LocationResponse] = Field(default_factory=list)


class ScanFailureResponse(BaseModel):
    """Mirrors envdeck.inventory.reconciler.ScanFailure."""

    repository: str
    environment: str
    resource: str
    error: str


class InventoryResponse(BaseModel):
    """Mirrors envdeck.inventory.reconciler.Inventory."""

    repositories: list[str] = Field(default_factory=list)
    environments: list[str] = Field(default_factory=list)
    secrets: list[InventoryEntryResponse] = Field(default_factory=list)
    variables: list[InventoryEntryResponse] = Field(default_factory=list)
    failures: list[ScanFailureResponse] = Field(default_factory=list)
