"""Bulk operations across the repository x environment cross product."""

from envdeck.bulk.engine import execute, run_bulk
from envdeck.bulk.environments import create_environments, ensure_environment
from envdeck.bulk.models import (
    ENVIRONMENT_UNAVAILABLE,
    BulkReport,
    BulkRequest,
    OperationKind,
    OperationResult,
    OperationTarget,
    cross_product,
)

__all__ = [
    "execute",
    "run_bulk",
    "create_environments",
    "ensure_environment",
    "ENVIRONMENT_UNAVAILABLE",
    "BulkReport",
    "BulkRequest",
    "OperationKind",
    "OperationResult",
    "OperationTarget",
    "cross_product",
]
