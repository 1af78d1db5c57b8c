"""YAML plan files for bulk operations.

A plan captures one bulk request so it can be reviewed and re-applied::

    org: acme
    operation: set-variable
    name: LOG_LEVEL
    value: info
    repositories: [api, web]     # or: all
    environments: all            # the common environment set

Secret values should not live in the file; ``value_from_env`` names an
environment variable to read the value from instead.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Union

import yaml

from envdeck.bulk.models import BulkRequest, OperationKind
from envdeck.config import COMMON_ENVIRONMENTS
from envdeck.errors import OperationValidationError

ALL = "all"


@dataclass
class Plan:
    """A parsed plan file, before ``all`` selections are resolved."""

    org: str
    kind: OperationKind
    name: str
    value: str = field(default="", repr=False)
    repositories: list[str] = field(default_factory=list)
    environments: list[str] = field(default_factory=list)
    all_repositories: bool = False
    all_environments: bool = False

    def to_request(self, available_repositories: Iterable[str] = ()) -> BulkRequest:
        """Resolve ``all`` selections and build the immutable request."""
        repos = list(available_repositories) if self.all_repositories else self.repositories
        envs = list(COMMON_ENVIRONMENTS) if self.all_environments else self.environments
        return BulkRequest(
            org=self.org,
            repositories=tuple(repos),
            environments=tuple(envs),
            kind=self.kind,
            name=self.name,
            value=self.value,
        )


def _selection(raw, label: str) -> tuple[list[str], bool]:
    if raw is None:
        return [], False
    if isinstance(raw, str):
        if raw.strip().lower() == ALL:
            return [], True
        return [raw], False
    if isinstance(raw, list):
        return [str(item) for item in raw], False
    raise OperationValidationError(f"'{label}' must be a list or '{ALL}'")


def parse_plan(data: dict) -> Plan:
    """Build a :class:`Plan` from an already-loaded mapping."""
    if not isinstance(data, dict):
        raise OperationValidationError("Plan must be a mapping")

    try:
        kind = OperationKind(str(data.get("operation", "")))
    except ValueError:
        valid = ", ".join(k.value for k in OperationKind)
        raise OperationValidationError(f"Unknown operation {data.get('operation')!r}. Valid operations: {valid}")

    value = str(data.get("value") or "")
    value_env = data.get("value_from_env")
    if value_env:
        value = os.environ.get(str(value_env), "")
        if not value:
            raise OperationValidationError(f"Environment variable {value_env} is not set")

    repos, all_repos = _selection(data.get("repositories"), "repositories")
    envs, all_envs = _selection(data.get("environments"), "environments")

    return Plan(
        org=str(data.get("org") or ""),
        kind=kind,
        name=str(data.get("name") or ""),
        value=value,
        repositories=repos,
        environments=envs,
        all_repositories=all_repos,
        all_environments=all_envs,
    )


def load_plan(path: Union[str, Path]) -> Plan:
    """Read and parse a YAML plan file."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return parse_plan(data)
