"""Request, target and report types for bulk operations.

A bulk invocation is described by an immutable :class:`BulkRequest`, is
expanded into an ordered sequence of :class:`OperationTarget` pairs and
produces one :class:`OperationResult` per target, collected into a
:class:`BulkReport`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from envdeck.errors import OperationValidationError

ENVIRONMENT_UNAVAILABLE = "Failed to create/access environment"
UNKNOWN_ERROR = "Unknown error"

_NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_RESERVED_PREFIX = "GITHUB_"


def check_name(name: str, resource: str) -> None:
    """Raise OperationValidationError unless ``name`` is a usable secret/variable name.

    Names hold only letters, digits and underscores, never start with a
    digit and never use the reserved ``GITHUB_`` prefix.
    """
    if not name:
        raise OperationValidationError(f"A {resource} name is required")
    if not _NAME_PATTERN.fullmatch(name):
        raise OperationValidationError(
            f"Invalid {resource} name {name!r}: use letters, digits and underscores, not starting with a digit"
        )
    if name.upper().startswith(_RESERVED_PREFIX):
        raise OperationValidationError(f"Invalid {resource} name {name!r}: the {_RESERVED_PREFIX} prefix is reserved")


class OperationKind(str, Enum):
    """The write applied to every target of a bulk invocation."""

    set_secret = "set-secret"
    set_variable = "set-variable"
    delete_secret = "delete-secret"
    delete_variable = "delete-variable"

    @property
    def requires_value(self) -> bool:
        return self in (OperationKind.set_secret, OperationKind.set_variable)

    @property
    def ensures_environment(self) -> bool:
        # Deletes never create an environment just to remove something from it.
        return self.requires_value

    @property
    def resource(self) -> str:
        return "secret" if self in (OperationKind.set_secret, OperationKind.delete_secret) else "variable"


@dataclass(frozen=True)
class OperationTarget:
    """One (repository, environment) pair of the cross product."""

    repository: str
    environment: str

    @property
    def key(self) -> str:
        return f"{self.repository}:{self.environment}"


@dataclass(frozen=True)
class OperationResult:
    """Outcome of applying one write to one target."""

    repository: str
    environment: str
    success: bool
    error: Optional[str] = None
    status: Optional[int] = None

    @property
    def target(self) -> OperationTarget:
        return OperationTarget(self.repository, self.environment)


@dataclass(frozen=True)
class BulkReport:
    """Immutable snapshot returned at the end of a bulk invocation."""

    results: tuple[OperationResult, ...] = ()
    total_count: int = 0

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return len(self.results) - self.success_count

    @property
    def failures(self) -> list[OperationResult]:
        return [r for r in self.results if not r.success]

    @property
    def progress(self) -> float:
        """Completion percentage (0-100)."""
        if self.total_count == 0:
            return 100.0
        return len(self.results) / self.total_count * 100

    def summary(self) -> str:
        return f"{self.success_count}/{self.total_count} succeeded"


def normalize_selection(items: Iterable[str]) -> tuple[str, ...]:
    """Strip, drop blanks and de-duplicate while keeping first-seen order."""
    seen: dict[str, None] = {}
    for item in items:
        cleaned = (item or "").strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return tuple(seen)


def cross_product(repositories: Iterable[str], environments: Iterable[str]) -> list[OperationTarget]:
    """Materialize targets: outer loop over repositories, inner over environments."""
    repos = normalize_selection(repositories)
    envs = normalize_selection(environments)
    return [OperationTarget(repo, env) for repo in repos for env in envs]


@dataclass(frozen=True)
class BulkRequest:
    """Everything one bulk invocation needs, captured up front."""

    org: str
    repositories: tuple[str, ...]
    environments: tuple[str, ...]
    kind: OperationKind
    name: str
    value: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "repositories", normalize_selection(self.repositories))
        object.__setattr__(self, "environments", normalize_selection(self.environments))
        object.__setattr__(self, "kind", OperationKind(self.kind))
        object.__setattr__(self, "name", (self.name or "").strip())

    def validate(self) -> None:
        """Reject the request before any network call is made."""
        if not self.org.strip():
            raise OperationValidationError("An organization is required")
        check_name(self.name, self.kind.resource)
        if self.kind.requires_value and not (self.value or "").strip():
            raise OperationValidationError(f"A {self.kind.resource} value is required")
        if not self.repositories:
            raise OperationValidationError("Select at least one repository")
        if not self.environments:
            raise OperationValidationError("Select at least one environment")

    def targets(self) -> list[OperationTarget]:
        return cross_product(self.repositories, self.environments)
