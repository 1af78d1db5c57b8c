"""Typed snapshots of the JSON payloads returned by the REST API.

Each model has a ``from_api`` constructor that checks the fields the
console relies on and raises ``ValueError`` when one is missing, so a
malformed payload is rejected at the client boundary rather than deep
inside the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


def _require(data: Any, *keys: str) -> None:
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    missing = [k for k in keys if not data.get(k)]
    if missing:
        raise ValueError(f"Missing required field(s): {', '.join(missing)}")


@dataclass(frozen=True)
class Organization:
    """An organization visible to the credential."""

    login: str
    id: int = 0
    description: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "Organization":
        _require(data, "login")
        return cls(
            login=data["login"],
            id=int(data.get("id") or 0),
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class Repository:
    """A repository snapshot taken from an organization listing."""

    name: str
    full_name: str = ""
    private: bool = False
    default_branch: str = "main"
    updated_at: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "Repository":
        _require(data, "name")
        return cls(
            name=data["name"],
            full_name=data.get("full_name") or "",
            private=bool(data.get("private", False)),
            default_branch=data.get("default_branch") or "main",
            updated_at=data.get("updated_at") or "",
        )


@dataclass(frozen=True)
class Environment:
    """A deployment environment. Protection settings are kept opaque."""

    name: str
    protection_rules: list = field(default_factory=list)
    deployment_branch_policy: Optional[dict] = None
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "Environment":
        _require(data, "name")
        return cls(
            name=data["name"],
            protection_rules=list(data.get("protection_rules") or []),
            deployment_branch_policy=data.get("deployment_branch_policy"),
            created_at=data.get("created_at") or "",
            updated_at=data.get("updated_at") or "",
        )


@dataclass(frozen=True)
class Secret:
    """Secret metadata. The value is never readable."""

    name: str
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "Secret":
        _require(data, "name")
        return cls(
            name=data["name"],
            created_at=data.get("created_at") or "",
            updated_at=data.get("updated_at") or "",
        )


@dataclass(frozen=True)
class Variable:
    """A plaintext configuration variable."""

    name: str
    value: str = ""
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "Variable":
        _require(data, "name")
        return cls(
            name=data["name"],
            value=str(data.get("value") or ""),
            created_at=data.get("created_at") or "",
            updated_at=data.get("updated_at") or "",
        )


@dataclass(frozen=True)
class PublicKey:
    """Environment public key used to seal secret values."""

    key_id: str
    key: str

    @classmethod
    def from_api(cls, data: dict) -> "PublicKey":
        _require(data, "key_id", "key")
        return cls(key_id=str(data["key_id"]), key=data["key"])
