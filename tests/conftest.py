"""Shared fixtures: an in-memory fake of the REST API behind httpx.MockTransport."""

import base64
import json
import re

import httpx
import pytest
from nacl import public

from envdeck.config import Settings
from envdeck.github.client import GitHubClient
from envdeck.session import Session

BASE_URL = "https://api.github.com"

_ENV = r"/repos/(?P<org>[^/]+)/(?P<repo>[^/]+)/environments/(?P<env>[^/]+)"


class FakeGitHub:
    """Minimal stateful stand-in for the remote API.

    ``fail[(METHOD, path)] = status`` forces a status for one call;
    ``offline`` holds paths whose requests raise a transport error.
    """

    def __init__(self, org="acme", repos=("api", "web"), environments=None):
        self.org = org
        self.repos = list(repos)
        self.environments = {r: set((environments or {}).get(r, ())) for r in self.repos}
        self.secrets: dict[tuple[str, str], dict[str, str]] = {}
        self.variables: dict[tuple[str, str], dict[str, str]] = {}
        self.private_key = public.PrivateKey.generate()
        self.fail: dict[tuple[str, str], int] = {}
        self.offline: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.bodies: list[tuple[str, str, dict]] = []

    # -- helpers for tests -------------------------------------------------

    def client(self) -> GitHubClient:
        return GitHubClient("test-token", base_url=BASE_URL, transport=self.transport())

    def session(self) -> Session:
        return Session("test-token", settings=Settings(api_url=BASE_URL), transport=self.transport())

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def unseal(self, repo: str, env: str, name: str) -> str:
        sealed = base64.b64decode(self.secrets[(repo, env)][name])
        return public.SealedBox(self.private_key).decrypt(sealed).decode("utf-8")

    def calls_to(self, method: str, suffix: str = "") -> list[str]:
        return [p for m, p in self.calls if m == method and p.endswith(suffix)]

    # -- request handling --------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.calls.append((method, path))
        body = json.loads(request.content) if request.content else None
        if body is not None:
            self.bodies.append((method, path, body))

        assert request.headers["Authorization"] == "Bearer test-token"

        if path in self.offline:
            raise httpx.ConnectError("connection refused", request=request)
        if (method, path) in self.fail:
            return httpx.Response(self.fail[(method, path)], json={"message": "forced"})

        return self._route(method, path, body)

    def _route(self, method, path, body):
        if path == "/user/orgs":
            return httpx.Response(200, json=[{"login": self.org, "id": 1, "description": "Acme"}])

        m = re.fullmatch(r"/orgs/(?P<org>[^/]+)/repos", path)
        if m:
            if m["org"] != self.org:
                return httpx.Response(404)
            return httpx.Response(
                200,
                json=[
                    {"name": r, "full_name": f"{self.org}/{r}", "private": True, "default_branch": "main"}
                    for r in self.repos
                ],
            )

        m = re.fullmatch(r"/repos/(?P<org>[^/]+)/(?P<repo>[^/]+)/environments", path)
        if m:
            if m["repo"] not in self.environments:
                return httpx.Response(404)
            envs = sorted(self.environments[m["repo"]])
            return httpx.Response(200, json={"total_count": len(envs), "environments": [{"name": e} for e in envs]})

        m = re.fullmatch(_ENV + r"(?P<rest>/.*)?", path)
        if not m or m["repo"] not in self.environments:
            return httpx.Response(404)
        repo, env, rest = m["repo"], m["env"], m["rest"] or ""
        exists = env in self.environments[repo]

        if rest == "":
            if method == "GET":
                return httpx.Response(200, json={"name": env}) if exists else httpx.Response(404)
            if method == "PUT":
                self.environments[repo].add(env)
                return httpx.Response(200, json={"name": env})

        if not exists:
            return httpx.Response(404)
        key = (repo, env)

        if rest == "/secrets" and method == "GET":
            names = sorted(self.secrets.get(key, {}))
            return httpx.Response(200, json={"total_count": len(names), "secrets": [{"name": n} for n in names]})
        if rest == "/secrets/public-key" and method == "GET":
            key_b64 = base64.b64encode(bytes(self.private_key.public_key)).decode()
            return httpx.Response(200, json={"key_id": "kid-1", "key": key_b64})
        m = re.fullmatch(r"/secrets/(?P<name>[^/]+)", rest)
        if m:
            if method == "PUT":
                existed = m["name"] in self.secrets.get(key, {})
                self.secrets.setdefault(key, {})[m["name"]] = body["encrypted_value"]
                return httpx.Response(204 if existed else 201)
            if method == "DELETE":
                if m["name"] not in self.secrets.get(key, {}):
                    return httpx.Response(404)
                del self.secrets[key][m["name"]]
                return httpx.Response(204)

        if rest == "/variables":
            if method == "GET":
                items = sorted(self.variables.get(key, {}).items())
                return httpx.Response(
                    200,
                    json={"total_count": len(items), "variables": [{"name": n, "value": v} for n, v in items]},
                )
            if method == "POST":
                if body["name"] in self.variables.get(key, {}):
                    return httpx.Response(409, json={"message": "Already exists"})
                self.variables.setdefault(key, {})[body["name"]] = body["value"]
                return httpx.Response(201)
        m = re.fullmatch(r"/variables/(?P<name>[^/]+)", rest)
        if m:
            if m["name"] not in self.variables.get(key, {}):
                return httpx.Response(404)
            if method == "PATCH":
                self.variables[key][m["name"]] = body["value"]
                return httpx.Response(204)
            if method == "DELETE":
                del self.variables[key][m["name"]]
                return httpx.Response(204)

        return httpx.Response(404)


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()
