"""Tests for the cross-product operation engine and its writers."""

import asyncio
import base64

import httpx
import pytest

from envdeck.bulk.engine import execute, run_bulk
from envdeck.bulk.models import (
    ENVIRONMENT_UNAVAILABLE,
    UNKNOWN_ERROR,
    BulkReport,
    BulkRequest,
    OperationKind,
    OperationResult,
    cross_product,
)
from envdeck.errors import OperationValidationError
from envdeck.github.client import ApiResult, GitHubClient

REPOS = ["api", "web"]
ENVS = ["production", "staging"]


class RecordingWriter:
    def __init__(self, failing=()):
        self.calls = []
        self.failing = set(failing)

    async def __call__(self, repo, env):
        self.calls.append((repo, env))
        if (repo, env) in self.failing:
            return ApiResult.failure(500)
        return ApiResult.success(201)


def _run(repos, envs, writer, ensure=None, on_progress=None) -> BulkReport:
    return asyncio.run(run_bulk(repos, envs, writer, ensure=ensure, on_progress=on_progress))


# --- Cross product ---


def test_cross_product_is_repo_major():
    targets = cross_product(REPOS, ENVS)
    assert [t.key for t in targets] == [
        "api:production",
        "api:staging",
        "web:production",
        "web:staging",
    ]


def test_cross_product_drops_duplicates_and_blanks():
    targets = cross_product(["api", "api", " web ", ""], ["production", "production"])
    assert [t.key for t in targets] == ["api:production", "web:production"]


# --- run_bulk ---


def test_all_targets_succeed():
    writer = RecordingWriter()
    progress = []

    report = _run(REPOS, ENVS, writer, on_progress=lambda d, t: progress.append(d / t * 100))

    assert len(report.results) == 4
    assert report.success_count == 4
    assert report.total_count == 4
    assert report.progress == 100
    assert progress == [25, 50, 75, 100]
    assert writer.calls == [(r.repository, r.environment) for r in report.results]


def test_results_cover_full_product_once():
    report = _run(["a", "b", "c"], ["x", "y"], RecordingWriter())
    pairs = [(r.repository, r.environment) for r in report.results]
    assert len(pairs) == 6
    assert set(pairs) == {(r, e) for r in "abc" for e in "xy"}


def test_failed_ensure_skips_write():
    writer = RecordingWriter()

    async def ensure(repo, env):
        return (repo, env) != ("api", "staging")

    report = _run(REPOS, ENVS, writer, ensure=ensure)

    assert ("api", "staging") not in writer.calls
    assert report.results[1] == OperationResult("api", "staging", False, error=ENVIRONMENT_UNAVAILABLE)
    assert report.success_count == 3


def test_ensure_runs_once_per_target():
    ensured = []

    async def ensure(repo, env):
        ensured.append((repo, env))
        return True

    _run(REPOS, ENVS, RecordingWriter(), ensure=ensure)
    assert ensured == [("api", "production"), ("api", "staging"), ("web", "production"), ("web", "staging")]


def test_single_failure_does_not_abort_batch():
    writer = RecordingWriter(failing=[("api", "production")])

    report = _run(REPOS, ENVS, writer)

    assert len(writer.calls) == 4
    assert report.success_count == 3
    assert report.failures == [OperationResult("api", "production", False, error="HTTP 500", status=500)]


def test_every_target_failing_still_reports():
    writer = RecordingWriter(failing=[(r, e) for r in REPOS for e in ENVS])

    report = _run(REPOS, ENVS, writer)

    assert report.success_count == 0
    assert report.failure_count == 4
    assert report.summary() == "0/4 succeeded"


# --- Request validation ---


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": "  "},
        {"value": ""},
        {"repositories": ()},
        {"environments": ("",)},
        {"org": ""},
    ],
)
def test_validation_rejects_before_network(github, overrides):
    fields = dict(
        org="acme",
        repositories=("api",),
        environments=("production",),
        kind=OperationKind.set_secret,
        name="TOKEN",
        value="s3cret",
    )
    fields.update(overrides)

    async def scenario():
        async with github.client() as client:
            return await execute(client, BulkRequest(**fields))

    with pytest.raises(OperationValidationError):
        asyncio.run(scenario())
    assert github.calls == []


def test_delete_needs_no_value():
    request = BulkRequest("acme", ("api",), ("production",), OperationKind.delete_variable, "LEVEL")
    request.validate()


# --- Against the fake API ---


def _execute(github, kind, name="TOKEN", value="s3cret", repos=REPOS, envs=ENVS, created=None) -> BulkReport:
    request = BulkRequest("acme", tuple(repos), tuple(envs), kind, name, value)

    async def scenario():
        async with github.client() as client:
            return await execute(
                client,
                request,
                on_environment_created=(lambda r, e: created.append((r, e))) if created is not None else None,
            )

    return asyncio.run(scenario())


def test_set_secret_creates_missing_environments_and_seals(github):
    github.environments["api"].add("production")
    created = []

    report = _execute(github, OperationKind.set_secret, created=created)

    assert report.success_count == 4
    assert created == [("api", "staging"), ("web", "production"), ("web", "staging")]
    assert github.unseal("web", "staging", "TOKEN") == "s3cret"
    put_body = next(b for m, p, b in github.bodies if p.endswith("/secrets/TOKEN"))
    assert put_body["key_id"] == "kid-1"
    assert put_body["encrypted_value"] != base64.b64encode(b"s3cret").decode()


def test_set_secret_twice_is_idempotent(github):
    first = _execute(github, OperationKind.set_secret)
    second = _execute(github, OperationKind.set_secret)

    assert first.success_count == 4
    assert second.success_count == 4
    assert len(github.calls_to("PUT", "/environments/staging")) == 2


def test_environment_create_failure_scenario(github):
    github.fail[("PUT", "/repos/acme/api/environments/staging")] = 422

    report = _execute(github, OperationKind.set_secret)

    failed = report.failures
    assert failed == [OperationResult("api", "staging", False, error=ENVIRONMENT_UNAVAILABLE)]
    assert github.calls_to("GET", "/environments/staging/secrets/public-key") == [
        "/repos/acme/web/environments/staging/secrets/public-key"
    ]


def test_public_key_failure_is_target_failure(github):
    github.fail[("GET", "/repos/acme/web/environments/production/secrets/public-key")] = 403

    report = _execute(github, OperationKind.set_secret)

    assert report.success_count == 3
    assert report.failures[0].error == "HTTP 403"


def test_set_variable_upserts(github):
    first = _execute(github, OperationKind.set_variable, name="LEVEL", value="info")
    second = _execute(github, OperationKind.set_variable, name="LEVEL", value="debug")

    assert first.success_count == 4
    assert second.success_count == 4
    assert len(github.calls_to("PATCH")) == 4
    assert github.variables[("web", "staging")]["LEVEL"] == "debug"


def test_set_variable_other_errors_are_not_retried(github):
    github.environments["api"].update(ENVS)
    github.environments["web"].update(ENVS)
    github.fail[("POST", "/repos/acme/api/environments/production/variables")] = 500

    report = _execute(github, OperationKind.set_variable, name="LEVEL", value="info")

    assert report.failures[0].error == "HTTP 500"
    assert github.calls_to("PATCH") == []


def test_delete_does_not_create_environments(github):
    github.environments["api"].add("production")
    github.secrets[("api", "production")] = {"TOKEN": "x"}

    report = _execute(github, OperationKind.delete_secret, value="")

    assert report.success_count == 1
    assert github.calls_to("PUT") == []
    assert github.secrets[("api", "production")] == {}
    assert {f.error for f in report.failures} == {"HTTP 404"}


def test_transport_failure_recorded(github):
    github.environments["api"].update(ENVS)
    github.environments["web"].update(ENVS)
    github.offline.add("/repos/acme/web/environments/staging/variables")

    report = _execute(github, OperationKind.set_variable, name="LEVEL", value="info")

    assert report.success_count == 3
    assert report.failures == [OperationResult("web", "staging", False, error="Network error", status=0)]


def test_unexpected_exception_is_recorded_and_batch_continues():
    calls = []

    async def writer(repo, env):
        calls.append((repo, env))
        if (repo, env) == ("api", "staging"):
            raise RuntimeError("boom")
        return ApiResult.success(201)

    report = _run(REPOS, ENVS, writer)

    assert len(calls) == 4
    assert report.total_count == 4
    assert report.success_count == 3
    assert report.failures == [OperationResult("api", "staging", False, error=UNKNOWN_ERROR)]


def test_undecodable_success_body_does_not_abort_batch(github):
    github.environments["api"].update(ENVS)
    github.environments["web"].update(ENVS)
    handler = github.handler

    def garbled(request):
        response = handler(request)
        if request.method == "POST" and request.url.path.startswith("/repos/acme/api/"):
            return httpx.Response(201, content=b"\x80\x81garbage")
        return response

    request = BulkRequest("acme", ("api", "web"), ("production",), OperationKind.set_variable, "LEVEL", "info")

    async def scenario():
        transport = httpx.MockTransport(garbled)
        async with GitHubClient("test-token", base_url="https://api.github.com", transport=transport) as client:
            return await execute(client, request)

    report = asyncio.run(scenario())

    assert report.success_count == 2
    assert github.variables[("web", "production")] == {"LEVEL": "info"}


def test_variable_validation_422_is_not_masked_by_update(github):
    github.environments["api"].add("production")
    github.fail[("POST", "/repos/acme/api/environments/production/variables")] = 422

    report = _execute(github, OperationKind.set_variable, name="NEW_NAME", value="x", repos=["api"], envs=["production"])

    assert report.failures == [OperationResult("api", "production", False, error="HTTP 422", status=422)]
    assert github.calls_to("PATCH") == ["/repos/acme/api/environments/production/variables/NEW_NAME"]


def test_variable_existing_422_still_updates(github):
    github.environments["api"].add("production")
    github.variables[("api", "production")] = {"LEVEL": "info"}
    github.fail[("POST", "/repos/acme/api/environments/production/variables")] = 422

    report = _execute(github, OperationKind.set_variable, name="LEVEL", value="debug", repos=["api"], envs=["production"])

    assert report.success_count == 1
    assert github.variables[("api", "production")]["LEVEL"] == "debug"


@pytest.mark.parametrize("name", ["GITHUB_TOKEN", "github_token", "1TOKEN", "BAD NAME", "TOKEN!", "DEPLOY-KEY"])
def test_invalid_names_rejected_before_network(github, name):
    with pytest.raises(OperationValidationError):
        _execute(github, OperationKind.set_secret, name=name)
    assert github.calls == []


@pytest.mark.parametrize("name", ["TOKEN", "_private", "deploy_key_2"])
def test_valid_names_accepted(name):
    BulkRequest("acme", ("api",), ("production",), OperationKind.set_secret, name, "x").validate()
