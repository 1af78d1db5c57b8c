"""Tests for the inventory reconciler."""

import asyncio

from envdeck.github.models import Repository
from envdeck.inventory.reconciler import Location, grid, reconcile, scan

REPOS = ["api", "web"]
ENVS = ["production", "staging"]


def _scan(github, repos=REPOS, envs=ENVS, on_progress=None):
    async def scenario():
        async with github.client() as client:
            return await scan(client, "acme", repos, envs, on_progress=on_progress)

    return asyncio.run(scenario())


def _keys(locations):
    return [loc.key for loc in locations]


def test_defined_and_missing_partition_scenario(github):
    github.environments["api"].add("production")
    github.environments["web"].add("staging")
    github.secrets[("api", "production")] = {"TOKEN": "x"}
    github.secrets[("web", "staging")] = {"TOKEN": "y"}

    inv = _scan(github)

    entry = inv.secrets["TOKEN"]
    assert _keys(entry.defined_in) == ["api:production", "web:staging"]
    assert _keys(entry.missing_in) == ["api:staging", "web:production"]
    assert entry.coverage == 0.5


def test_partition_covers_grid_exactly(github):
    for repo in REPOS:
        github.environments[repo].update(ENVS)
    github.variables[("api", "production")] = {"LEVEL": "info", "REGION": "eu"}
    github.variables[("api", "staging")] = {"LEVEL": "debug"}
    github.variables[("web", "staging")] = {"REGION": "us"}

    inv = _scan(github)

    full = {f"{r}:{e}" for r in REPOS for e in ENVS}
    for entry in inv.variables.values():
        defined, missing = _keys(entry.defined_in), _keys(entry.missing_in)
        assert len(defined) + len(missing) == len(full)
        assert set(defined) | set(missing) == full
        assert not set(defined) & set(missing)


def test_variable_values_are_kept(github):
    github.environments["api"].update(ENVS)
    github.variables[("api", "production")] = {"LEVEL": "info"}
    github.variables[("api", "staging")] = {"LEVEL": "debug"}

    inv = _scan(github)

    entry = inv.variables["LEVEL"]
    assert [loc.value for loc in entry.defined_in] == ["info", "debug"]
    assert entry.values == {"info", "debug"}
    assert all(loc.value is None for loc in entry.missing_in)


def test_entries_sorted_by_name(github):
    github.environments["api"].add("production")
    github.secrets[("api", "production")] = {"ZED": "1", "ALPHA": "2", "MID": "3"}

    inv = _scan(github)

    assert list(inv.secrets) == ["ALPHA", "MID", "ZED"]


def test_missing_environments_are_not_failures(github):
    inv = _scan(github)

    assert inv.secrets == {}
    assert inv.variables == {}
    assert inv.failures == ()
    assert inv.grid_size == 4


def test_listing_failure_is_tolerated(github):
    github.environments["api"].update(ENVS)
    github.secrets[("api", "staging")] = {"TOKEN": "x"}
    github.variables[("api", "production")] = {"LEVEL": "info"}
    github.fail[("GET", "/repos/acme/api/environments/production/secrets")] = 500
    github.offline.add("/repos/acme/api/environments/staging/variables")

    inv = _scan(github)

    assert _keys(inv.secrets["TOKEN"].defined_in) == ["api:staging"]
    assert _keys(inv.variables["LEVEL"].defined_in) == ["api:production"]
    assert [(f.location.key, f.resource, f.error) for f in inv.failures] == [
        ("api:production", "secrets", "HTTP 500"),
        ("api:staging", "variables", "Network error"),
    ]


def test_scan_is_sequential_and_reports_progress(github):
    progress = []

    _scan(github, on_progress=lambda d, t: progress.append((d, t)))

    assert progress == [(1, 4), (2, 4), (3, 4), (4, 4)]
    listed = [p for m, p in github.calls]
    assert listed[:2] == [
        "/repos/acme/api/environments/production/secrets",
        "/repos/acme/api/environments/production/variables",
    ]
    assert len(listed) == 8


def test_scan_accepts_repository_objects(github):
    github.environments["web"].add("production")
    github.secrets[("web", "production")] = {"TOKEN": "x"}

    inv = _scan(github, repos=[Repository(name="web")], envs=["production"])

    assert inv.repositories == ("web",)
    assert inv.secrets["TOKEN"].missing_in == ()


def test_reconcile_ignores_duplicate_sightings():
    full = grid(["api"], ["production", "staging"])
    sightings = [("A", Location("api", "production")), ("A", Location("api", "production"))]

    entries = reconcile(sightings, full)

    assert _keys(entries["A"].defined_in) == ["api:production"]
    assert _keys(entries["A"].missing_in) == ["api:staging"]
