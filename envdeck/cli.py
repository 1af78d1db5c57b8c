"""envdeck CLI -- manage environments, secrets and variables across an organization."""

import asyncio
import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from envdeck import __version__
from envdeck.bulk.models import BulkReport, BulkRequest, OperationKind
from envdeck.config import COMMON_ENVIRONMENTS
from envdeck.errors import EnvdeckError
from envdeck.session import Session

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__)
@click.option("--token", envvar="GITHUB_TOKEN", default=None, help="Personal access token (or GITHUB_TOKEN)")
@click.option("--verbose", "-v", is_flag=True, help="Log every request")
@click.pass_context
def main(ctx: click.Context, token: str | None, verbose: bool):
    """envdeck -- bulk console for repository environments.

    Authenticate with a personal access token, then inspect which
    environments exist across an organization's repositories and write
    secrets and variables to many repository/environment pairs at once.
    """
    ctx.ensure_object(dict)
    ctx.obj["token"] = token
    _setup_logging(verbose)


# ── Helpers ──────────────────────────────────────────────────────────


def _run(ctx: click.Context, action):
    """Run ``action(session)`` inside a fresh session and event loop."""
    token = ctx.obj.get("token")
    if not token:
        raise click.UsageError("A token is required: pass --token or set GITHUB_TOKEN")

    async def runner():
        async with Session(token, transport=ctx.obj.get("transport")) as session:
            return await action(session)

    try:
        return asyncio.run(runner())
    except EnvdeckError as e:
        console.print(f"[red]x[/] {e}")
        ctx.exit(1)


def _progress() -> Progress:
    return Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    )


def _render_report(report: BulkReport, title: str) -> None:
    table = Table(title=f"{title} ({report.summary()})")
    table.add_column("Repository", style="cyan")
    table.add_column("Environment")
    table.add_column("Status", justify="center")
    table.add_column("Error", style="red")

    for r in report.results:
        status = "[green]OK[/]" if r.success else "[red]FAIL[/]"
        table.add_row(r.repository, r.environment, status, r.error or "")

    console.print(table)
    color = "green" if report.failure_count == 0 else "yellow"
    console.print(f"[{color}]Completed in {report.success_count}/{report.total_count} locations[/]")


def _finish(ctx: click.Context, report: BulkReport, title: str) -> None:
    _render_report(report, title)
    if report.failure_count:
        ctx.exit(1)


async def _resolve_repos(session: Session, org: str, repos: tuple, all_repos: bool) -> list[str]:
    if all_repos:
        return await session.all_repository_names(org)
    return list(repos)


# ── Browsing ─────────────────────────────────────────────────────────


@main.command()
@click.pass_context
def orgs(ctx: click.Context):
    """List organizations visible to the token."""
    found = _run(ctx, lambda s: s.list_orgs())

    if not found:
        console.print("[yellow]No organizations found.[/]")
        return

    table = Table(title=f"Organizations ({len(found)})")
    table.add_column("Login", style="cyan")
    table.add_column("Description")
    for org in found:
        table.add_row(org.login, org.description[:60])
    console.print(table)


@main.command()
@click.argument("org")
@click.pass_context
def repos(ctx: click.Context, org: str):
    """List repositories of ORG, most recently updated first."""
    found = _run(ctx, lambda s: s.list_repos(org))

    if not found:
        console.print("[yellow]No repositories found.[/]")
        return

    table = Table(title=f"Repositories in {org} ({len(found)})")
    table.add_column("Name", style="cyan")
    table.add_column("Visibility")
    table.add_column("Default branch")
    table.add_column("Updated", style="dim")
    for repo in found:
        visibility = "private" if repo.private else "public"
        table.add_row(repo.name, visibility, repo.default_branch, repo.updated_at)
    console.print(table)


@main.command()
@click.argument("org")
@click.pass_context
def grid(ctx: click.Context, org: str):
    """Show which environments exist in each repository of ORG."""
    env_grid = _run(ctx, lambda s: s.environment_grid(org))
    columns = env_grid.columns()

    if not env_grid.repositories:
        console.print("[yellow]No repositories found.[/]")
        return

    table = Table(title=f"Environments in {org}")
    table.add_column("Repository", style="cyan")
    for env in columns:
        table.add_column(env, justify="center")
    for repo in env_grid.repositories:
        marks = ["[green]Y[/]" if env_grid.has_environment(repo.name, env) else "[dim]-[/]" for env in columns]
        table.add_row(repo.name, *marks)
    console.print(table)


# ── Environments ─────────────────────────────────────────────────────


@main.group()
def env():
    """Create environments across repositories."""


@env.command(name="create")
@click.argument("org")
@click.argument("name")
@click.option("--repo", "-r", multiple=True, help="Target repository (repeatable)")
@click.option("--all-repos", is_flag=True, help="Target every repository in ORG")
@click.pass_context
def env_create(ctx: click.Context, org: str, name: str, repo: tuple, all_repos: bool):
    """Create environment NAME in the selected repositories."""

    async def action(session: Session) -> BulkReport:
        targets = await _resolve_repos(session, org, repo, all_repos)
        with _progress() as progress:
            task = progress.add_task(f"Creating {name}", total=max(len(targets), 1))
            return await session.create_environments(
                org, targets, name, on_progress=lambda done, total: progress.update(task, completed=done)
            )

    report = _run(ctx, action)
    _finish(ctx, report, f"Environment {name}")


# ── Single location ──────────────────────────────────────────────────


@main.group()
def secret():
    """Manage the secrets of one repository environment."""


@secret.command(name="list")
@click.argument("org")
@click.argument("repo")
@click.argument("environment")
@click.pass_context
def secret_list(ctx: click.Context, org: str, repo: str, environment: str):
    """List secrets in REPO/ENVIRONMENT."""
    found = _run(ctx, lambda s: s.manager(org, repo, environment).list_secrets())

    if not found:
        console.print("[yellow]No secrets found.[/]")
        return

    table = Table(title=f"Secrets in {repo}/{environment} ({len(found)})")
    table.add_column("Name", style="cyan")
    table.add_column("Created", style="dim")
    table.add_column("Updated", style="dim")
    for s in found:
        table.add_row(s.name, s.created_at, s.updated_at)
    console.print(table)


@secret.command(name="set")
@click.argument("org")
@click.argument("repo")
@click.argument("environment")
@click.argument("name")
@click.option("--value", prompt=True, hide_input=True, help="Secret value (prompted when omitted)")
@click.pass_context
def secret_set(ctx: click.Context, org: str, repo: str, environment: str, name: str, value: str):
    """Create or update secret NAME in REPO/ENVIRONMENT."""
    _run(ctx, lambda s: s.manager(org, repo, environment).set_secret(name, value))
    console.print(f"[green]v[/] Secret {name} saved in {repo}/{environment}")


@secret.command(name="delete")
@click.argument("org")
@click.argument("repo")
@click.argument("environment")
@click.argument("name")
@click.pass_context
def secret_delete(ctx: click.Context, org: str, repo: str, environment: str, name: str):
    """Delete secret NAME from REPO/ENVIRONMENT."""
    _run(ctx, lambda s: s.manager(org, repo, environment).delete_secret(name))
    console.print(f"[green]v[/] Secret {name} deleted from {repo}/{environment}")


@main.group()
def variable():
    """Manage the variables of one repository environment."""


@variable.command(name="list")
@click.argument("org")
@click.argument("repo")
@click.argument("environment")
@click.pass_context
def variable_list(ctx: click.Context, org: str, repo: str, environment: str):
    """List variables in REPO/ENVIRONMENT."""
    found = _run(ctx, lambda s: s.manager(org, repo, environment).list_variables())

    if not found:
        console.print("[yellow]No variables found.[/]")
        return

    table = Table(title=f"Variables in {repo}/{environment} ({len(found)})")
    table.add_column("Name", style="cyan")
    table.add_column("Value")
    table.add_column("Updated", style="dim")
    for v in found:
        table.add_row(v.name, v.value, v.updated_at)
    console.print(table)


@variable.command(name="set")
@click.argument("org")
@click.argument("repo")
@click.argument("environment")
@click.argument("name")
@click.argument("value")
@click.option("--update", is_flag=True, help="Update an existing variable instead of creating it")
@click.pass_context
def variable_set(ctx: click.Context, org: str, repo: str, environment: str, name: str, value: str, update: bool):
    """Create (or with --update, change) variable NAME in REPO/ENVIRONMENT."""
    if update:
        _run(ctx, lambda s: s.manager(org, repo, environment).update_variable(name, value))
    else:
        _run(ctx, lambda s: s.manager(org, repo, environment).create_variable(name, value))
    console.print(f"[green]v[/] Variable {name} saved in {repo}/{environment}")


@variable.command(name="delete")
@click.argument("org")
@click.argument("repo")
@click.argument("environment")
@click.argument("name")
@click.pass_context
def variable_delete(ctx: click.Context, org: str, repo: str, environment: str, name: str):
    """Delete variable NAME from REPO/ENVIRONMENT."""
    _run(ctx, lambda s: s.manager(org, repo, environment).delete_variable(name))
    console.print(f"[green]v[/] Variable {name} deleted from {repo}/{environment}")


# ── Bulk ─────────────────────────────────────────────────────────────


@main.group()
def bulk():
    """Apply one write across many repositories and environments."""


def _targets(func):
    func = click.option("--all-envs", is_flag=True, help=f"Target {', '.join(COMMON_ENVIRONMENTS)}")(func)
    func = click.option("--env", "-e", multiple=True, help="Target environment (repeatable)")(func)
    func = click.option("--all-repos", is_flag=True, help="Target every repository in ORG")(func)
    func = click.option("--repo", "-r", multiple=True, help="Target repository (repeatable)")(func)
    return func


def _run_bulk(
    ctx: click.Context,
    kind: OperationKind,
    org: str,
    name: str,
    value: str,
    repo: tuple,
    all_repos: bool,
    env: tuple,
    all_envs: bool,
) -> None:
    async def action(session: Session) -> BulkReport:
        repositories = await _resolve_repos(session, org, repo, all_repos)
        environments = list(COMMON_ENVIRONMENTS) if all_envs else list(env)
        request = BulkRequest(
            org=org,
            repositories=tuple(repositories),
            environments=tuple(environments),
            kind=kind,
            name=name,
            value=value,
        )
        return await _execute(session, request)

    report = _run(ctx, action)
    _finish(ctx, report, f"{kind.value} {name}")


async def _execute(session: Session, request: BulkRequest) -> BulkReport:
    request.validate()
    with _progress() as progress:
        task = progress.add_task(f"{request.kind.value} {request.name}", total=len(request.targets()))
        return await session.run_bulk(
            request,
            on_progress=lambda done, total: progress.update(task, completed=done),
            on_environment_created=lambda repo, env: console.print(f"  [blue]+[/] created {repo}/{env}"),
        )


@bulk.command(name="secret")
@click.argument("org")
@click.argument("name")
@click.option("--value", prompt=True, hide_input=True, help="Secret value (prompted when omitted)")
@_targets
@click.pass_context
def bulk_secret(ctx, org, name, value, repo, all_repos, env, all_envs):
    """Create or update secret NAME in every selected repository/environment."""
    _run_bulk(ctx, OperationKind.set_secret, org, name, value, repo, all_repos, env, all_envs)


@bulk.command(name="variable")
@click.argument("org")
@click.argument("name")
@click.argument("value")
@_targets
@click.pass_context
def bulk_variable(ctx, org, name, value, repo, all_repos, env, all_envs):
    """Create or update variable NAME in every selected repository/environment."""
    _run_bulk(ctx, OperationKind.set_variable, org, name, value, repo, all_repos, env, all_envs)


@bulk.command(name="delete-secret")
@click.argument("org")
@click.argument("name")
@_targets
@click.pass_context
def bulk_delete_secret(ctx, org, name, repo, all_repos, env, all_envs):
    """Delete secret NAME from every selected repository/environment."""
    _run_bulk(ctx, OperationKind.delete_secret, org, name, "", repo, all_repos, env, all_envs)


@bulk.command(name="delete-variable")
@click.argument("org")
@click.argument("name")
@_targets
@click.pass_context
def bulk_delete_variable(ctx, org, name, repo, all_repos, env, all_envs):
    """Delete variable NAME from every selected repository/environment."""
    _run_bulk(ctx, OperationKind.delete_variable, org, name, "", repo, all_repos, env, all_envs)


@bulk.command(name="apply")
@click.argument("plan_path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def bulk_apply(ctx: click.Context, plan_path: str):
    """Run the bulk operation described by a YAML plan file."""
    from envdeck.bulk.plan import load_plan

    try:
        plan = load_plan(plan_path)
    except EnvdeckError as e:
        console.print(f"[red]x[/] {e}")
        ctx.exit(1)

    async def action(session: Session) -> BulkReport:
        available = await session.all_repository_names(plan.org) if plan.all_repositories else []
        return await _execute(session, plan.to_request(available))

    report = _run(ctx, action)
    _finish(ctx, report, f"{plan.kind.value} {plan.name}")


# ── Inventory ────────────────────────────────────────────────────────


@main.command()
@click.argument("org")
@click.option("--repo", "-r", multiple=True, help="Limit to repository (default: all)")
@click.option("--env", "-e", multiple=True, help=f"Limit to environment (default: {', '.join(COMMON_ENVIRONMENTS)})")
@click.option("--missing", is_flag=True, help="Show where each name is missing")
@click.pass_context
def inventory(ctx: click.Context, org: str, repo: tuple, env: tuple, missing: bool):
    """Reconcile which secrets and variables exist where across ORG."""

    async def action(session: Session):
        with _progress() as progress:
            task = progress.add_task("Scanning", total=None)
            return await session.inventory(
                org,
                repositories=list(repo) or None,
                environments=list(env) or None,
                on_progress=lambda done, total: progress.update(task, completed=done, total=total),
            )

    result = _run(ctx, action)

    for label, entries in (("Secrets", result.secrets), ("Variables", result.variables)):
        if not entries:
            console.print(f"[yellow]No {label.lower()} found.[/]")
            continue
        table = Table(title=f"{label} across {result.grid_size} locations")
        table.add_column("Name", style="cyan")
        table.add_column("Defined", justify="right", style="green")
        table.add_column("Missing", justify="right", style="red")
        if missing:
            table.add_column("Missing in")
        for entry in entries.values():
            row = [entry.name, str(len(entry.defined_in)), str(len(entry.missing_in))]
            if missing:
                row.append(", ".join(f"{loc.repository}/{loc.environment}" for loc in entry.missing_in))
            table.add_row(*row)
        console.print(table)

    for failure in result.failures:
        console.print(
            f"  [yellow]![/] {failure.resource} unreadable in "
            f"{failure.location.repository}/{failure.location.environment}: {failure.error}"
        )


if __name__ == "__main__":
    main()
