"""repohooks CLI - lifecycle hook entry points."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from repohooks import __version__
from repohooks.audit.merge_log import LogOutcome, MergeEventLogger, read_records
from repohooks.config import RepoHooksConfig, load_config
from repohooks.errors import NotARepositoryError, RepoHooksError
from repohooks.git.state import resolve_repo_root
from repohooks.output import canonical_dumps
from repohooks.policy.readme import check_readme_policy
from repohooks.runner import EXIT_OK, EXIT_POLICY_FAILURE, EXIT_TOOLING_ERROR, HookEvent, run_hook

cli = typer.Typer(
    name="repohooks",
    help="repohooks - repository policy checks for git lifecycle hooks",
    no_args_is_help=True,
)
log_app = typer.Typer(help="Inspect the merge audit log.", no_args_is_help=True)
config_app = typer.Typer(help="Inspect effective configuration.", no_args_is_help=True)
cli.add_typer(log_app, name="log")
cli.add_typer(config_app, name="config")

console = Console()
err_console = Console(stderr=True)

REPO_ROOT_HELP = "Repository root (default: top level of the current git checkout)"


def _version_option_callback(value: bool) -> None:
    """Handle eager --version option."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@cli.callback()
def _cli_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Emit debug logging on stderr."),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show repohooks version and exit.",
        is_eager=True,
        callback=_version_option_callback,
    ),
) -> None:
    """Configure logging for every invocation."""
    _ = version
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _resolve_root(repo_root: Path | None) -> Path:
    """Use the explicit root when given, otherwise ask git."""
    if repo_root is None:
        return resolve_repo_root()
    resolved = repo_root.resolve()
    if not resolved.is_dir():
        raise NotARepositoryError(f"Explicit repo root is not a directory: {resolved}")
    return resolved


def _load(repo_root: Path | None) -> tuple[Path, RepoHooksConfig]:
    try:
        root = _resolve_root(repo_root)
        return root, load_config(root)
    except RepoHooksError as exc:
        err_console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(EXIT_TOOLING_ERROR) from exc


@cli.command("run")
def run_cmd(
    event_name: str = typer.Argument(..., metavar="EVENT", help="Lifecycle event: pre-commit or post-merge."),
    repo_root: Path | None = typer.Option(None, "--repo-root", help=REPO_ROOT_HELP),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON."),
) -> None:
    """Run the checks registered for a git lifecycle event.

    Exit codes:
      0 - Allowed (post-merge always allows)
      2 - Policy violation, the git operation must be aborted
      1 - Tooling error
    """
    try:
        event = HookEvent.parse(event_name)
    except ValueError as exc:
        err_console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(EXIT_TOOLING_ERROR) from exc

    root, config = _load(repo_root)
    try:
        result = run_hook(event, root, config)
    except RepoHooksError as exc:
        err_console.print(f"[bold red]Error:[/bold red] {exc}")
        if not event.blocking:
            raise typer.Exit(EXIT_OK) from exc
        raise typer.Exit(EXIT_TOOLING_ERROR) from exc

    if json_output:
        typer.echo(canonical_dumps(result.to_dict(), indent=2))
        raise typer.Exit(result.exit_code)

    for outcome in result.outcomes:
        for warning in outcome.warnings:
            err_console.print(f"[yellow]Warning:[/yellow] {warning}")

    failure = result.failure
    if failure is None:
        console.print(f"[green]✓[/green] {result.message}")
    else:
        err_console.print(f"[bold red]✗ {event.value} refused:[/bold red] {failure.message}")
        for detail in failure.details:
            err_console.print(f"  - {detail}", markup=False)
    raise typer.Exit(result.exit_code)


@cli.command("check")
def check_cmd(
    repo_root: Path | None = typer.Option(None, "--repo-root", help=REPO_ROOT_HELP),
    json_output: bool = typer.Option(False, "--json", help="Print violations as JSON."),
) -> None:
    """Check that every directory contains a README file."""
    root, config = _load(repo_root)
    result = check_readme_policy(root, config)

    if json_output:
        payload = {
            "repo_root": str(root),
            "status": "passed" if result.passed else "failed",
            "checked": result.checked,
            "violations": [{"path": v.path, "reason": v.reason} for v in result.violations],
        }
        typer.echo(canonical_dumps(payload, indent=2))
    elif result.passed:
        console.print(f"[green]✓[/green] All {result.checked} directories contain a README file")
    else:
        err_console.print("[bold red]The following directories are missing a README file:[/bold red]")
        for violation in result.violations:
            err_console.print(f"  - {violation.path}", markup=False)

    raise typer.Exit(EXIT_OK if result.passed else EXIT_POLICY_FAILURE)


@cli.command("log-merge")
def log_merge_cmd(
    repo_root: Path | None = typer.Option(None, "--repo-root", help=REPO_ROOT_HELP),
) -> None:
    """Append a merge record when HEAD is on the production branch."""
    root, config = _load(repo_root)
    result = MergeEventLogger(config).log_merge(root)

    if result.outcome is LogOutcome.SKIPPED:
        console.print(
            f"Branch {result.branch or '(detached)'} is not {config.production_branch}; nothing logged"
        )
    elif result.outcome is LogOutcome.DONE_WITH_WARNING:
        err_console.print(f"[yellow]Warning:[/yellow] {result.warning}")
    else:
        console.print(f"[green]✓[/green] Merge logged to {result.log_path}")


@log_app.command("show")
def log_show_cmd(
    repo_root: Path | None = typer.Option(None, "--repo-root", help=REPO_ROOT_HELP),
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Number of most recent records."),
) -> None:
    """Show the most recent merge records."""
    root, config = _load(repo_root)
    log_path = config.resolve_log_path(root)
    records = read_records(log_path)[-limit:]

    if not records:
        console.print(f"No merge records in {log_path}")
        return

    table = Table(title=str(log_path))
    for column in ("Date", "Author", "Commit", "Message", "Branch"):
        table.add_column(column)
    for record in records:
        table.add_row(
            record.timestamp,
            record.author,
            record.commit_hash[:8],
            record.commit_message,
            record.branch,
        )
    console.print(table)


@config_app.command("show")
def config_show_cmd(
    repo_root: Path | None = typer.Option(None, "--repo-root", help=REPO_ROOT_HELP),
) -> None:
    """Print the effective configuration as JSON."""
    _, config = _load(repo_root)
    typer.echo(canonical_dumps(config.to_dict(), indent=2))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
