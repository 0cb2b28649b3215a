"""CLI application for netmigrate."""

import asyncio
import logging
import tempfile
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from core.config import DEFAULT_PRIVATE_PREFIX, DEFAULT_TARGET_FRAMEWORK, MigrationSettings
from core.errors import SetupError
from core.models import MigrationReport
from core.parse_project import scan_directory
from core.planner import MigrationPlanner
from core.report import write_reports
from core.tooling import (
    SetupResult,
    check_environment,
    cleanup_workspace,
    clone_repository,
    list_packages,
    run_analysis,
    verify_build,
)

console = Console()
logger = logging.getLogger("netmigrate")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


async def run_pipeline(
    settings: MigrationSettings,
    workspace: Path,
    setup: SetupResult,
    repository: str = "",
    branch: str = "",
    verify: bool = True,
    analyze: bool = False,
    include_package_list: bool = False,
) -> MigrationReport:
    """Scan, plan, optionally analyze and build, in that order."""
    projects = scan_directory(workspace)
    logger.info("Found %d project(s) under %s", len(projects), workspace)

    analysis_results = []
    if analyze and setup.can_analyze:
        for project in projects:
            analysis_results.append(run_analysis(project.path))

    planner = MigrationPlanner(settings)
    report = await planner.plan(projects, repository=repository, branch=branch)
    report.analysis_results.extend(analysis_results)

    if verify and setup.can_build:
        for project in report.projects:
            result = verify_build(project.path, project.name)
            if include_package_list:
                result.output += "\n" + list_packages(project.path)
            report.build_results.append(result)

    return report


def format_summary(report: MigrationReport) -> Table:
    table = Table(title=f"Migration to {report.target_framework}")
    table.add_column("Item")
    table.add_column("Count", justify="right")
    for key, value in report.summary().items():
        table.add_row(key.replace("_", " ").capitalize(), str(value))
    return table


def report_setup(setup: SetupResult) -> None:
    for message in setup.messages:
        style = "red" if setup.is_fatal else "yellow"
        console.print(f"{setup.status.value}: {message}", style=style)


def finish(report: MigrationReport, output: str) -> None:
    paths = write_reports(report, output)
    console.print(format_summary(report))
    for path in paths:
        console.print(f"Wrote {path}")


def build_settings(
    target: str,
    private_sources: list[str] | None,
    private_username: str | None,
    private_password: str | None,
    private_prefix: str,
    dry_run: bool,
) -> MigrationSettings:
    return MigrationSettings(
        target_framework=target,
        private_sources=list(private_sources or []),
        private_username=private_username,
        private_password=private_password,
        private_prefix=private_prefix,
        apply_changes=not dry_run,
    )


app = typer.Typer(
    name="netmigrate",
    help="netmigrate - Check NuGet packages and retarget .NET projects to a newer framework",
    add_completion=False,
)


@app.command()
def repo(
    repository_url: str = typer.Argument(help="Git URL of the .NET repository to migrate"),
    branch: str = typer.Option("master", "--branch", "-b", help="Branch to clone"),
    output: str = typer.Option("./migration-report", "--output", "-o", help="Report folder"),
    token: str | None = typer.Option(None, "--token", envvar="NETMIGRATE_TOKEN", help="Personal access token for cloning"),
    private_sources: list[str] | None = typer.Option(None, "--private-source", "-s", help="Private NuGet feed base URL (repeatable)"),
    private_username: str | None = typer.Option(None, "--private-username", envvar="NETMIGRATE_FEED_USERNAME", help="Private feed username"),
    private_password: str | None = typer.Option(None, "--private-password", envvar="NETMIGRATE_FEED_PASSWORD", help="Private feed password"),
    target: str = typer.Option(DEFAULT_TARGET_FRAMEWORK, "--target", "-t", help="Target framework moniker"),
    private_prefix: str = typer.Option(DEFAULT_PRIVATE_PREFIX, "--private-prefix", help="Package prefix routed to private feeds"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report changes without rewriting project files"),
    skip_build: bool = typer.Option(False, "--skip-build", help="Skip dotnet restore/build verification"),
    analyze: bool = typer.Option(False, "--analyze", help="Run upgrade-assistant analysis per project"),
    include_package_list: bool = typer.Option(False, "--list-packages", help="Append dotnet list package output to build results"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Clone a repository, migrate its projects and write the report."""
    configure_logging(verbose)
    settings = build_settings(
        target, private_sources, private_username, private_password, private_prefix, dry_run
    )

    setup = check_environment(require_git=True, want_build=not skip_build, want_analysis=analyze)
    report_setup(setup)
    if setup.is_fatal:
        raise typer.Exit(1)

    workspace = Path(tempfile.mkdtemp(prefix="netmigrate-"))
    try:
        clone_repository(repository_url, branch, workspace, token=token)
        report = asyncio.run(
            run_pipeline(
                settings,
                workspace,
                setup,
                repository=repository_url,
                branch=branch,
                verify=not skip_build,
                analyze=analyze,
                include_package_list=include_package_list,
            )
        )
        finish(report, output)

    except SetupError as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(1)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(1)
    finally:
        cleanup_workspace(workspace)


@app.command()
def local(
    path: str = typer.Argument(help="Local checkout containing .csproj/.fsproj files"),
    output: str = typer.Option("./migration-report", "--output", "-o", help="Report folder"),
    private_sources: list[str] | None = typer.Option(None, "--private-source", "-s", help="Private NuGet feed base URL (repeatable)"),
    private_username: str | None = typer.Option(None, "--private-username", envvar="NETMIGRATE_FEED_USERNAME", help="Private feed username"),
    private_password: str | None = typer.Option(None, "--private-password", envvar="NETMIGRATE_FEED_PASSWORD", help="Private feed password"),
    target: str = typer.Option(DEFAULT_TARGET_FRAMEWORK, "--target", "-t", help="Target framework moniker"),
    private_prefix: str = typer.Option(DEFAULT_PRIVATE_PREFIX, "--private-prefix", help="Package prefix routed to private feeds"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report changes without rewriting project files"),
    skip_build: bool = typer.Option(False, "--skip-build", help="Skip dotnet restore/build verification"),
    analyze: bool = typer.Option(False, "--analyze", help="Run upgrade-assistant analysis per project"),
    include_package_list: bool = typer.Option(False, "--list-packages", help="Append dotnet list package output to build results"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Migrate the projects of an existing checkout in place."""
    configure_logging(verbose)

    workspace = Path(path)
    if not workspace.is_dir():
        console.print(f"Error: Directory {path} not found", style="red")
        raise typer.Exit(1)

    settings = build_settings(
        target, private_sources, private_username, private_password, private_prefix, dry_run
    )
    setup = check_environment(require_git=False, want_build=not skip_build, want_analysis=analyze)
    report_setup(setup)
    if setup.is_fatal:
        raise typer.Exit(1)

    try:
        report = asyncio.run(
            run_pipeline(
                settings,
                workspace,
                setup,
                repository=str(workspace),
                verify=not skip_build,
                analyze=analyze,
                include_package_list=include_package_list,
            )
        )
        finish(report, output)

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
