"""Command line interface for pinevault."""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from pinevault.backup import BackupError
from pinevault.config import ConfigError, ConfigManager, PinevaultConfig
from pinevault.enforcement import CommitEnforcer, EnforcementError
from pinevault.locking import LockError
from pinevault.organization import FileOrganizer, OrganizationError, OrganizationReport
from pinevault.rollback import RollbackManager
from pinevault.validation import lint_project

console = Console()
error_console = Console(stderr=True)

LOGGER = logging.getLogger("pinevault")


@dataclass
class CLIState:
    """Shared state handed from the ``pinevault`` group to subcommands."""

    root: Path
    verbose: bool

    def manager(self, root: Optional[Path] = None) -> ConfigManager:
        return ConfigManager(project_root=root or self.root)

    def load_config(self, root: Optional[Path] = None) -> PinevaultConfig:
        """Load configuration for ``root`` and apply its logging level.

        Raises:
            click.ClickException: If configuration cannot be loaded.
        """
        try:
            config = self.manager(root).load()
        except ConfigError as exc:
            raise click.ClickException(str(exc)) from exc
        if not self.verbose:
            LOGGER.setLevel(config.logging.level.upper())
        return config


def _configure_logging(verbose: bool) -> None:
    handler = RichHandler(console=error_console, show_path=False, rich_tracebacks=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    LOGGER.handlers = [handler]
    LOGGER.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _emit_message(message: Any, *, mode: str, quiet: bool) -> None:
    """Print ``message`` unless quiet mode hides it; errors are always shown."""
    if quiet and mode != "error":
        return
    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _rollback_manager(
    state: CLIState, config: Optional[PinevaultConfig] = None
) -> RollbackManager:
    config = config or state.load_config()
    return RollbackManager(state.root, config.backup, config.restore_checks)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="pinevault")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Project root containing scripts/, backups/, and the organized tree.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, root: Path, verbose: bool) -> None:
    """pinevault keeps an indicator-script repository backed up and organized."""
    _configure_logging(verbose)
    ctx.obj = CLIState(root=root.resolve(), verbose=verbose)


# --------------------------------------------------------------------------- #
# rollback                                                                    #
# --------------------------------------------------------------------------- #


@cli.group()
def rollback() -> None:
    """Back up, list, restore, and prune indicator script backups."""


@rollback.command("list")
@click.pass_obj
def rollback_list(state: CLIState) -> None:
    """List every backup grouped by script."""
    manager = _rollback_manager(state)
    inventory = manager.store.inventory()
    if not inventory:
        console.print(f"[yellow]No backups found in {manager.store.directory}.[/yellow]")
        return

    table = Table(title=f"Backups in {manager.store.directory}")
    table.add_column("Script")
    table.add_column("Backup", overflow="fold")
    table.add_column("Reason")
    table.add_column("Date")
    table.add_column("Size", justify="right")
    for group, records in inventory.items():
        for record in records:
            table.add_row(
                group,
                record.file_name,
                record.reason,
                record.date.strftime("%Y-%m-%d %H:%M:%S"),
                f"{record.size / 1024:.1f} KB",
            )
    console.print(table)
    total = sum(len(records) for records in inventory.values())
    console.print(
        _format_summary_line(
            "Backup inventory",
            manager.store.directory,
            {"scripts": len(inventory), "backups": total},
        )
    )


@rollback.command("backup")
@click.argument("reason", required=False, default="manual")
@click.pass_obj
def rollback_backup(state: CLIState, reason: str) -> None:
    """Back up every managed script with REASON (default: manual)."""
    manager = _rollback_manager(state)
    try:
        with manager.store.lock():
            results = manager.backup_all_scripts(reason)
    except LockError as exc:
        raise click.ClickException(str(exc)) from exc

    if not results:
        console.print(f"[yellow]No managed scripts found under {manager.scripts_dir}.[/yellow]")
        return
    for result in results:
        if result.success:
            console.print(f"[green]Backed up {result.script}[/green]")
        else:
            console.print(f"[red]Failed to back up {result.script}[/red]")
    succeeded = sum(1 for result in results if result.success)
    console.print(
        _format_summary_line(
            "Backup",
            state.root,
            {"reason": reason, "total": len(results), "succeeded": succeeded},
        )
    )


@rollback.command("restore")
@click.argument("script")
@click.option("--reason", type=str, help="Only restore from backups with this reason tag.")
@click.pass_obj
def rollback_restore(state: CLIState, script: str, reason: Optional[str]) -> None:
    """Restore SCRIPT from its newest backup and validate the result."""
    manager = _rollback_manager(state)
    try:
        with manager.store.lock():
            restored = manager.restore_from_backup(script, reason)
    except LockError as exc:
        raise click.ClickException(str(exc)) from exc
    if not restored:
        raise click.ClickException(f"Could not restore {script}; see log output for details.")

    console.print(f"[green]Restored {script}.[/green]")
    path = manager.find_script_path(script)
    if path is None:
        return
    validation = manager.validate_after_restore(path)
    if validation.valid:
        console.print("[green]Validation passed.[/green]")
    else:
        console.print(
            f"[yellow]Validation failed: {', '.join(validation.failures)}.[/yellow]"
        )


@rollback.command("emergency")
@click.argument("reason", required=False)
@click.pass_obj
def rollback_emergency(state: CLIState, reason: Optional[str]) -> None:
    """Restore every protected script from its newest REASON backup (default: pre-merge)."""
    manager = _rollback_manager(state)
    try:
        with manager.store.lock():
            results = manager.emergency_rollback_all(reason)
    except LockError as exc:
        raise click.ClickException(str(exc)) from exc

    table = Table(title="Emergency rollback")
    table.add_column("Script")
    table.add_column("Restored")
    table.add_column("Valid")
    table.add_column("Failed checks", overflow="fold")
    for result in results:
        table.add_row(
            result.script,
            "yes" if result.success else "no",
            "yes" if result.valid else "no",
            ", ".join(result.failures),
        )
    console.print(table)

    restored = sum(1 for result in results if result.success and result.valid)
    console.print(
        _format_summary_line(
            "Emergency rollback",
            state.root,
            {"total": len(results), "restored": restored, "failed": len(results) - restored},
        )
    )
    if restored != len(results):
        raise click.ClickException(
            f"{len(results) - restored} of {len(results)} protected scripts were not restored."
        )


@rollback.command("cleanup")
@click.argument("keep_count", required=False, type=int)
@click.pass_obj
def rollback_cleanup(state: CLIState, keep_count: Optional[int]) -> None:
    """Delete all but the newest KEEP_COUNT backups of each script."""
    config = state.load_config()
    manager = _rollback_manager(state, config)
    keep = config.backup.keep_count if keep_count is None else keep_count
    try:
        with manager.store.lock():
            result = manager.store.cleanup_old_backups(keep)
    except (LockError, BackupError) as exc:
        raise click.ClickException(str(exc)) from exc

    for name in result.removed:
        console.print(f"[dim]Removed {name}[/dim]")
    for error in result.errors:
        console.print(f"[red]{error}[/red]")
    console.print(
        _format_summary_line(
            "Cleanup",
            manager.store.directory,
            {"keep": keep, "kept": result.kept, "removed": len(result.removed)},
        )
    )
    if result.errors:
        raise click.ClickException(f"{len(result.errors)} backups could not be removed.")


# --------------------------------------------------------------------------- #
# organize / scan                                                             #
# --------------------------------------------------------------------------- #


def _target_root(state: CLIState, path: Optional[Path]) -> Path:
    return path.resolve() if path is not None else state.root


def _emit_report(report: OrganizationReport, root: Path, *, quiet: bool) -> None:
    for error in report.errors:
        _emit_message(f"[red]  - {error}[/red]", mode="error", quiet=quiet)
    for issue in report.compliance.issues:
        _emit_message(f"[yellow]  - {issue}[/yellow]", mode="warning", quiet=quiet)
    _emit_message(
        _format_summary_line(
            "Organization",
            root,
            {
                "scanned": report.scanned,
                "moved": report.moved,
                "archived": report.archived,
                "deleted": report.deleted,
                "created_folders": report.created_folders,
                "errors": len(report.errors),
            },
        ),
        mode="summary",
        quiet=quiet,
    )


@cli.command()
@click.argument(
    "path", required=False, type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option("--json", "json_output", is_flag=True, help="Emit the run report as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_obj
def organize(state: CLIState, path: Optional[Path], json_output: bool, quiet: bool) -> None:
    """Snapshot, classify, move, archive, and clean up files under PATH."""
    root = _target_root(state, path)
    config = state.load_config(root)
    quiet = quiet or config.cli.quiet_default
    organizer = FileOrganizer(root, config.organizer, config.backup)
    try:
        report = organizer.organize_repository()
    except LockError as exc:
        raise click.ClickException(str(exc)) from exc
    except OrganizationError as exc:
        for problem in exc.rollback_problems:
            error_console.print(f"[red]Rollback problem: {problem}[/red]")
        raise click.ClickException(str(exc)) from exc

    if json_output:
        console.print_json(data=report.model_dump(mode="json"))
        return
    _emit_report(report, root, quiet=quiet)


@cli.command()
@click.argument(
    "path", required=False, type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option("--plan", "show_plan", is_flag=True, help="Show the actions organize would take.")
@click.pass_obj
def scan(state: CLIState, path: Optional[Path], show_plan: bool) -> None:
    """Scan PATH and report how many files would be organized."""
    root = _target_root(state, path)
    config = state.load_config(root)
    organizer = FileOrganizer(root, config.organizer, config.backup)
    files = organizer.scan_repository()
    console.print(f"[cyan]Repository scan complete: {len(files)} files found.[/cyan]")
    if not show_plan:
        return

    plan = organizer.analyze_file_organization(files)
    if plan.is_empty:
        console.print("[green]Nothing to organize.[/green]")
        return
    table = Table(title=f"Organization preview for {root}")
    table.add_column("Action")
    table.add_column("File", overflow="fold")
    table.add_column("Destination", overflow="fold")
    for operation in plan.to_move:
        table.add_row("move", operation.file.relative_path, operation.target_dir)
    for operation in plan.to_archive:
        table.add_row("archive", operation.file.relative_path, operation.target_dir)
    for file in plan.to_delete:
        table.add_row("delete", file.relative_path, "")
    console.print(table)


# --------------------------------------------------------------------------- #
# enforce / lint                                                              #
# --------------------------------------------------------------------------- #


@cli.command()
@click.argument("context", required=False, default="manual_execution")
@click.pass_obj
def enforce(state: CLIState, context: str) -> None:
    """Organize the tree, then commit and push pending changes with CONTEXT."""
    config = state.load_config()
    enforcer = CommitEnforcer(state.root, config.commit)
    try:
        result = enforcer.enforce(context)
    except EnforcementError as exc:
        raise click.ClickException(str(exc)) from exc

    if result.action == "none_required":
        console.print("[green]Working directory clean; no commit needed.[/green]")
        return
    console.print(
        _format_summary_line(
            "Commit enforcement",
            state.root,
            {"action": result.action, "changes": len(result.changes), "context": context},
        )
    )


@cli.command()
@click.option("--quiet", is_flag=True, help="Only report files with errors.")
@click.pass_obj
def lint(state: CLIState, quiet: bool) -> None:
    """Lint every .pine file in the indicator, template, and example folders."""
    config = state.load_config()
    report = lint_project(state.root, config.lint.search_dirs)

    for result in report.files:
        name = result.path.relative_to(state.root).as_posix()
        if result.read_error is not None:
            console.print(f"[red]{name}: could not read file ({result.read_error})[/red]")
            continue
        if result.valid and quiet:
            continue
        status = "[green]ok[/green]" if result.valid else "[red]failed[/red]"
        console.print(f"{name}: {status}")
        for issue in result.issues:
            if quiet and issue.severity != "error":
                continue
            colour = {"error": "red", "warning": "yellow"}.get(issue.severity, "cyan")
            console.print(f"  [{colour}]{issue.severity}[/{colour}] {issue.message}")

    for problem in report.problems:
        console.print(f"[red]{problem}[/red]")
    console.print(
        _format_summary_line(
            "Lint",
            state.root,
            {
                "files": len(report.files),
                "valid": report.valid_files,
                "warnings": report.warning_count,
            },
        )
    )
    if not report.passed:
        raise click.ClickException("Validation failed due to critical errors.")


# --------------------------------------------------------------------------- #
# config                                                                      #
# --------------------------------------------------------------------------- #


@cli.group()
def config() -> None:
    """Inspect and modify the pinevault configuration."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@click.pass_obj
def config_view(state: CLIState, no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = state.manager()
    try:
        manager.ensure_exists()
        resolved = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(resolved.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
@click.pass_obj
def config_set(state: CLIState, key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY."""
    manager = state.manager()
    manager.ensure_exists()
    before = manager.read_text().splitlines()

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        manager.set_value(key, parsed_value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    after = manager.read_text().splitlines()
    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    if diff:
        console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {key}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
