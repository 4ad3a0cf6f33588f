"""Main CLI entry point using Typer."""

import logging
import signal
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..aws.client import BotoClientFactory
from ..aws.credentials import CredentialValidationError, validate_credentials
from ..registry.aws_types import build_default_registry
from ..sweep.audit import AuditSink, AuditStorage
from ..sweep.destroyer import BotoDestroyer
from ..sweep.errors import ConfigError
from ..sweep.invoker import OperationInvoker
from ..sweep.orchestrator import SweepOrchestrator
from ..sweep.reporter import SweepReporter
from ..sweep.rules import load_match_rules
from ..utils.logging import setup_logging
from .config import Config

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="awssweep",
    help="AWS Resource Sweeper - delete AWS resources matched by a YAML configuration",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None


@app.callback()
def main(
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    region: Optional[str] = typer.Option(None, "--region", "-r", help="AWS region (overrides profile/env settings)"),
    audit_dir: Optional[str] = typer.Option(
        None,
        "--audit-dir",
        help="Directory for the run history (default: ~/.awssweep/audit-logs or $AWSSWEEP_AUDIT_DIR)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """AWS Resource Sweeper - delete AWS resources matched by a YAML configuration."""
    global config

    # Load configuration
    try:
        config = Config.load()
    except ConfigError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)

    # Override with CLI options
    if profile:
        config.aws_profile = profile
    if region:
        config.region = region
    if audit_dir:
        config.audit_dir = audit_dir

    # Setup logging
    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose)

    # Disable colors if requested
    if no_color:
        console.no_color = True


@app.command()
def version():
    """Show version information."""
    import boto3

    from .. import __version__

    console.print(f"aws-resource-sweeper version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")
    console.print(f"boto3 {boto3.__version__}")


@app.command()
def types():
    """List supported resource types and the dependents deleted with them."""
    registry = build_default_registry()

    table = Table(title="Supported resource types")
    table.add_column("Resource type", style="bold cyan")
    table.add_column("Description")
    table.add_column("Deletes first")

    for type_name in registry.top_level_types():
        descriptor = registry.lookup(type_name)
        dependents = [name for name in registry.deletion_order(type_name) if name != type_name]
        table.add_row(type_name, descriptor.description, ", ".join(dependents))

    console.print(table)


@app.command()
def wipe(
    config_file: Path = typer.Argument(..., help="YAML file describing which resources to delete"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Don't delete anything, just show what would happen"),
    force: bool = typer.Option(False, "--force", "-f", help="Start deleting without asking for confirmation"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the audit report to this YAML file"),
):
    """Delete AWS resources matched by a YAML configuration.

    Each top-level key of the configuration is a resource type; its value
    selects resources by id patterns and/or tag patterns. A type listed with
    no criteria is swept completely. Types not listed are never touched.

    Examples:
        # Show what would be deleted
        awssweep wipe sweep.yaml --dry-run

        # Delete without confirmation and keep a report
        awssweep wipe sweep.yaml --force --output swept.yaml
    """
    # Configuration errors are fatal before any remote call
    try:
        rules = load_match_rules(config_file)
    except ConfigError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)

    if not rules:
        console.print("Nothing configured to sweep.", style="yellow")
        return

    try:
        identity = validate_credentials(config.aws_profile, config.region)
    except CredentialValidationError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=2)

    console.print(f"✓ Authenticated for account: {identity['account_id']}", style="green")

    try:
        client_factory = BotoClientFactory(aws_profile=config.aws_profile, region=config.region)
        sink = AuditSink()
        orchestrator = SweepOrchestrator(
            registry=build_default_registry(),
            invoker=OperationInvoker(client_factory),
            destroyer=BotoDestroyer(client_factory),
            audit_sink=sink,
        )
        reporter = SweepReporter()
        run_args = {
            "aws_profile": config.aws_profile,
            "region": config.region,
            "account_id": identity["account_id"],
        }

        # The confirmed plans are executed as shown, without listing again
        plans = None
        if not dry_run and not force:
            plans = orchestrator.plan_all(rules)
            preview = orchestrator.run(rules, dry_run=True, plans=plans, **run_args)
            console.print(reporter.format_records(sink.records, title="Resources to delete"))

            if preview.would_delete_count == 0:
                console.print("Nothing to delete.", style="green")
                return

            if not typer.confirm(f"Delete {preview.would_delete_count} resource(s)?"):
                console.print("Aborted, nothing was deleted.", style="yellow")
                raise typer.Exit(code=1)

            sink.clear()

        previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: orchestrator.request_stop())
        try:
            operation = orchestrator.run(rules, dry_run=dry_run, plans=plans, **run_args)
        finally:
            signal.signal(signal.SIGINT, previous_handler)

        console.print(reporter.format_records(sink.records))
        console.print(reporter.format_summary(operation))

        if operation.stopped:
            console.print("⚠ Sweep stopped early; re-run to finish.", style="yellow")

        storage = AuditStorage(config.audit_dir)
        if output:
            storage.write(operation, sink.records, output)
            console.print(f"✓ Wrote report to: [cyan]{output}[/cyan]")
        if not dry_run:
            storage.log_operation(operation, sink.records)

        if dry_run:
            console.print(f"\nDry run: {operation.would_delete_count} resource(s) would be deleted.")
        else:
            console.print(
                f"\n{operation.deleted_count} deleted, {operation.failed_count} failed, "
                f"{operation.skipped_count} skipped ({operation.status.value})"
            )

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"✗ Error during sweep: {e}", style="bold red")
        logger.exception("Error in wipe command")
        raise typer.Exit(code=2)


@app.command()
def history(
    since: Optional[str] = typer.Option(None, "--since", help="Only runs on or after this date (YYYY-MM-DD)"),
    operation_id: Optional[str] = typer.Option(None, "--operation", help="Show the records of one run"),
):
    """Show previous sweep runs."""
    storage = AuditStorage(config.audit_dir)

    if operation_id:
        report = storage.get_operation(operation_id)
        if report is None:
            console.print(f"✗ Run not found: {operation_id}", style="bold red")
            raise typer.Exit(code=1)

        table = Table(title=f"Run {operation_id}")
        table.add_column("Type", style="bold")
        table.add_column("ID")
        table.add_column("Outcome")
        for record in report["records"]:
            table.add_row(record["type"], record["id"], record["outcome"])
        console.print(table)
        return

    since_date = None
    if since:
        try:
            since_date = datetime.strptime(since, "%Y-%m-%d")
        except ValueError:
            console.print(f"✗ Invalid date: {since}. Use YYYY-MM-DD", style="bold red")
            raise typer.Exit(code=1)

    reports = storage.query_operations(since=since_date)
    if not reports:
        console.print("No sweep runs recorded.")
        return

    table = Table(title="Sweep history")
    table.add_column("Operation", style="cyan")
    table.add_column("Timestamp")
    table.add_column("Status")
    table.add_column("Deleted", justify="right")
    table.add_column("Failed", justify="right")
    for report in reports:
        op = report["operation"]
        table.add_row(op["operation_id"], op["timestamp"], op["status"], str(op["deleted_count"]), str(op["failed_count"]))
    console.print(table)


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
