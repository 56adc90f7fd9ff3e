"""CLI command for running the provision, verify, destroy workflow."""

import json
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from azure_vm_verify.config import VerificationConfig
from azure_vm_verify.errors import ConfigurationError
from azure_vm_verify.logging import CompositeLogger, ConsoleLogger, FileLogger, LogLevel
from azure_vm_verify.verification import CheckStatus, VerificationReport, verify_stack

console = Console()

STATUS_STYLE = {
    CheckStatus.PASSED: "[green]✓ PASSED[/green]",
    CheckStatus.FAILED: "[red]✗ FAILED[/red]",
    CheckStatus.ERROR: "[red]! ERROR[/red]",
    CheckStatus.SKIPPED: "[dim]- SKIPPED[/dim]",
}


def parse_vars(pairs: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated key=value options."""
    variables = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ConfigurationError(f"Expected key=value, got: {pair}")
        variables[key] = value
    return variables


def build_config(
    config_file: Optional[str],
    overrides: Dict,
) -> VerificationConfig:
    if config_file:
        return VerificationConfig.from_file(config_file, **overrides)
    return VerificationConfig.from_dict({}, **overrides)


def render_report(report: VerificationReport) -> None:
    """Print the checks table and overall status."""
    table = Table(title="Verification Checks", box=box.ROUNDED)
    table.add_column("Check", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Details", style="dim")

    for check in report.checks:
        table.add_row(check.name, STATUS_STYLE[check.status], escape(check.message))

    console.print(table)

    if report.outputs:
        outputs = report.outputs
        console.print(
            f"VM [bold]{outputs.vm_name}[/bold], NIC [bold]{outputs.nic_name}[/bold] "
            f"in resource group [bold]{outputs.resource_group_name}[/bold]"
        )
    if report.error:
        console.print(f"[red]Error ({report.error_kind.value}): {escape(report.error)}[/red]")
    if report.teardown_error:
        console.print(f"[yellow]Teardown failed: {escape(report.teardown_error)}[/yellow]")

    status = "[green]PASSED[/green]" if report.passed else "[red]FAILED[/red]"
    console.print(f"\nRun {status} (state: {report.state.value}, {report.duration_seconds:.1f}s)")


def verify_command(
    working_dir: Optional[str] = typer.Option(
        None,
        "--working-dir", "-w",
        help="Directory holding the Terraform definitions"
    ),
    subscription_id: Optional[str] = typer.Option(
        None,
        "--subscription-id", "-s",
        envvar="AZURE_SUBSCRIPTION_ID",
        help="Azure subscription to inspect"
    ),
    label_prefix: Optional[str] = typer.Option(
        None,
        "--label-prefix", "-l",
        help="Naming prefix passed to Terraform"
    ),
    variables: Optional[List[str]] = typer.Option(
        None,
        "--var",
        help="Extra Terraform variable as key=value (can be specified multiple times)"
    ),
    path_prepend: Optional[List[str]] = typer.Option(
        None,
        "--path-prepend",
        help="Directory to prepend to PATH for Terraform, e.g. the Azure CLI bin dir"
    ),
    config_file: Optional[str] = typer.Option(
        None,
        "--config", "-c",
        help="JSON configuration file; command-line options take precedence"
    ),
    verify_image_version: Optional[bool] = typer.Option(
        None,
        "--verify-image-version/--no-verify-image-version",
        help="Also compare the image version (overrides the config file)"
    ),
    expected_publisher: Optional[str] = typer.Option(None, "--expected-publisher"),
    expected_offer: Optional[str] = typer.Option(None, "--expected-offer"),
    expected_sku: Optional[str] = typer.Option(None, "--expected-sku"),
    expected_version: Optional[str] = typer.Option(None, "--expected-version"),
    output: Optional[str] = typer.Option(
        None,
        "--output", "-o",
        help="Write the JSON report to this path"
    ),
    log_file: Optional[str] = typer.Option(
        None,
        "--log-file",
        help="Append JSON-lines events to this file"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show debug events"
    ),
):
    """
    Provision the stack, verify the VM topology, and always destroy it.

    Examples:

        # Verify the bundled example stack
        azure-vm-verify verify -w examples/azure_webserver -s <subscription> -l abc00001

        # Make the Azure CLI discoverable for Terraform without touching your shell PATH
        azure-vm-verify verify -c verify.json --path-prepend "/opt/az/bin"
    """
    try:
        expected = {
            key: value
            for key, value in {
                "publisher": expected_publisher,
                "offer": expected_offer,
                "sku": expected_sku,
                "version": expected_version,
            }.items()
            if value is not None
        }
        overrides = {
            "working_dir": working_dir,
            "subscription_id": subscription_id,
            "label_prefix": label_prefix,
            "variables": parse_vars(variables) or None,
            "path_prepend": path_prepend or None,
            "verify_image_version": verify_image_version,
            "expected": expected or None,
        }
        config = build_config(config_file, overrides)
    except ConfigurationError as e:
        typer.echo(f"Error: invalid configuration: {e}", err=True)
        raise typer.Exit(code=2)

    min_level = LogLevel.DEBUG if verbose else LogLevel.INFO
    loggers = [ConsoleLogger(min_level=min_level)]
    if log_file:
        loggers.append(FileLogger(log_file, min_level=min_level))
    event_logger = CompositeLogger(loggers) if len(loggers) > 1 else loggers[0]

    report = verify_stack(config, event_logger=event_logger)
    render_report(report)

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(report.to_dict(), indent=2))
        console.print(f"Report written to {output_path}")

    if not report.passed:
        raise typer.Exit(code=1)
