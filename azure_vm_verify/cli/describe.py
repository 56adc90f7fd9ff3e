"""Read-only VM lookup command."""

import json
from typing import Optional

import typer
from azure.core.exceptions import AzureError
from rich.console import Console

from azure_vm_verify.errors import NotFoundError
from azure_vm_verify.inspector import AzureResourceInspector

console = Console()


def inspect_command(
    name: str = typer.Option(..., "--name", "-n", help="Virtual machine name"),
    resource_group: str = typer.Option(..., "--resource-group", "-g", help="Resource group name"),
    subscription_id: str = typer.Option(
        ...,
        "--subscription-id", "-s",
        envvar="AZURE_SUBSCRIPTION_ID",
        help="Azure subscription"
    ),
    retry_total: Optional[int] = typer.Option(None, "--retry-total", help="Azure SDK retry budget"),
):
    """Print the descriptor of an existing VM as JSON. Never provisions anything."""
    inspector = AzureResourceInspector(retry_total=retry_total)
    try:
        vm = inspector.describe_virtual_machine(name, resource_group, subscription_id)
    except (NotFoundError, AzureError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    console.print_json(json.dumps(vm.to_dict()))
