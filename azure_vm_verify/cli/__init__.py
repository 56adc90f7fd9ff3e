"""Command-line interface for azure-vm-verify."""

import typer

from azure_vm_verify.cli.verify import verify_command
from azure_vm_verify.cli.describe import inspect_command

app = typer.Typer(help="Azure VM Verify - provision, verify and tear down a VM topology")

app.command(name="verify")(verify_command)
app.command(name="inspect")(inspect_command)


def main():
    """Main CLI entry point."""
    app()


__all__ = ["app", "main"]
