"""Runtime module for Terraform operations."""

from .terraform import TerraformRuntime
from .provisioner import (
    StackOutputs,
    TerraformProvisioner,
    ProvisionedStack,
    REQUIRED_OUTPUTS,
)

__all__ = [
    'TerraformRuntime',
    'StackOutputs',
    'TerraformProvisioner',
    'ProvisionedStack',
    'REQUIRED_OUTPUTS',
]
