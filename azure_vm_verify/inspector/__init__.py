"""Read-only cloud resource inspection."""

from .models import ImageReference, VirtualMachineDescriptor
from .azure import AzureResourceInspector, ResourceInspector, descriptor_from_sdk

__all__ = [
    'ImageReference',
    'VirtualMachineDescriptor',
    'AzureResourceInspector',
    'ResourceInspector',
    'descriptor_from_sdk',
]
