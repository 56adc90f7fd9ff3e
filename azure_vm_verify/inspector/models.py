"""Read-only descriptors of provider-reported resource state."""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ImageReference:
    """Marketplace image a VM was created from. Any field may be unreported."""
    publisher: Optional[str] = None
    offer: Optional[str] = None
    sku: Optional[str] = None
    version: Optional[str] = None


@dataclass(frozen=True)
class VirtualMachineDescriptor:
    """Snapshot of one virtual machine at query time."""
    name: str
    id: Optional[str] = None
    location: Optional[str] = None
    # None when the VM reports no network profile or interface list
    network_interface_ids: Optional[List[str]] = None
    # None when the VM reports no storage profile or image reference
    image_reference: Optional[ImageReference] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
