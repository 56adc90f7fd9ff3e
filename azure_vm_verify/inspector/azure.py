"""Azure control-plane queries for virtual machines and network interfaces."""

import logging
from typing import Any, Callable, Dict, Optional, Protocol

from azure.core.exceptions import ResourceNotFoundError
from azure.identity import DefaultAzureCredential
from azure.mgmt.compute import ComputeManagementClient
from azure.mgmt.network import NetworkManagementClient

from azure_vm_verify.errors import NotFoundError
from azure_vm_verify.inspector.models import ImageReference, VirtualMachineDescriptor

logger = logging.getLogger(__name__)


class ResourceInspector(Protocol):
    """Read-only lookups keyed by resource name, resource group and subscription."""

    def describe_virtual_machine(
        self, name: str, resource_group: str, subscription: str
    ) -> VirtualMachineDescriptor:
        ...

    def virtual_machine_exists(self, name: str, resource_group: str, subscription: str) -> bool:
        ...

    def network_interface_exists(self, name: str, resource_group: str, subscription: str) -> bool:
        ...


class AzureResourceInspector:
    """ResourceInspector backed by the Azure management SDK."""

    def __init__(
        self,
        credential: Any = None,
        retry_total: Optional[int] = None,
        compute_client_factory: Optional[Callable[[str], Any]] = None,
        network_client_factory: Optional[Callable[[str], Any]] = None,
    ):
        """
        Initialize inspector.

        Args:
            credential: Azure credential; DefaultAzureCredential is created on first use if None
            retry_total: Retry budget handed to the azure-core pipeline for transient failures
            compute_client_factory: Builds a compute client for a subscription id
            network_client_factory: Builds a network client for a subscription id
        """
        self._credential = credential
        self.retry_total = retry_total
        self._compute_client_factory = compute_client_factory or self._default_compute_client
        self._network_client_factory = network_client_factory or self._default_network_client
        self._compute_clients: Dict[str, Any] = {}
        self._network_clients: Dict[str, Any] = {}

    @property
    def credential(self) -> Any:
        if self._credential is None:
            self._credential = DefaultAzureCredential()
        return self._credential

    def _client_kwargs(self) -> Dict[str, Any]:
        if self.retry_total is None:
            return {}
        return {"retry_total": self.retry_total}

    def _default_compute_client(self, subscription: str) -> ComputeManagementClient:
        return ComputeManagementClient(self.credential, subscription, **self._client_kwargs())

    def _default_network_client(self, subscription: str) -> NetworkManagementClient:
        return NetworkManagementClient(self.credential, subscription, **self._client_kwargs())

    def compute(self, subscription: str) -> Any:
        if subscription not in self._compute_clients:
            self._compute_clients[subscription] = self._compute_client_factory(subscription)
        return self._compute_clients[subscription]

    def network(self, subscription: str) -> Any:
        if subscription not in self._network_clients:
            self._network_clients[subscription] = self._network_client_factory(subscription)
        return self._network_clients[subscription]

    def describe_virtual_machine(
        self, name: str, resource_group: str, subscription: str
    ) -> VirtualMachineDescriptor:
        """
        Fetch a VM and convert it into a descriptor.

        Raises:
            NotFoundError: if the VM does not exist
        """
        logger.debug(f"Describing VM {resource_group}/{name} in {subscription}")
        try:
            vm = self.compute(subscription).virtual_machines.get(resource_group, name)
        except ResourceNotFoundError as e:
            raise NotFoundError("virtual machine", name, resource_group) from e
        return descriptor_from_sdk(vm, fallback_name=name)

    def virtual_machine_exists(self, name: str, resource_group: str, subscription: str) -> bool:
        try:
            self.compute(subscription).virtual_machines.get(resource_group, name)
        except ResourceNotFoundError:
            return False
        return True

    def network_interface_exists(self, name: str, resource_group: str, subscription: str) -> bool:
        try:
            self.network(subscription).network_interfaces.get(resource_group, name)
        except ResourceNotFoundError:
            return False
        return True


def descriptor_from_sdk(vm: Any, fallback_name: str = "") -> VirtualMachineDescriptor:
    """
    Convert an SDK VirtualMachine model into a descriptor.

    Absent network or storage profiles are kept as None so callers can report
    them instead of failing on attribute access.
    """
    nic_ids = None
    network_profile = getattr(vm, "network_profile", None)
    if network_profile is not None and network_profile.network_interfaces is not None:
        nic_ids = [ref.id for ref in network_profile.network_interfaces if ref.id]

    image = None
    storage_profile = getattr(vm, "storage_profile", None)
    if storage_profile is not None and storage_profile.image_reference is not None:
        ref = storage_profile.image_reference
        image = ImageReference(
            publisher=ref.publisher,
            offer=ref.offer,
            sku=ref.sku,
            version=ref.version,
        )

    return VirtualMachineDescriptor(
        name=getattr(vm, "name", None) or fallback_name,
        id=getattr(vm, "id", None),
        location=getattr(vm, "location", None),
        network_interface_ids=nic_ids,
        image_reference=image,
    )
