from typing import Dict, List, Optional

import pytest

from azure_vm_verify.config import VerificationConfig
from azure_vm_verify.errors import NotFoundError, ProvisioningError
from azure_vm_verify.inspector import ImageReference, VirtualMachineDescriptor
from azure_vm_verify.runtime import StackOutputs

SUBSCRIPTION = "00000000-1111-2222-3333-444444444444"


def nic_id(resource_group: str, nic_name: str) -> str:
    return (
        f"/subscriptions/{SUBSCRIPTION}/resourceGroups/{resource_group}"
        f"/providers/Microsoft.Network/networkInterfaces/{nic_name}"
    )


class FakeCloud:
    """In-memory resource group contents."""

    def __init__(self):
        self.vms: Dict[tuple, VirtualMachineDescriptor] = {}
        self.nics: set = set()


class FakeProvisioner:
    """Creates the topology in a FakeCloud on apply and removes it on destroy."""

    def __init__(self, cloud: FakeCloud, prefix: str = "abcd0001"):
        self.cloud = cloud
        self.outputs = StackOutputs(
            vm_name=f"{prefix}-A05-VM",
            resource_group_name=f"{prefix}-A05-RG",
            nic_name=f"{prefix}-A05-NIC",
        )
        self.image = ImageReference(
            publisher="Canonical",
            offer="0001-com-ubuntu-server-jammy",
            sku="22_04-lts-gen2",
            version="latest",
        )
        self.network_interface_ids: Optional[List[str]] = [
            nic_id(self.outputs.resource_group_name, self.outputs.nic_name)
        ]
        self.create_vm = True
        self.create_nic = True
        self.apply_error: Optional[Exception] = None
        self.destroy_error: Optional[Exception] = None
        self.calls: List[tuple] = []

    @property
    def destroy_calls(self) -> int:
        return sum(1 for call in self.calls if call[0] == "destroy")

    def apply(self, working_dir: str, variables: Dict[str, str]) -> StackOutputs:
        self.calls.append(("apply", working_dir, dict(variables)))
        if self.apply_error is not None:
            raise self.apply_error
        rg = self.outputs.resource_group_name
        if self.create_vm:
            self.cloud.vms[(rg, self.outputs.vm_name)] = VirtualMachineDescriptor(
                name=self.outputs.vm_name,
                id=f"/subscriptions/{SUBSCRIPTION}/resourceGroups/{rg}/providers/"
                   f"Microsoft.Compute/virtualMachines/{self.outputs.vm_name}",
                location="canadacentral",
                network_interface_ids=self.network_interface_ids,
                image_reference=self.image,
            )
        if self.create_nic:
            self.cloud.nics.add((rg, self.outputs.nic_name))
        return self.outputs

    def destroy(self, working_dir: str, variables: Dict[str, str]) -> None:
        self.calls.append(("destroy", working_dir, dict(variables)))
        if self.destroy_error is not None:
            raise self.destroy_error
        self.cloud.vms.clear()
        self.cloud.nics.clear()


class FakeInspector:
    """Read-only view over a FakeCloud that records every query."""

    def __init__(self, cloud: FakeCloud):
        self.cloud = cloud
        self.queries: List[tuple] = []
        self.describe_error: Optional[Exception] = None

    def describe_virtual_machine(self, name, resource_group, subscription):
        self.queries.append(("describe", name, resource_group, subscription))
        if self.describe_error is not None:
            raise self.describe_error
        try:
            return self.cloud.vms[(resource_group, name)]
        except KeyError:
            raise NotFoundError("virtual machine", name, resource_group)

    def virtual_machine_exists(self, name, resource_group, subscription):
        self.queries.append(("vm_exists", name, resource_group, subscription))
        return (resource_group, name) in self.cloud.vms

    def network_interface_exists(self, name, resource_group, subscription):
        self.queries.append(("nic_exists", name, resource_group, subscription))
        return (resource_group, name) in self.cloud.nics


@pytest.fixture
def cloud() -> FakeCloud:
    return FakeCloud()


@pytest.fixture
def provisioner(cloud) -> FakeProvisioner:
    return FakeProvisioner(cloud)


@pytest.fixture
def inspector(cloud) -> FakeInspector:
    return FakeInspector(cloud)


@pytest.fixture
def config(tmp_path) -> VerificationConfig:
    return VerificationConfig(
        working_dir=str(tmp_path),
        subscription_id=SUBSCRIPTION,
        label_prefix="abcd0001",
    )


@pytest.fixture
def provisioning_error() -> ProvisioningError:
    return ProvisioningError("apply", "Error: creating Linux Virtual Machine", "partial output")
