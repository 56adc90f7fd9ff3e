"""Exception taxonomy for verification runs."""

from enum import Enum
from typing import List, Optional


class FailureKind(str, Enum):
    """Category of a verification failure."""
    PROVISIONING_ERROR = "provisioning_error"
    RESOURCE_MISSING = "resource_missing"
    ATTACHMENT_MISMATCH = "attachment_mismatch"
    MALFORMED_DESCRIPTOR = "malformed_descriptor"
    ASSERTION_MISMATCH = "assertion_mismatch"
    UNEXPECTED_ERROR = "unexpected_error"


class VerificationError(Exception):
    """Base class for all verification failures."""

    kind = FailureKind.UNEXPECTED_ERROR
    fatal = False


class ProvisioningError(VerificationError):
    """Terraform apply, output or destroy failed."""

    kind = FailureKind.PROVISIONING_ERROR
    fatal = True

    def __init__(self, stage: str, message: str, output: str = ""):
        self.stage = stage
        self.output = output
        super().__init__(f"terraform {stage} failed: {message}")


class ResourceMissing(VerificationError):
    """An expected resource is absent from the resource group."""

    kind = FailureKind.RESOURCE_MISSING

    def __init__(self, resource: str, name: str, resource_group: str):
        self.resource = resource
        self.name = name
        self.resource_group = resource_group
        super().__init__(
            f"Expected {resource} '{name}' to exist in resource group '{resource_group}'"
        )


class AttachmentMismatch(VerificationError):
    """The network interface is not referenced by the virtual machine."""

    kind = FailureKind.ATTACHMENT_MISMATCH

    def __init__(self, nic_name: str, vm_name: str, attached_ids: Optional[List[str]] = None):
        self.nic_name = nic_name
        self.vm_name = vm_name
        self.attached_ids = list(attached_ids or [])
        super().__init__(f"Expected NIC '{nic_name}' to be attached to VM '{vm_name}'")


class MalformedDescriptor(VerificationError):
    """The provider returned a VM shape that cannot be reasoned about."""

    kind = FailureKind.MALFORMED_DESCRIPTOR
    fatal = True

    def __init__(self, vm_name: str, missing: str):
        self.vm_name = vm_name
        self.missing = missing
        super().__init__(f"VM '{vm_name}' is missing {missing}")


class AssertionMismatch(VerificationError):
    """A compared field differs from its expected value."""

    kind = FailureKind.ASSERTION_MISMATCH

    def __init__(self, field: str, expected: Optional[str], actual: Optional[str]):
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(f"Unexpected {field}: expected {expected!r}, got {actual!r}")


class NotFoundError(Exception):
    """Raised by an inspector when a queried resource does not exist."""

    def __init__(self, resource: str, name: str, resource_group: str):
        self.resource = resource
        self.name = name
        self.resource_group = resource_group
        super().__init__(f"{resource} '{name}' not found in resource group '{resource_group}'")


class ConfigurationError(Exception):
    """Invalid configuration file or options."""
