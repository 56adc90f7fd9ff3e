"""The provision, verify, destroy workflow for a single VM topology."""

import logging
import time
from typing import Callable, List, Optional

from azure_vm_verify.config import ExpectedTopology, VerificationConfig
from azure_vm_verify.errors import (
    AssertionMismatch,
    AttachmentMismatch,
    FailureKind,
    MalformedDescriptor,
    NotFoundError,
    ResourceMissing,
    VerificationError,
)
from azure_vm_verify.inspector import AzureResourceInspector, ImageReference, VirtualMachineDescriptor
from azure_vm_verify.logging import Logger, NullLogger
from azure_vm_verify.runtime import ProvisionedStack, StackOutputs, TerraformProvisioner
from azure_vm_verify.verification.results import (
    CheckResult,
    CheckStatus,
    RunState,
    VerificationReport,
)

logger = logging.getLogger(__name__)

IMAGE_FIELDS = ("publisher", "offer", "sku")


def check_names(verify_image_version: bool = False) -> List[str]:
    """Checks in the order they run."""
    names = [
        "vm_exists",
        "nic_exists",
        "vm_network_profile",
        "nic_attached",
        "vm_image_reference",
    ]
    names.extend(f"image_{f}" for f in IMAGE_FIELDS)
    if verify_image_version:
        names.append("image_version")
    return names


def check_attachment(vm: VirtualMachineDescriptor, nic_name: str) -> str:
    """
    Return the first NIC reference whose id contains nic_name.

    Azure ids end with the resource name, e.g.
    ``/subscriptions/S/resourceGroups/R/providers/Microsoft.Network/networkInterfaces/myNic``.

    Raises:
        MalformedDescriptor: if the VM reports no network interface list
        AttachmentMismatch: if no reference matches
    """
    if vm.network_interface_ids is None:
        raise MalformedDescriptor(vm.name, "networkProfile.networkInterfaces")
    for nic_id in vm.network_interface_ids:
        if nic_name in nic_id:
            return nic_id
    raise AttachmentMismatch(nic_name, vm.name, vm.network_interface_ids)


def require_image_reference(vm: VirtualMachineDescriptor) -> ImageReference:
    if vm.image_reference is None:
        raise MalformedDescriptor(vm.name, "storageProfile.imageReference")
    return vm.image_reference


def compare_image(
    image: ImageReference,
    expected: ExpectedTopology,
    verify_version: bool = False,
) -> List[CheckResult]:
    """Compare every image field; one result per field, mismatches never stop the others."""
    fields = list(IMAGE_FIELDS)
    if verify_version:
        fields.append("version")

    results = []
    for name in fields:
        want = getattr(expected, name)
        got = getattr(image, name)
        if got == want:
            results.append(CheckResult(
                name=f"image_{name}",
                status=CheckStatus.PASSED,
                message=f"{name} is {got!r}",
                expected=want,
                actual=got,
            ))
        else:
            mismatch = AssertionMismatch(name, want, got)
            results.append(CheckResult(
                name=f"image_{name}",
                status=CheckStatus.FAILED,
                message=str(mismatch),
                kind=mismatch.kind,
                expected=want,
                actual=got,
            ))
    return results


class _ShortCircuit(Exception):
    """Stops the remaining checks after a failed assertion."""


class VerificationSequence:
    """Provisions the stack, runs the fixed assertion list, and always tears down."""

    def __init__(
        self,
        provisioner,
        inspector,
        config: VerificationConfig,
        event_logger: Optional[Logger] = None,
    ):
        """
        Initialize sequence.

        Args:
            provisioner: Object with apply(working_dir, variables) and destroy(working_dir, variables)
            inspector: ResourceInspector used for the read-only phase
            config: Subscription, expected topology and terraform inputs
            event_logger: Event logger for progress reporting
        """
        self.provisioner = provisioner
        self.inspector = inspector
        self.config = config
        self.events = event_logger or NullLogger()

    def run(self) -> VerificationReport:
        """
        Execute the workflow.

        Failures of the verification taxonomy and unexpected errors are
        recorded on the report rather than raised. Destroy runs exactly once
        whenever apply was attempted.
        """
        report = VerificationReport()
        start = time.monotonic()
        self.events.info("run.started", f"Working directory: {self.config.working_dir}")

        stack = ProvisionedStack(
            self.provisioner,
            self.config.working_dir,
            self.config.terraform_variables(),
            event_logger=self.events,
        )

        try:
            with stack as outputs:
                report.outputs = outputs
                report.state = RunState.PROVISIONED
                self._verify(outputs, report)
                if report.error is None:
                    report.state = RunState.VERIFIED
        except VerificationError as e:
            self._record_error(report, e, e.kind)
        except Exception as e:
            logger.exception("Unexpected error during verification")
            self._record_error(report, e, FailureKind.UNEXPECTED_ERROR)

        if report.outputs is None:
            for name in check_names(self.config.verify_image_version):
                self._add(report, CheckResult(
                    name=name,
                    status=CheckStatus.SKIPPED,
                    message="Skipped because the stack was not provisioned",
                ))

        if stack.destroyed:
            report.state = RunState.DESTROYED
        if stack.teardown_error is not None:
            report.teardown_error = str(stack.teardown_error)

        report.duration_seconds = time.monotonic() - start
        summary = f"{len(report.checks) - len(report.failures)}/{len(report.checks)} checks passed"
        self.events.info("run.completed", summary, {"passed": report.passed})
        return report

    def _verify(self, outputs: StackOutputs, report: VerificationReport) -> None:
        subscription = self.config.subscription_id
        expected = self.config.expected
        verify_version = self.config.verify_image_version
        vm: Optional[VirtualMachineDescriptor] = None

        def describe() -> str:
            nonlocal vm
            try:
                vm = self.inspector.describe_virtual_machine(
                    outputs.vm_name, outputs.resource_group_name, subscription
                )
            except NotFoundError as e:
                raise ResourceMissing("vm", outputs.vm_name, outputs.resource_group_name) from e
            if vm.network_interface_ids is None:
                raise MalformedDescriptor(vm.name, "networkProfile.networkInterfaces")
            return f"VM reports {len(vm.network_interface_ids)} network interface(s)"

        def attached() -> str:
            nic_id = check_attachment(vm, outputs.nic_name)
            return f"NIC '{outputs.nic_name}' attached as {nic_id}"

        def image_present() -> str:
            require_image_reference(vm)
            return "VM reports an image reference"

        steps = [
            ("vm_exists", lambda: self._require_exists(
                "vm", self.inspector.virtual_machine_exists,
                outputs.vm_name, outputs.resource_group_name,
            )),
            ("nic_exists", lambda: self._require_exists(
                "nic", self.inspector.network_interface_exists,
                outputs.nic_name, outputs.resource_group_name,
            )),
            ("vm_network_profile", describe),
            ("nic_attached", attached),
            ("vm_image_reference", image_present),
        ]

        remaining = check_names(verify_version)
        try:
            for name, step in steps:
                remaining.remove(name)
                self._run_check(report, name, step)

            for result in compare_image(vm.image_reference, expected, verify_version):
                remaining.remove(result.name)
                self._add(report, result)
        except _ShortCircuit:
            for name in remaining:
                self._add(report, CheckResult(
                    name=name,
                    status=CheckStatus.SKIPPED,
                    message="Skipped due to previous check failure",
                ))

    def _require_exists(
        self,
        resource: str,
        exists: Callable[[str, str, str], bool],
        name: str,
        resource_group: str,
    ) -> str:
        if not exists(name, resource_group, self.config.subscription_id):
            raise ResourceMissing(resource, name, resource_group)
        return f"{resource} '{name}' exists in '{resource_group}'"

    def _run_check(self, report: VerificationReport, name: str, step: Callable[[], str]) -> None:
        try:
            message = step()
        except VerificationError as e:
            status = CheckStatus.ERROR if e.fatal else CheckStatus.FAILED
            self._add(report, CheckResult(name=name, status=status, message=str(e), kind=e.kind))
            if e.fatal:
                report.error = str(e)
                report.error_kind = e.kind
            raise _ShortCircuit() from e
        except Exception as e:
            logger.exception("Unexpected error in check %s", name)
            kind = FailureKind.UNEXPECTED_ERROR
            self._add(report, CheckResult(name=name, status=CheckStatus.ERROR, message=str(e), kind=kind))
            self._record_error(report, e, kind)
            raise _ShortCircuit() from e
        self._add(report, CheckResult(name=name, status=CheckStatus.PASSED, message=message))

    def _add(self, report: VerificationReport, result: CheckResult) -> None:
        report.checks.append(result)
        data = {"check": result.name}
        if result.status == CheckStatus.FAILED and result.expected is not None:
            data.update(expected=result.expected, actual=result.actual)
        if result.status == CheckStatus.PASSED:
            self.events.info("check.passed", result.message, data)
        elif result.status == CheckStatus.SKIPPED:
            self.events.debug("check.skipped", f"{result.name} skipped", data)
        else:
            self.events.error("check.failed", result.message, data)

    def _record_error(self, report: VerificationReport, error: Exception, kind: FailureKind) -> None:
        report.error = str(error)
        report.error_kind = kind
        self.events.error("run.error", str(error), {"kind": kind.value})


def verify_stack(
    config: VerificationConfig,
    provisioner=None,
    inspector=None,
    event_logger: Optional[Logger] = None,
) -> VerificationReport:
    """
    Run the full workflow with collaborators built from config when not supplied.

    Args:
        config: Verification configuration
        provisioner: Overrides the default TerraformProvisioner
        inspector: Overrides the default AzureResourceInspector
        event_logger: Event logger for progress reporting

    Returns:
        VerificationReport for the run
    """
    if provisioner is None:
        provisioner = TerraformProvisioner(
            env_overrides=config.environment_overrides(),
            timeout=config.command_timeout,
            event_logger=event_logger,
        )
    if inspector is None:
        inspector = AzureResourceInspector(retry_total=config.retry_total)

    return VerificationSequence(provisioner, inspector, config, event_logger).run()
