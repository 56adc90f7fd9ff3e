"""Provisioner adapter: brings a Terraform stack up and down."""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Mapping, Any

from azure_vm_verify.errors import ProvisioningError
from azure_vm_verify.logging import Logger, NullLogger
from azure_vm_verify.runtime.terraform import TerraformRuntime

logger = logging.getLogger(__name__)

REQUIRED_OUTPUTS = ("vm_name", "resource_group_name", "nic_name")


@dataclass(frozen=True)
class StackOutputs:
    """Named outputs of a provisioned stack."""
    vm_name: str
    resource_group_name: str
    nic_name: str

    @classmethod
    def from_outputs(cls, outputs: Mapping[str, Any]) -> 'StackOutputs':
        """Build from terraform outputs, failing on any missing or empty value."""
        missing = [name for name in REQUIRED_OUTPUTS if not outputs.get(name)]
        if missing:
            raise ProvisioningError(
                "output",
                f"missing required output(s): {', '.join(missing)}",
            )
        return cls(**{name: str(outputs[name]) for name in REQUIRED_OUTPUTS})

    def to_dict(self) -> Dict[str, str]:
        return {
            "vm_name": self.vm_name,
            "resource_group_name": self.resource_group_name,
            "nic_name": self.nic_name,
        }


class TerraformProvisioner:
    """Applies and destroys a stack through the terraform CLI."""

    def __init__(
        self,
        env_overrides: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
        runtime_factory: Callable[..., TerraformRuntime] = TerraformRuntime,
        event_logger: Optional[Logger] = None,
    ):
        """
        Initialize provisioner.

        Args:
            env_overrides: Environment overlay for terraform (e.g. PATH with the Azure CLI)
            timeout: Per-command timeout in seconds; None waits indefinitely
            runtime_factory: Builds a TerraformRuntime for a working directory
            event_logger: Event logger for progress reporting
        """
        self.env_overrides = dict(env_overrides or {})
        self.timeout = timeout
        self.runtime_factory = runtime_factory
        self.events = event_logger or NullLogger()

    def _runtime(self, working_dir: str) -> TerraformRuntime:
        return self.runtime_factory(
            working_dir,
            env_overrides=self.env_overrides,
            timeout=self.timeout,
        )

    def apply(self, working_dir: str, variables: Dict[str, str]) -> StackOutputs:
        """
        Run init and apply, then read the stack outputs.

        Raises:
            ProvisioningError: if any terraform step fails or an output is missing
        """
        runtime = self._runtime(working_dir)

        init_result = runtime.init()
        self._record("init", init_result)
        _raise_on_failure("init", init_result)

        apply_result = runtime.apply(variables)
        self._record("apply", apply_result)
        _raise_on_failure("apply", apply_result)

        output_result = runtime.output()
        self._record("output", output_result)
        _raise_on_failure("output", output_result)

        outputs = StackOutputs.from_outputs(output_result.get('outputs', {}))
        logger.info(f"Stack outputs: {outputs.to_dict()}")
        return outputs

    def destroy(self, working_dir: str, variables: Dict[str, str]) -> None:
        """
        Destroy the stack.

        Raises:
            ProvisioningError: if terraform destroy fails
        """
        runtime = self._runtime(working_dir)
        destroy_result = runtime.destroy(variables)
        self._record("destroy", destroy_result)
        _raise_on_failure("destroy", destroy_result)

    def _record(self, stage: str, result: Dict[str, Any]) -> None:
        data = {
            "stage": stage,
            "success": result['success'],
            "duration_seconds": result.get('duration_seconds', 0.0),
        }
        if result['success']:
            self.events.info(f"terraform.{stage}", f"terraform {stage} succeeded", data)
        else:
            self.events.error(f"terraform.{stage}", f"terraform {stage} failed", data)
            logger.debug(f"terraform {stage} stderr:\n{result.get('stderr', '')}")


def _raise_on_failure(stage: str, result: Dict[str, Any]) -> None:
    if result['success']:
        return
    output = result.get('stdout', '')
    if result.get('stderr'):
        output = f"{output}\n{result['stderr']}" if output else result['stderr']
    message = (result.get('stderr') or '').strip().splitlines()
    raise ProvisioningError(
        stage,
        message[-1] if message else f"exit code {result['returncode']}",
        output,
    )


class ProvisionedStack:
    """
    Scoped ownership of a live stack.

    Entering applies the stack and yields its outputs; leaving destroys it
    exactly once. If apply fails, destroy is attempted before the error
    propagates, since a partial apply may already have created resources.
    A destroy failure is kept on ``teardown_error`` and never replaces an
    exception already propagating out of the block.
    """

    def __init__(self, provisioner, working_dir: str, variables: Dict[str, str], event_logger: Optional[Logger] = None):
        self.provisioner = provisioner
        self.working_dir = working_dir
        self.variables = dict(variables)
        self.events = event_logger or NullLogger()
        self.outputs: Optional[StackOutputs] = None
        self.destroyed = False
        self.teardown_error: Optional[Exception] = None

    def __enter__(self) -> StackOutputs:
        try:
            self.outputs = self.provisioner.apply(self.working_dir, self.variables)
        except BaseException:
            self.release()
            raise
        return self.outputs

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False

    def release(self) -> None:
        """Destroy the stack if that has not happened yet."""
        if self.destroyed:
            return
        self.destroyed = True
        try:
            self.provisioner.destroy(self.working_dir, self.variables)
        except Exception as e:
            self.teardown_error = e
            self.events.error("teardown.failed", str(e))
            logger.error(f"Teardown failed for {self.working_dir}: {e}")
        else:
            self.events.info("teardown.completed", "Stack destroyed")
