import json
from pathlib import Path

from azure.core.exceptions import ClientAuthenticationError
from typer.testing import CliRunner

from azure_vm_verify.cli import app
from azure_vm_verify.cli import describe as describe_module
from azure_vm_verify.cli import verify as verify_module
from azure_vm_verify.cli.verify import parse_vars
from azure_vm_verify.errors import NotFoundError
from azure_vm_verify.inspector import ImageReference, VirtualMachineDescriptor
from azure_vm_verify.runtime import StackOutputs
from azure_vm_verify.verification import CheckResult, CheckStatus, RunState, VerificationReport

runner = CliRunner()


def _report(passed: bool) -> VerificationReport:
    status = CheckStatus.PASSED if passed else CheckStatus.FAILED
    return VerificationReport(
        outputs=StackOutputs(vm_name="p-A05-VM", resource_group_name="p-A05-RG", nic_name="p-A05-NIC"),
        checks=[
            CheckResult(name="vm_exists", status=CheckStatus.PASSED, message="vm exists"),
            CheckResult(name="image_offer", status=status, message="offer"),
        ],
        state=RunState.DESTROYED,
    )


def _capture_verify(monkeypatch, report):
    seen = {}

    def fake_verify_stack(config, event_logger=None):
        seen["config"] = config
        return report

    monkeypatch.setattr(verify_module, "verify_stack", fake_verify_stack)
    return seen


def test_verify_builds_config_from_options(monkeypatch, tmp_path: Path):
    seen = _capture_verify(monkeypatch, _report(passed=True))
    output = tmp_path / "out" / "report.json"

    result = runner.invoke(app, [
        "verify",
        "--working-dir", str(tmp_path),
        "--subscription-id", "sub-123",
        "--label-prefix", "yao00043",
        "--var", "region=eastus",
        "--path-prepend", "/opt/az/bin",
        "--expected-sku", "22_04-lts",
        "--verify-image-version",
        "--output", str(output),
    ])

    assert result.exit_code == 0, result.output
    config = seen["config"]
    assert config.subscription_id == "sub-123"
    assert config.terraform_variables() == {"region": "eastus", "labelPrefix": "yao00043"}
    assert config.path_prepend == ["/opt/az/bin"]
    assert config.expected.sku == "22_04-lts"
    assert config.expected.publisher == "Canonical"
    assert config.verify_image_version is True

    data = json.loads(output.read_text())
    assert data["passed"] is True
    assert data["outputs"]["vm_name"] == "p-A05-VM"


def test_verify_reads_subscription_from_environment(monkeypatch, tmp_path: Path):
    seen = _capture_verify(monkeypatch, _report(passed=True))
    monkeypatch.setenv("AZURE_SUBSCRIPTION_ID", "env-sub")

    result = runner.invoke(app, ["verify", "-w", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert seen["config"].subscription_id == "env-sub"


def test_verify_exit_code_on_failed_report(monkeypatch, tmp_path: Path):
    _capture_verify(monkeypatch, _report(passed=False))

    result = runner.invoke(app, ["verify", "-w", str(tmp_path), "-s", "sub"])

    assert result.exit_code == 1
    assert "FAILED" in result.output


def test_verify_with_config_file(monkeypatch, tmp_path: Path):
    seen = _capture_verify(monkeypatch, _report(passed=True))
    monkeypatch.delenv("AZURE_SUBSCRIPTION_ID", raising=False)
    config_path = tmp_path / "verify.json"
    config_path.write_text(json.dumps({
        "subscription_id": "file-sub",
        "label_prefix": "file0001",
        "verify_image_version": True,
    }))

    result = runner.invoke(app, ["verify", "--config", str(config_path), "-l", "cli00001"])

    assert result.exit_code == 0, result.output
    assert seen["config"].subscription_id == "file-sub"
    assert seen["config"].label_prefix == "cli00001"
    assert seen["config"].verify_image_version is True


def test_verify_configuration_error_exit_code(monkeypatch, tmp_path: Path):
    _capture_verify(monkeypatch, _report(passed=True))
    monkeypatch.delenv("AZURE_SUBSCRIPTION_ID", raising=False)

    result = runner.invoke(app, ["verify", "-w", str(tmp_path)])
    assert result.exit_code == 2

    result = runner.invoke(app, ["verify", "-s", "sub", "--var", "novalue"])
    assert result.exit_code == 2


def test_parse_vars():
    assert parse_vars(["a=1", "b=x=y", "c="]) == {"a": "1", "b": "x=y", "c": ""}
    assert parse_vars(None) == {}


class _FakeInspector:
    def __init__(self, retry_total=None):
        self.retry_total = retry_total

    def describe_virtual_machine(self, name, resource_group, subscription):
        if name != "p-A05-VM":
            raise NotFoundError("virtual machine", name, resource_group)
        return VirtualMachineDescriptor(
            name=name,
            network_interface_ids=["/x/networkInterfaces/p-A05-NIC"],
            image_reference=ImageReference(publisher="Canonical"),
        )


def test_inspect_prints_descriptor(monkeypatch):
    monkeypatch.setattr(describe_module, "AzureResourceInspector", _FakeInspector)

    result = runner.invoke(app, ["inspect", "-n", "p-A05-VM", "-g", "p-A05-RG", "-s", "sub"])

    assert result.exit_code == 0, result.output
    assert "p-A05-NIC" in result.output
    assert "Canonical" in result.output


def test_inspect_missing_vm(monkeypatch):
    monkeypatch.setattr(describe_module, "AzureResourceInspector", _FakeInspector)

    result = runner.invoke(app, ["inspect", "-n", "absent", "-g", "p-A05-RG", "-s", "sub"])

    assert result.exit_code == 1


def test_verify_flag_turns_off_version_check_from_config_file(monkeypatch, tmp_path: Path):
    seen = _capture_verify(monkeypatch, _report(passed=True))
    monkeypatch.delenv("AZURE_SUBSCRIPTION_ID", raising=False)
    config_path = tmp_path / "verify.json"
    config_path.write_text(json.dumps({"subscription_id": "file-sub", "verify_image_version": True}))

    result = runner.invoke(app, ["verify", "-c", str(config_path), "--no-verify-image-version"])

    assert result.exit_code == 0, result.output
    assert seen["config"].verify_image_version is False


class _UnauthorizedInspector(_FakeInspector):
    def describe_virtual_machine(self, name, resource_group, subscription):
        raise ClientAuthenticationError(message="credential chain exhausted")


def test_inspect_azure_error_exits_cleanly(monkeypatch):
    monkeypatch.setattr(describe_module, "AzureResourceInspector", _UnauthorizedInspector)

    result = runner.invoke(app, ["inspect", "-n", "p-A05-VM", "-g", "p-A05-RG", "-s", "sub"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
