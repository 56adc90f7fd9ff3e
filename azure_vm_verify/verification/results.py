"""Result dataclasses for verification runs."""

from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
from enum import Enum

from azure_vm_verify.errors import FailureKind
from azure_vm_verify.runtime import StackOutputs


class CheckStatus(str, Enum):
    """Outcome of a single check."""
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    ERROR = "error"


class RunState(str, Enum):
    """Lifecycle of the stack during a run."""
    INIT = "init"
    PROVISIONED = "provisioned"
    VERIFIED = "verified"
    DESTROYED = "destroyed"


@dataclass
class CheckResult:
    """Result of one assertion."""
    name: str
    status: CheckStatus
    message: str = ""
    kind: Optional[FailureKind] = None
    expected: Optional[str] = None
    actual: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.status == CheckStatus.PASSED

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
        }
        if self.kind is not None:
            d["kind"] = self.kind.value
        if self.expected is not None or self.actual is not None:
            d["expected"] = self.expected
            d["actual"] = self.actual
        return d


@dataclass
class VerificationReport:
    """Everything a run found, including teardown."""
    outputs: Optional[StackOutputs] = None
    checks: List[CheckResult] = field(default_factory=list)
    state: RunState = RunState.INIT
    error: Optional[str] = None
    error_kind: Optional[FailureKind] = None
    teardown_error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def passed(self) -> bool:
        """True only if every check passed and provisioning, verification and teardown raised nothing."""
        if self.error is not None or self.teardown_error is not None:
            return False
        return bool(self.checks) and all(c.passed for c in self.checks)

    @property
    def failures(self) -> List[CheckResult]:
        return [c for c in self.checks if c.status in (CheckStatus.FAILED, CheckStatus.ERROR)]

    def get(self, name: str) -> Optional[CheckResult]:
        """Look up a check result by name."""
        for check in self.checks:
            if check.name == name:
                return check
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "state": self.state.value,
            "outputs": self.outputs.to_dict() if self.outputs else None,
            "checks": [c.to_dict() for c in self.checks],
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "teardown_error": self.teardown_error,
            "duration_seconds": self.duration_seconds,
        }
