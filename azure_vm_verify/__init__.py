"""Azure VM Verify - provision a Terraform stack, check the deployed VM topology, tear it down."""

__version__ = "0.1.0"

from . import config
from . import errors
from . import runtime
from . import inspector
from . import verification

__all__ = [
    "config",
    "errors",
    "runtime",
    "inspector",
    "verification",
]
