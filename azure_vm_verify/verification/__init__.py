"""Verification of a provisioned VM topology."""

from .results import CheckResult, CheckStatus, RunState, VerificationReport
from .sequence import (
    VerificationSequence,
    verify_stack,
    check_names,
    check_attachment,
    compare_image,
    require_image_reference,
)

__all__ = [
    'CheckResult',
    'CheckStatus',
    'RunState',
    'VerificationReport',
    'VerificationSequence',
    'verify_stack',
    'check_names',
    'check_attachment',
    'compare_image',
    'require_image_reference',
]
