"""Modelvault: upload validation and digital-asset entitlement ledger."""

from modelvault.uploads.rules import SizeClass
from modelvault.uploads.validator import (
    RejectReason,
    UploadCandidate,
    UploadVerdict,
    check_signature,
    validate_upload,
)

__all__ = [
    "SizeClass",
    "RejectReason",
    "UploadCandidate",
    "UploadVerdict",
    "check_signature",
    "validate_upload",
]
__version__ = "0.1.0"
