"""
Upload validation.

Decides whether an uploaded file may become a stored asset. Pure: no I/O,
no state, and malformed input produces a rejection rather than an exception.

The signature step is best-effort. Formats without a reliable magic number
(obj, gltf, stl) are accepted on extension and size alone; callers needing
strict content-type enforcement must parse the file themselves.
"""

from enum import Enum
from typing import Mapping

from modelvault.uploads.rules import DEFAULT_RULES, SIGNATURES, ClassRule, SizeClass


class RejectReason(str, Enum):
    OK = "ok"
    EXTENSION_NOT_ALLOWED = "extension_not_allowed"
    SIZE_EXCEEDED = "size_exceeded"
    SIGNATURE_MISMATCH = "signature_mismatch"


def extension_of(name: str) -> str:
    """Lowercased text after the last dot, or '' when there is none."""
    if not isinstance(name, str):
        return ""
    base = name.replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in base:
        return ""
    return base.rsplit(".", 1)[1].strip().lower()


class UploadCandidate:
    """A file offered for upload. Never persisted."""

    __slots__ = ("declared_name", "content", "byte_length")

    def __init__(self, declared_name: str, content: bytes, byte_length: int | None = None):
        self.declared_name = declared_name
        self.content = bytes(content or b"")
        self.byte_length = len(self.content) if byte_length is None else byte_length

    @property
    def extension(self) -> str:
        return extension_of(self.declared_name)


class UploadVerdict:
    """Result of validating one candidate."""

    __slots__ = ("accepted", "reason", "message", "extension")

    def __init__(
        self,
        accepted: bool,
        reason: RejectReason,
        message: str = "",
        extension: str = "",
    ):
        self.accepted = accepted
        self.reason = reason
        self.message = message
        self.extension = extension

    def __repr__(self) -> str:
        return f"UploadVerdict(accepted={self.accepted}, reason={self.reason.value!r})"


def check_signature(content: bytes, extension: str) -> bool:
    """True when content carries the magic number for extension, or none is known."""
    rules = SIGNATURES.get(extension)
    if not rules:
        return True
    return any(rule.matches(content) for rule in rules)


def validate_upload(
    candidate: UploadCandidate,
    size_class: SizeClass | str,
    rules: Mapping[SizeClass, ClassRule] | None = None,
) -> UploadVerdict:
    """
    Validate a candidate for the given size class.

    Checks, stopping at the first failure:
    - extension is in the class allow-list
    - byte length does not exceed the class ceiling
    - content starts with the format signature, where one exists

    Returns:
        UploadVerdict with accepted set and the reason code
    """
    size_class = SizeClass(size_class)
    rule = (rules or DEFAULT_RULES)[size_class]
    ext = candidate.extension

    if ext not in rule.allowed_extensions:
        return UploadVerdict(
            False,
            RejectReason.EXTENSION_NOT_ALLOWED,
            f"File type .{ext} not allowed for {size_class.value} uploads",
            ext,
        )

    if candidate.byte_length > rule.max_bytes:
        limit_mb = rule.max_bytes / (1024 * 1024)
        return UploadVerdict(
            False,
            RejectReason.SIZE_EXCEEDED,
            f"File {candidate.declared_name} exceeds {limit_mb:g}MB limit",
            ext,
        )

    if not check_signature(candidate.content, ext):
        return UploadVerdict(
            False,
            RejectReason.SIGNATURE_MISMATCH,
            f"File {candidate.declared_name} failed magic number check for .{ext}",
            ext,
        )

    return UploadVerdict(True, RejectReason.OK, "File accepted", ext)
