"""
Upload rules: size classes, extension allow-lists, and file signatures.

Every upload route consults the same table, so allow-lists and ceilings
cannot drift between call sites.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from modelvault.common.config import MIB, ModelvaultSettings


class SizeClass(str, Enum):
    """What an upload is for. Chosen by the caller, not inferred from the name."""

    IMAGE = "image"
    MODEL = "model"
    VIEWABLE = "viewable"


IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp"})
MODEL_EXTENSIONS = frozenset({
    "glb", "gltf", "obj", "stl", "3mf", "blend", "fbx", "zip", "rar", "7z",
})
VIEWABLE_EXTENSIONS = frozenset({"glb", "gltf"})


@dataclass(frozen=True)
class ClassRule:
    allowed_extensions: frozenset[str]
    max_bytes: int


@dataclass(frozen=True)
class SignatureRule:
    """Fixed bytes at fixed offsets. Every part must match."""

    parts: tuple[tuple[int, bytes], ...]

    def matches(self, content: bytes) -> bool:
        for offset, magic in self.parts:
            if content[offset:offset + len(magic)] != magic:
                return False
        return True


def _magic(magic: bytes, offset: int = 0) -> SignatureRule:
    return SignatureRule(((offset, magic),))


ZIP_SIGNATURE = _magic(b"PK\x03\x04")

# Extension -> alternative rules, any one of which passes.
# obj and gltf are text formats and binary STL has no fixed magic, so those
# three are absent and always pass the signature step.
SIGNATURES: Mapping[str, tuple[SignatureRule, ...]] = {
    "glb": (_magic(b"glTF"),),
    "zip": (ZIP_SIGNATURE,),
    "3mf": (ZIP_SIGNATURE,),
    "rar": (_magic(b"Rar!\x1a\x07\x00"),),
    "7z": (_magic(b"7z\xbc\xaf\x27\x1c"),),
    "blend": (_magic(b"BLENDER"),),
    "fbx": (_magic(b"Kaydara FBX Binary"),),
    "png": (_magic(b"\x89PNG\r\n\x1a\n"),),
    "jpg": (_magic(b"\xff\xd8\xff"),),
    "jpeg": (_magic(b"\xff\xd8\xff"),),
    "gif": (_magic(b"GIF87a"), _magic(b"GIF89a")),
    "webp": (SignatureRule(((0, b"RIFF"), (8, b"WEBP"))),),
}

DEFAULT_RULES: Mapping[SizeClass, ClassRule] = {
    SizeClass.IMAGE: ClassRule(IMAGE_EXTENSIONS, 5 * MIB),
    SizeClass.MODEL: ClassRule(MODEL_EXTENSIONS, 100 * MIB),
    SizeClass.VIEWABLE: ClassRule(VIEWABLE_EXTENSIONS, 15 * MIB),
}

# Storage key prefix per class.
KEY_PREFIXES: Mapping[SizeClass, str] = {
    SizeClass.IMAGE: "images",
    SizeClass.MODEL: "models",
    SizeClass.VIEWABLE: "viewables",
}


def rules_from_settings(settings: ModelvaultSettings) -> dict[SizeClass, ClassRule]:
    """Build the class table with ceilings taken from settings."""
    return {
        SizeClass.IMAGE: ClassRule(IMAGE_EXTENSIONS, settings.image_max_bytes),
        SizeClass.MODEL: ClassRule(MODEL_EXTENSIONS, settings.model_max_bytes),
        SizeClass.VIEWABLE: ClassRule(VIEWABLE_EXTENSIONS, settings.viewable_max_bytes),
    }
