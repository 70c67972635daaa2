"""Manifest building, serialization and verification."""

from fimble_core.manifest.bloom import Bloom, GrowableBloom
from fimble_core.manifest.builder import ManifestBuilder, build_manifest
from fimble_core.manifest.codec import (
    decode_manifest,
    encode_manifest,
    load_manifest,
    save_manifest,
)
from fimble_core.manifest.models import (
    BloomCheckResult,
    Manifest,
    ManifestDiff,
    VerifyReport,
)
from fimble_core.manifest.verifier import Verifier


def quick_check(manifest: Manifest) -> None:
    """Convenience wrapper around Verifier.quick_check()."""
    Verifier(manifest).quick_check()


def scan_check(manifest: Manifest) -> list[str]:
    """Convenience wrapper around Verifier.scan_check()."""
    return Verifier(manifest).scan_check()


__all__ = [
    "Bloom",
    "BloomCheckResult",
    "GrowableBloom",
    "Manifest",
    "ManifestBuilder",
    "ManifestDiff",
    "Verifier",
    "VerifyReport",
    "build_manifest",
    "decode_manifest",
    "encode_manifest",
    "load_manifest",
    "quick_check",
    "save_manifest",
    "scan_check",
]
