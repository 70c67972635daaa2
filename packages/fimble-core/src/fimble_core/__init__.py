"""Fimble Core - deterministic tree digests and integrity manifests."""

from fimble_core.config import FimbleConfig, load_config
from fimble_core.errors import (
    EntryError,
    FimbleError,
    ManifestCheckFailed,
    ManifestFormatError,
    ManifestModeError,
    ScanIOError,
)
from fimble_core.manifest import (
    GrowableBloom,
    Manifest,
    ManifestBuilder,
    Verifier,
    build_manifest,
)
from fimble_core.scan import Scanner

__version__ = "0.1.0"

__all__ = [
    "EntryError",
    "FimbleConfig",
    "FimbleError",
    "GrowableBloom",
    "Manifest",
    "ManifestBuilder",
    "ManifestCheckFailed",
    "ManifestFormatError",
    "ManifestModeError",
    "ScanIOError",
    "Scanner",
    "Verifier",
    "build_manifest",
    "load_config",
]
