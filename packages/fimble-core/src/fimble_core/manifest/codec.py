"""JSON serialization for manifests."""

from __future__ import annotations

import binascii
import json
from pathlib import Path

from fimble_core.errors import ManifestFormatError
from fimble_core.manifest.bloom import GrowableBloom
from fimble_core.manifest.models import Manifest
from fimble_core.scan.entry import ALGORITHMS

FORMAT_NAME = "fimble-manifest"
FORMAT_VERSION = 1


def manifest_to_dict(manifest: Manifest) -> dict:
    data: dict = {
        "format": FORMAT_NAME,
        "version": FORMAT_VERSION,
        "algorithm": manifest.algorithm,
        "root": manifest.root,
        "digest": manifest.digest.hex(),
    }
    if manifest.table is not None:
        data["table"] = {
            path: digest.hex() for path, digest in sorted(manifest.table.items())
        }
    else:
        data["bloom"] = manifest.bloom.to_dict()
    return data


def manifest_from_dict(data: dict) -> Manifest:
    if not isinstance(data, dict) or data.get("format") != FORMAT_NAME:
        raise ManifestFormatError("not a fimble manifest")
    if data.get("version") != FORMAT_VERSION:
        raise ManifestFormatError(f"unsupported manifest version: {data.get('version')!r}")
    if data.get("algorithm") not in ALGORITHMS:
        raise ManifestFormatError(f"unsupported digest algorithm: {data.get('algorithm')!r}")
    try:
        table = None
        bloom = None
        if "table" in data:
            table = {path: bytes.fromhex(h) for path, h in data["table"].items()}
        if "bloom" in data:
            bloom = GrowableBloom.from_dict(data["bloom"])
        return Manifest(
            root=data["root"],
            digest=bytes.fromhex(data["digest"]),
            algorithm=data["algorithm"],
            table=table,
            bloom=bloom,
        )
    except (KeyError, TypeError, ValueError, AttributeError, binascii.Error) as e:
        raise ManifestFormatError(f"malformed manifest: {e}") from e


def encode_manifest(manifest: Manifest) -> str:
    """Serialize *manifest* to a JSON string."""
    return json.dumps(manifest_to_dict(manifest), indent=2)


def decode_manifest(raw: str | bytes) -> Manifest:
    """Deserialize a manifest from a JSON string."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestFormatError(f"invalid manifest JSON: {e}") from e
    return manifest_from_dict(data)


def save_manifest(manifest: Manifest, path: Path) -> None:
    """Write the manifest to a JSON file."""
    path.write_text(encode_manifest(manifest) + "\n")


def load_manifest(path: Path) -> Manifest:
    """Read a manifest from a JSON file."""
    return decode_manifest(path.read_text())
