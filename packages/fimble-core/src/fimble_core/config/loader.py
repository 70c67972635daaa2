"""YAML config loading with env var expansion."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import FimbleConfig

# Only these variables may be referenced as ${VAR} inside a config file.
_ALLOWED_ENV_VARS = frozenset({
    "FIMBLE_ALGORITHM",
    "FIMBLE_FP_RATE",
    "FIMBLE_LOG_LEVEL",
    "FIMBLE_MANIFEST_MODE",
    "FIMBLE_WORKERS",
})

_ENV_REF_RE = re.compile(r"\$\{(\w+)\}")


def load_config(cli_path: str | None = None) -> FimbleConfig:
    """Load config with resolution order: CLI > project-local > user-global > defaults."""
    config_paths = [
        Path(cli_path) if cli_path else None,
        Path("./fimble.yaml"),
        Path.home() / ".fimble" / "config.yaml",
    ]

    for path in config_paths:
        if path and path.exists():
            try:
                with open(path) as f:
                    raw = yaml.safe_load(f)
                if raw is None:
                    continue
                raw = _expand_env_vars(raw)
                return FimbleConfig(**raw)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
            except ValidationError as e:
                raise ValueError(f"Invalid config in {path}: {e}") from e

    return FimbleConfig()


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} references in strings."""
    if isinstance(obj, str):
        return _ENV_REF_RE.sub(_lookup_env, obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


def _lookup_env(match: re.Match) -> str:
    name = match.group(1)
    if name not in _ALLOWED_ENV_VARS:
        raise ValueError(f"Environment variable {name} is not allowed in config")
    value = os.environ.get(name)
    if value is None:
        raise ValueError(f"Environment variable {name} is not set")
    return value


# Default YAML template for `fimble config init`
DEFAULT_CONFIG_TEMPLATE = """\
# fimble.yaml

# Digest algorithm (all produce 256-bit digests)
digest:
  algorithm: "sha256"          # sha256 | blake2b | sha3_256 | blake3

# Tree walk
scan:
  use_mmap: true               # hash non-empty files through a read-only memory map
  chunk_size: 1048576          # buffered read size when not memory-mapping
  workers: 1                   # >1 hashes entries on a thread pool
  batch_size: 256

# Probabilistic manifests
bloom:
  false_positive_rate: 0.001
  growth_factor: 2
  tightening_ratio: 0.85

# Manifest representation
manifest:
  mode: "exact"                # exact | probabilistic

# Logging
log_level: "warn"              # debug | info | warn | error
log_format: "text"             # text | json
"""
