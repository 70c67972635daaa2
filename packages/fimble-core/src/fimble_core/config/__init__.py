from .loader import load_config
from .models import (
    BloomConfig,
    FimbleConfig,
    HashConfig,
    ManifestConfig,
    ScanConfig,
)

__all__ = [
    "BloomConfig",
    "FimbleConfig",
    "HashConfig",
    "ManifestConfig",
    "ScanConfig",
    "load_config",
]
