from pydantic import BaseModel, Field
from typing import Literal


class HashConfig(BaseModel):
    # Every supported algorithm yields a 32-byte digest.
    algorithm: Literal["sha256", "blake2b", "sha3_256", "blake3"] = "sha256"


class ScanConfig(BaseModel):
    use_mmap: bool = True
    chunk_size: int = Field(default=1024 * 1024, gt=0)
    workers: int = Field(default=1, ge=1)
    batch_size: int = Field(default=256, gt=0)


class BloomConfig(BaseModel):
    false_positive_rate: float = Field(default=0.001, gt=0, lt=1)
    growth_factor: int = Field(default=2, ge=2)
    tightening_ratio: float = Field(default=0.85, gt=0, lt=1)


class ManifestConfig(BaseModel):
    mode: Literal["exact", "probabilistic"] = "exact"


class FimbleConfig(BaseModel):
    digest: HashConfig = Field(default_factory=HashConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    bloom: BloomConfig = Field(default_factory=BloomConfig)
    manifest: ManifestConfig = Field(default_factory=ManifestConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "warn"
    log_format: Literal["text", "json"] = "text"
