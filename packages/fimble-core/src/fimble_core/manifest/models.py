"""Data models for manifests and verification results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from fimble_core.manifest.bloom import GrowableBloom

ManifestMode = Literal["exact", "probabilistic"]


@dataclass(frozen=True)
class Manifest:
    """A baseline of a directory tree: its root, tree digest and one index.

    Exactly one of ``table`` (relative path -> entry digest) or ``bloom``
    (checkpoint membership filter) is set.
    """

    root: str
    digest: bytes
    algorithm: str = "sha256"
    table: dict[str, bytes] | None = None
    bloom: GrowableBloom | None = None

    def __post_init__(self) -> None:
        if len(self.digest) != 32:
            raise ValueError(f"digest must be 32 bytes, got {len(self.digest)}")
        if (self.table is None) == (self.bloom is None):
            raise ValueError("manifest needs exactly one of table or bloom")

    @property
    def mode(self) -> ManifestMode:
        return "exact" if self.table is not None else "probabilistic"


@dataclass(frozen=True)
class ManifestDiff:
    """Per-path result of an exact scan check."""

    changed: tuple[str, ...] = ()
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()

    @property
    def paths(self) -> list[str]:
        return sorted(self.changed + self.added + self.removed)

    @property
    def has_changes(self) -> bool:
        return bool(self.changed or self.added or self.removed)


@dataclass(frozen=True)
class BloomCheckResult:
    """Result of a probabilistic scan check.

    ``diverged_at`` names the first entry whose checkpoint was missing from
    the filter; the tree diverged at or before it. It is ``None`` when every
    checkpoint was found but the final tree digest still differs.
    """

    changed: bool
    diverged_at: str | None = None
    entries_checked: int = 0


@dataclass(frozen=True)
class VerifyReport:
    """Outcome of a quick check with a scan-check fallback."""

    ok: bool
    mode: ManifestMode
    changed_paths: list[str] = field(default_factory=list)
    diverged_at: str | None = None
