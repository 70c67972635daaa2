"""Re-verifies a directory tree against a stored manifest."""

from __future__ import annotations

import hmac
import logging

from fimble_core.config.models import FimbleConfig, HashConfig
from fimble_core.errors import ManifestCheckFailed, ManifestModeError
from fimble_core.manifest.models import (
    BloomCheckResult,
    Manifest,
    ManifestDiff,
    VerifyReport,
)
from fimble_core.scan.accumulator import Scanner

logger = logging.getLogger(__name__)


class Verifier:
    """Checks the tree at ``manifest.root`` against *manifest*.

    The manifest is only read, so one instance may be shared freely. Digest
    divergence is reported as a normal result; unreadable entries raise.
    """

    def __init__(self, manifest: Manifest, config: FimbleConfig | None = None) -> None:
        config = config or FimbleConfig()
        # Always re-hash with the algorithm the baseline was built with.
        self.config = config.model_copy(
            update={"digest": HashConfig(algorithm=manifest.algorithm)}
        )
        self.manifest = manifest
        self.scanner = Scanner(self.config)

    # ------------------------------------------------------------------
    # Quick check
    # ------------------------------------------------------------------

    def check_digest(self, digest: bytes) -> None:
        """Raise :class:`ManifestCheckFailed` unless *digest* matches."""
        if not hmac.compare_digest(digest, self.manifest.digest):
            raise ManifestCheckFailed(self.manifest.digest, digest)

    def quick_check(self) -> None:
        """Re-scan the root and compare tree digests."""
        self.check_digest(self.scanner.scan(self.manifest.root))

    # ------------------------------------------------------------------
    # Scan check, exact manifests
    # ------------------------------------------------------------------

    def diff(self) -> ManifestDiff:
        """Compare every entry on disk against the manifest's digest table."""
        table = self.manifest.table
        if table is None:
            raise ManifestModeError("diff requires an exact manifest")

        changed: list[str] = []
        added: list[str] = []
        seen: set[str] = set()
        accumulator = self.scanner.new_accumulator()
        for step in self.scanner.iter_folds(self.manifest.root, accumulator):
            path = step.entry.rel_path
            seen.add(path)
            expected = table.get(path)
            if expected is None:
                added.append(path)
            elif expected != step.digest:
                changed.append(path)
        removed = [path for path in table if path not in seen]

        result = ManifestDiff(
            changed=tuple(sorted(changed)),
            added=tuple(sorted(added)),
            removed=tuple(sorted(removed)),
        )
        if result.has_changes:
            logger.warning(
                "%s: %d changed, %d added, %d removed",
                self.manifest.root,
                len(result.changed),
                len(result.added),
                len(result.removed),
            )
        return result

    def scan_check(self) -> list[str]:
        """Sorted list of every changed, added or removed path."""
        return self.diff().paths

    # ------------------------------------------------------------------
    # Scan check, probabilistic manifests
    # ------------------------------------------------------------------

    def bloom_check(self) -> BloomCheckResult:
        """Replay checkpoints against the manifest's bloom filter.

        Stops at the first checkpoint the filter has definitely never seen.
        """
        bloom = self.manifest.bloom
        if bloom is None:
            raise ManifestModeError("bloom_check requires a probabilistic manifest")

        accumulator = self.scanner.new_accumulator()
        steps = self.scanner.iter_folds(self.manifest.root, accumulator, checkpoints=True)
        try:
            for step in steps:
                if not bloom.contains(step.checkpoint):
                    logger.warning(
                        "%s: diverged at or before %s",
                        self.manifest.root,
                        step.entry.rel_path,
                    )
                    return BloomCheckResult(
                        changed=True,
                        diverged_at=step.entry.rel_path,
                        entries_checked=accumulator.count,
                    )
        finally:
            steps.close()

        # Every checkpoint matched, but entries may have been removed from the end.
        changed = not hmac.compare_digest(accumulator.digest(), self.manifest.digest)
        if changed:
            logger.warning("%s: tree digest differs from manifest", self.manifest.root)
        return BloomCheckResult(changed=changed, entries_checked=accumulator.count)

    # ------------------------------------------------------------------
    # Combined policy
    # ------------------------------------------------------------------

    def verify(self) -> VerifyReport:
        """Quick check first; on failure, run the scan check this manifest supports."""
        mode = self.manifest.mode
        try:
            self.quick_check()
        except ManifestCheckFailed:
            logger.info("Quick check failed for %s, running scan check", self.manifest.root)
        else:
            return VerifyReport(ok=True, mode=mode)

        if mode == "exact":
            return VerifyReport(ok=False, mode=mode, changed_paths=self.scan_check())
        result = self.bloom_check()
        return VerifyReport(ok=False, mode=mode, diverged_at=result.diverged_at)
