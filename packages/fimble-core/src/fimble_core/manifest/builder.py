"""Builds manifests from a directory on disk."""

from __future__ import annotations

import logging
import os

from fimble_core.config.models import FimbleConfig
from fimble_core.manifest.bloom import GrowableBloom
from fimble_core.manifest.models import Manifest, ManifestMode
from fimble_core.scan.accumulator import Scanner

logger = logging.getLogger(__name__)


class ManifestBuilder:
    """Walks a tree once and packages the result as a manifest."""

    def __init__(self, config: FimbleConfig | None = None) -> None:
        self.config = config or FimbleConfig()
        self.scanner = Scanner(self.config)

    def build(
        self,
        root: str | os.PathLike[str],
        mode: ManifestMode | None = None,
    ) -> Manifest:
        """Walk *root* and return an exact or probabilistic manifest.

        *mode* defaults to ``config.manifest.mode``.
        """
        mode = mode or self.config.manifest.mode
        root_path = os.path.abspath(os.fspath(root))
        if mode == "exact":
            manifest = self._build_exact(root_path)
        elif mode == "probabilistic":
            manifest = self._build_probabilistic(root_path)
        else:
            raise ValueError(f"Unknown manifest mode: {mode!r}")
        entries = len(manifest.table) if manifest.table is not None else len(manifest.bloom)
        logger.info("Built %s manifest for %s (%d entries)", mode, root_path, entries)
        return manifest

    def _build_exact(self, root: str) -> Manifest:
        accumulator = self.scanner.new_accumulator()
        table: dict[str, bytes] = {}
        for step in self.scanner.iter_folds(root, accumulator):
            table[step.entry.rel_path] = step.digest
        logger.debug("Recorded %d entry digests", len(table))
        return Manifest(
            root=root,
            digest=accumulator.digest(),
            algorithm=self.scanner.algorithm,
            table=table,
        )

    def _build_probabilistic(self, root: str) -> Manifest:
        accumulator = self.scanner.new_accumulator()
        checkpoints = [
            step.checkpoint
            for step in self.scanner.iter_folds(root, accumulator, checkpoints=True)
        ]

        cfg = self.config.bloom
        bloom = GrowableBloom(
            cfg.false_positive_rate,
            len(checkpoints),
            growth_factor=cfg.growth_factor,
            tightening_ratio=cfg.tightening_ratio,
        )
        for checkpoint in checkpoints:
            bloom.insert(checkpoint)
        logger.debug("Inserted %d checkpoints into bloom filter", len(checkpoints))

        return Manifest(
            root=root,
            digest=accumulator.digest(),
            algorithm=self.scanner.algorithm,
            bloom=bloom,
        )


def build_manifest(
    root: str | os.PathLike[str],
    mode: ManifestMode | None = None,
    config: FimbleConfig | None = None,
) -> Manifest:
    """Convenience wrapper around ManifestBuilder.build()."""
    return ManifestBuilder(config).build(root, mode)
