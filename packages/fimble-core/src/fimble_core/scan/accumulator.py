"""Whole-tree digest accumulation over a sorted walk."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from itertools import islice

from fimble_core.config.models import FimbleConfig
from fimble_core.scan.entry import default_classifier, entry_digest, new_hasher
from fimble_core.scan.walker import WalkEntry, walk

logger = logging.getLogger(__name__)


class TreeAccumulator:
    """Running hash over every entry digest of one walk.

    The running state is only ever updated; checkpoints finalize a copy.
    """

    def __init__(self, algorithm: str = "sha256") -> None:
        self._hasher = new_hasher(algorithm)
        self.count = 0

    def fold(self, digest: bytes) -> None:
        self._hasher.update(digest)
        self.count += 1

    def checkpoint(self) -> bytes:
        return self._hasher.copy().digest()

    def digest(self) -> bytes:
        return self._hasher.digest()


@dataclass(frozen=True)
class FoldStep:
    """One entry after it has been folded into the tree accumulator."""

    entry: WalkEntry
    digest: bytes
    checkpoint: bytes | None = None


def _batched(items: Iterable[WalkEntry], size: int) -> Iterator[list[WalkEntry]]:
    it = iter(items)
    while batch := list(islice(it, size)):
        yield batch


class Scanner:
    """Computes entry digests and tree digests for a directory tree."""

    def __init__(self, config: FimbleConfig | None = None) -> None:
        self.config = config or FimbleConfig()
        self.algorithm = self.config.digest.algorithm
        self._classifier = default_classifier()

    def entry_digest(self, entry: WalkEntry) -> bytes:
        scan = self.config.scan
        return entry_digest(
            entry,
            algorithm=self.algorithm,
            classifier=self._classifier,
            use_mmap=scan.use_mmap,
            chunk_size=scan.chunk_size,
        )

    def new_accumulator(self) -> TreeAccumulator:
        return TreeAccumulator(self.algorithm)

    def _digests(self, entries: Iterable[WalkEntry]) -> Iterator[tuple[WalkEntry, bytes]]:
        workers = self.config.scan.workers
        if workers <= 1:
            for entry in entries:
                yield entry, self.entry_digest(entry)
            return

        # Digests are computed in parallel, but handed back in walk order.
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="fimble-digest"
        ) as executor:
            for batch in _batched(entries, self.config.scan.batch_size):
                yield from zip(batch, executor.map(self.entry_digest, batch))

    def iter_folds(
        self,
        root: str | os.PathLike[str],
        accumulator: TreeAccumulator,
        *,
        checkpoints: bool = False,
    ) -> Iterator[FoldStep]:
        """Walk *root*, folding each entry digest into *accumulator*.

        Yields one :class:`FoldStep` per entry, in walk order. The first
        unreadable entry raises :class:`~fimble_core.errors.EntryError`.
        """
        for entry, digest in self._digests(walk(root)):
            accumulator.fold(digest)
            logger.debug("Folded %s", entry.rel_path)
            yield FoldStep(
                entry=entry,
                digest=digest,
                checkpoint=accumulator.checkpoint() if checkpoints else None,
            )

    def scan(self, root: str | os.PathLike[str]) -> bytes:
        """Return the tree digest of *root*."""
        accumulator = self.new_accumulator()
        for _ in self.iter_folds(root, accumulator):
            pass
        logger.info("Scanned %d entries under %s", accumulator.count, root)
        return accumulator.digest()

    def scan_multiple(self, roots: Iterable[str | os.PathLike[str]]) -> bytes:
        """Digest of the tree digests of *roots*, in the order given."""
        hasher = new_hasher(self.algorithm)
        for root in roots:
            hasher.update(self.scan(root))
        return hasher.digest()
