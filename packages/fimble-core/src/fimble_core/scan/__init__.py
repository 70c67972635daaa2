"""Tree walking and digest computation."""

from fimble_core.scan.accumulator import FoldStep, Scanner, TreeAccumulator
from fimble_core.scan.entry import (
    EntryKind,
    OpaqueSpecialClassifier,
    PosixSpecialClassifier,
    default_classifier,
    encode_mode,
    entry_digest,
    new_hasher,
)
from fimble_core.scan.filehash import hash_file
from fimble_core.scan.walker import WalkEntry, walk

__all__ = [
    "EntryKind",
    "FoldStep",
    "OpaqueSpecialClassifier",
    "PosixSpecialClassifier",
    "Scanner",
    "TreeAccumulator",
    "WalkEntry",
    "default_classifier",
    "encode_mode",
    "entry_digest",
    "hash_file",
    "new_hasher",
    "walk",
]
