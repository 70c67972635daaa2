"""Canonical per-entry digests.

Every entry is reduced to a fixed byte sequence fed into a fresh hasher:

1. one kind byte (see :class:`EntryKind`)
2. one readonly byte: ``0`` when no write bit is set, else ``1``
3. on platforms with full mode bits, ``st_mode`` as 4 big-endian bytes
4. regular files: the content
5. symlinks: the raw bytes of the link target (not the target's content)
6. the raw bytes of the entry's full path, always last

Renaming an entry therefore changes its digest even when nothing else does.
"""

from __future__ import annotations

import hashlib
import os
import stat
from enum import IntEnum

import blake3

from fimble_core.errors import EntryError
from fimble_core.scan.filehash import DEFAULT_CHUNK_SIZE, hash_file
from fimble_core.scan.walker import WalkEntry

DIGEST_SIZE = 32

ALGORITHMS = ("sha256", "blake2b", "sha3_256", "blake3")

HAS_MODE_BITS = os.name != "nt"


class EntryKind(IntEnum):
    DIRECTORY = 0
    SYMLINK = 1
    FILE = 2
    BLOCK_DEVICE = 3
    CHAR_DEVICE = 4
    FIFO = 5
    SOCKET = 6
    UNKNOWN = 255


class SpecialFileClassifier:
    """Maps a non-directory, non-symlink, non-regular mode to a kind byte."""

    def classify(self, mode: int) -> EntryKind:
        return EntryKind.UNKNOWN


class OpaqueSpecialClassifier(SpecialFileClassifier):
    """Platforms whose stat can't tell special files apart (Windows)."""


class PosixSpecialClassifier(SpecialFileClassifier):
    _TABLE = (
        (stat.S_ISBLK, EntryKind.BLOCK_DEVICE),
        (stat.S_ISCHR, EntryKind.CHAR_DEVICE),
        (stat.S_ISFIFO, EntryKind.FIFO),
        (stat.S_ISSOCK, EntryKind.SOCKET),
    )

    def classify(self, mode: int) -> EntryKind:
        for test, kind in self._TABLE:
            if test(mode):
                return kind
        return EntryKind.UNKNOWN


def default_classifier() -> SpecialFileClassifier:
    if HAS_MODE_BITS:
        return PosixSpecialClassifier()
    return OpaqueSpecialClassifier()


def entry_kind(mode: int, classifier: SpecialFileClassifier) -> EntryKind:
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    if stat.S_ISLNK(mode):
        return EntryKind.SYMLINK
    if stat.S_ISREG(mode):
        return EntryKind.FILE
    return classifier.classify(mode)


def is_readonly(mode: int) -> bool:
    return not mode & (stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH)


def encode_mode(mode: int) -> bytes:
    """Encode a raw ``st_mode`` as an unsigned 32-bit big-endian integer."""
    return (mode & 0xFFFFFFFF).to_bytes(4, "big")


def new_hasher(algorithm: str = "sha256"):
    """Return a fresh incremental hasher producing a 32-byte digest."""
    if algorithm == "blake2b":
        return hashlib.blake2b(digest_size=DIGEST_SIZE)
    if algorithm == "blake3":
        return blake3.blake3()
    if algorithm in ALGORITHMS:
        return hashlib.new(algorithm)
    raise ValueError(f"Unsupported digest algorithm: {algorithm!r}")


def entry_digest(
    entry: WalkEntry,
    *,
    algorithm: str = "sha256",
    classifier: SpecialFileClassifier | None = None,
    use_mmap: bool = True,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    mode_bits: bool = HAS_MODE_BITS,
) -> bytes:
    """Compute the digest of a single walked entry.

    Raises :class:`EntryError` if the entry carries a walk error or its
    content / link target can't be read.
    """
    entry.raise_for_error()
    st = entry.stat
    if st is None:
        raise EntryError(entry.path, FileNotFoundError("no metadata"))
    if classifier is None:
        classifier = default_classifier()

    hasher = new_hasher(algorithm)
    kind = entry_kind(st.st_mode, classifier)
    hasher.update(bytes([kind]))
    hasher.update(b"\x00" if is_readonly(st.st_mode) else b"\x01")
    if mode_bits:
        hasher.update(encode_mode(st.st_mode))

    if kind is EntryKind.FILE:
        hash_file(hasher, entry.path, st, use_mmap=use_mmap, chunk_size=chunk_size)
    elif kind is EntryKind.SYMLINK:
        try:
            target = os.readlink(entry.path)
        except OSError as e:
            raise EntryError(entry.path, e) from e
        hasher.update(os.fsencode(target))

    hasher.update(os.fsencode(entry.path))
    return hasher.digest()
