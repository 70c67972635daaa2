"""Feeding a file's content into a hash accumulator."""

from __future__ import annotations

import logging
import mmap
import os
import sys
from typing import Protocol

from fimble_core.errors import EntryError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024


class Hasher(Protocol):
    def update(self, data: bytes, /) -> None: ...


def map_file(fileno: int, size: int) -> mmap.mmap | None:
    """Map *size* bytes of an open file read-only, or return ``None``.

    Empty files can't be mapped, and sizes beyond ``sys.maxsize`` can't be
    addressed; both fall back to buffered reads. The length is pinned to the
    size the caller already observed, so a file that grows afterwards is
    hashed at its original length and one that shrinks fails to map.
    """
    if size <= 0 or size > sys.maxsize:
        return None
    return mmap.mmap(fileno, size, access=mmap.ACCESS_READ)


def hash_reader(hasher: Hasher, f, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
    for chunk in iter(lambda: f.read(chunk_size), b""):
        hasher.update(chunk)


def hash_file(
    hasher: Hasher,
    path: str,
    st: os.stat_result,
    *,
    use_mmap: bool = True,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """Hash the content of the regular file at *path* into *hasher*.

    *st* is the metadata captured by the walk; its ``st_size`` decides
    between the memory-mapped fast path and buffered reads. Errors while
    opening, mapping or reading are raised as :class:`EntryError`.
    """
    try:
        with open(path, "rb") as f:
            mapped = map_file(f.fileno(), st.st_size) if use_mmap else None
            if mapped is None:
                logger.debug("Buffered read of %s (%d bytes)", path, st.st_size)
                hash_reader(hasher, f, chunk_size)
                return
            with mapped:
                logger.debug("Memory-mapped %s (%d bytes)", path, st.st_size)
                hasher.update(mapped)
    except (OSError, ValueError) as e:
        raise EntryError(path, e) from e
