"""Sorted, repeatable directory traversal."""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Iterator
from dataclasses import dataclass, replace

from fimble_core.errors import EntryError, ScanIOError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalkEntry:
    """One filesystem entry yielded by :func:`walk`.

    ``stat`` comes from ``lstat``, so symlinks describe themselves rather than
    their targets. When the entry could not be read, ``error`` holds the
    ``OSError`` and ``stat`` may be ``None``.
    """

    path: str
    rel_path: str
    depth: int
    stat: os.stat_result | None
    error: OSError | None = None

    @property
    def is_dir(self) -> bool:
        return self.stat is not None and stat.S_ISDIR(self.stat.st_mode)

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise EntryError(self.path, self.error) from self.error


def _sort_key(name: str) -> bytes:
    return os.fsencode(name)


def _child_rel(parent_rel: str, name: str) -> str:
    return name if parent_rel == "." else f"{parent_rel}/{name}"


def _list_children(entry: WalkEntry) -> list[WalkEntry]:
    """Return the children of a directory entry in sorted order.

    Raises ``OSError`` if the directory itself can't be listed; per-child
    ``lstat`` failures are attached to the child.
    """
    with os.scandir(entry.path) as it:
        names = sorted((e.name for e in it), key=_sort_key)

    children: list[WalkEntry] = []
    for name in names:
        path = os.path.join(entry.path, name)
        rel = _child_rel(entry.rel_path, name)
        try:
            st = os.lstat(path)
        except OSError as e:
            children.append(WalkEntry(path, rel, entry.depth + 1, None, e))
            continue
        children.append(WalkEntry(path, rel, entry.depth + 1, st))
    return children


def walk(
    root: str | os.PathLike[str], *, raise_on_error: bool = False
) -> Iterator[WalkEntry]:
    """Walk *root* depth-first, yielding the root first.

    Siblings are visited in the order of their raw file-name bytes, so the
    sequence is the same on every run. Symlinks are reported, never followed.

    Per-entry failures are attached to the yielded entry unless
    *raise_on_error* is set, in which case :class:`EntryError` is raised at
    the failing entry. A root that can't be ``lstat``-ed raises
    :class:`ScanIOError`.
    """
    root_path = os.path.abspath(os.fspath(root))
    try:
        root_stat = os.lstat(root_path)
    except OSError as e:
        raise ScanIOError(e) from e

    # Each stack frame is a reversed list of siblings still to visit.
    stack: list[list[WalkEntry]] = [[WalkEntry(root_path, ".", 0, root_stat)]]
    while stack:
        pending = stack[-1]
        if not pending:
            stack.pop()
            continue
        entry = pending.pop()

        children: list[WalkEntry] = []
        if entry.error is None and entry.is_dir:
            try:
                children = _list_children(entry)
            except OSError as e:
                logger.debug("Cannot list %s: %s", entry.path, e)
                entry = replace(entry, error=e)

        if raise_on_error:
            entry.raise_for_error()
        yield entry

        if children:
            children.reverse()
            stack.append(children)
