"""Scalable bloom filter used by probabilistic manifests.

A :class:`GrowableBloom` is an append-only list of partitioned bloom filters
("generations"). Generation *i* holds ``initial_capacity * growth_factor**i``
items at error rate ``p * (1 - r) * r**i`` where *p* is the target false
positive rate and *r* the tightening ratio. The per-generation rates form a
geometric series summing to at most *p*, so the filter as a whole stays
within its target however far it grows. Membership tests never produce
false negatives.

Each slice of a generation indexes its bits with its own 64-bit word of
hash output, so slices stay independent whatever their length.
"""

from __future__ import annotations

import base64
import hashlib
import math
from typing import Any

_LN2_SQUARED = math.log(2) ** 2
_PERSON = b"fimble-bloom"
_WORDS_PER_BLOCK = 8


def _item_words(item: bytes, count: int) -> list[int]:
    """At least *count* independent 64-bit words derived from *item*.

    Words come in blocks of eight, one salted blake2b digest per block, so a
    longer request always extends a shorter one.
    """
    words: list[int] = []
    block = 0
    while len(words) < count:
        d = hashlib.blake2b(
            item,
            digest_size=8 * _WORDS_PER_BLOCK,
            person=_PERSON,
            salt=block.to_bytes(16, "little"),
        ).digest()
        words.extend(
            int.from_bytes(d[i * 8 : i * 8 + 8], "big") for i in range(_WORDS_PER_BLOCK)
        )
        block += 1
    return words


class Bloom:
    """A fixed-size bloom filter split into one slice per hash function."""

    def __init__(
        self,
        capacity: int,
        error_rate: float,
        *,
        num_slices: int | None = None,
        slice_len: int | None = None,
        bits: bytes | None = None,
        count: int = 0,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        if not 0 < error_rate < 1:
            raise ValueError(f"error_rate must be in (0, 1), got {error_rate}")
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        self.capacity = capacity
        self.error_rate = error_rate
        if num_slices is None:
            num_slices = max(1, math.ceil(math.log2(1 / error_rate)))
        if slice_len is None:
            total = math.ceil(capacity * math.log(1 / error_rate) / _LN2_SQUARED)
            slice_len = max(1, math.ceil(total / num_slices))
        if num_slices < 1:
            raise ValueError(f"num_slices must be >= 1, got {num_slices}")
        if slice_len < 1:
            raise ValueError(f"slice_len must be >= 1, got {slice_len}")
        self.num_slices = num_slices
        self.slice_len = slice_len
        nbytes = (num_slices * slice_len + 7) // 8
        if bits is None:
            self.bits = bytearray(nbytes)
        elif len(bits) != nbytes:
            raise ValueError(f"expected {nbytes} bytes of filter data, got {len(bits)}")
        else:
            self.bits = bytearray(bits)
        self.count = count

    def _positions(self, words: list[int]):
        for i in range(self.num_slices):
            yield i * self.slice_len + words[i] % self.slice_len

    def add(self, words: list[int]) -> None:
        for pos in self._positions(words):
            self.bits[pos >> 3] |= 1 << (pos & 7)
        self.count += 1

    def test(self, words: list[int]) -> bool:
        return all(self.bits[pos >> 3] & (1 << (pos & 7)) for pos in self._positions(words))

    @property
    def is_full(self) -> bool:
        return self.count >= self.capacity

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bloom):
            return NotImplemented
        return (
            self.capacity == other.capacity
            and self.error_rate == other.error_rate
            and self.num_slices == other.num_slices
            and self.slice_len == other.slice_len
            and self.count == other.count
            and self.bits == other.bits
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "capacity": self.capacity,
            "error_rate": self.error_rate,
            "num_slices": self.num_slices,
            "slice_len": self.slice_len,
            "count": self.count,
            "bits": base64.b64encode(bytes(self.bits)).decode("ascii"),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Bloom:
        return cls(
            capacity=data["capacity"],
            error_rate=data["error_rate"],
            num_slices=data["num_slices"],
            slice_len=data["slice_len"],
            bits=base64.b64decode(data["bits"], validate=True),
            count=data["count"],
        )


class GrowableBloom:
    """Insert-only set membership structure that grows by adding generations."""

    def __init__(
        self,
        false_positive_rate: float,
        est_insertions: int,
        *,
        growth_factor: int = 2,
        tightening_ratio: float = 0.85,
    ) -> None:
        if not 0 < false_positive_rate < 1:
            raise ValueError(
                f"false_positive_rate must be in (0, 1), got {false_positive_rate}"
            )
        if not 0 < tightening_ratio < 1:
            raise ValueError(f"tightening_ratio must be in (0, 1), got {tightening_ratio}")
        if growth_factor < 2:
            raise ValueError(f"growth_factor must be >= 2, got {growth_factor}")
        self.false_positive_rate = false_positive_rate
        self.initial_capacity = max(1, est_insertions)
        self.growth_factor = growth_factor
        self.tightening_ratio = tightening_ratio
        self.generations: list[Bloom] = []
        self.inserts = 0

    def _next_generation(self) -> Bloom:
        n = len(self.generations)
        capacity = self.initial_capacity * self.growth_factor**n
        r = self.tightening_ratio
        error_rate = self.false_positive_rate * (1 - r) * r**n
        return Bloom(capacity, error_rate)

    def _words(self, item: bytes, extra: Bloom | None = None) -> list[int]:
        slices = [gen.num_slices for gen in self.generations]
        if extra is not None:
            slices.append(extra.num_slices)
        return _item_words(item, max(slices, default=0))

    def insert(self, item: bytes) -> bool:
        """Add *item*; returns ``False`` if it was already (probably) present."""
        words = self._words(item)
        if any(gen.test(words) for gen in self.generations):
            return False
        if not self.generations or self.generations[-1].is_full:
            gen = self._next_generation()
            words = self._words(item, gen)
            self.generations.append(gen)
        self.generations[-1].add(words)
        self.inserts += 1
        return True

    def contains(self, item: bytes) -> bool:
        """``False`` means definitely absent; ``True`` means possibly present."""
        if not self.generations:
            return False
        words = self._words(item)
        return any(gen.test(words) for gen in self.generations)

    __contains__ = contains

    def __len__(self) -> int:
        return self.inserts

    @property
    def capacity(self) -> int:
        return sum(gen.capacity for gen in self.generations)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GrowableBloom):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def to_dict(self) -> dict[str, Any]:
        return {
            "false_positive_rate": self.false_positive_rate,
            "initial_capacity": self.initial_capacity,
            "growth_factor": self.growth_factor,
            "tightening_ratio": self.tightening_ratio,
            "inserts": self.inserts,
            "generations": [gen.to_dict() for gen in self.generations],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GrowableBloom:
        bloom = cls(
            data["false_positive_rate"],
            data["initial_capacity"],
            growth_factor=data["growth_factor"],
            tightening_ratio=data["tightening_ratio"],
        )
        bloom.generations = [Bloom.from_dict(g) for g in data["generations"]]
        bloom.inserts = data["inserts"]
        return bloom
