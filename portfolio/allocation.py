from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple


@dataclass(frozen=True)
class Allocation:
    handle: str
    weight: int  # basis points of SCALE


@dataclass(frozen=True)
class AllocationSet:
    """Immutable allocation list. Replaced wholesale, never patched."""

    entries: Tuple[Allocation, ...] = ()

    @classmethod
    def build(cls, handles: Sequence[str], weights: Sequence[int]) -> "AllocationSet":
        return cls(tuple(Allocation(h, int(w)) for h, w in zip(handles, weights)))

    def __iter__(self) -> Iterator[Allocation]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def handles(self) -> Tuple[str, ...]:
        return tuple(a.handle for a in self.entries)

    @property
    def weights(self) -> Tuple[int, ...]:
        return tuple(a.weight for a in self.entries)

    def total_weight(self) -> int:
        return sum(self.weights)
