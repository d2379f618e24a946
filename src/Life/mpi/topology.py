"""Linear chain of workers with solid walls at both ends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class ChainTopology:
    """Upward/downward neighbours of one worker in a non-periodic chain.

    Rank 0 owns the top band of the grid, rank ``size - 1`` the bottom band.
    A missing neighbour (``None``) means the band touches the grid edge.
    """

    rank: int
    size: int

    def __post_init__(self):
        if self.size < 1 or not 0 <= self.rank < self.size:
            raise ValueError(f"Invalid rank {self.rank} for chain of {self.size} workers")

    @property
    def above(self) -> Optional[int]:
        return self.rank - 1 if self.rank > 0 else None

    @property
    def below(self) -> Optional[int]:
        return self.rank + 1 if self.rank < self.size - 1 else None

    @property
    def has_above(self) -> bool:
        return self.above is not None

    @property
    def has_below(self) -> bool:
        return self.below is not None

    @property
    def neighbors(self) -> Dict[str, Optional[int]]:
        return {"above": self.above, "below": self.below}

    @property
    def n_neighbors(self) -> int:
        return sum(n is not None for n in self.neighbors.values())
