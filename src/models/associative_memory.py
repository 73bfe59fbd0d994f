from __future__ import annotations

from typing import Iterator, List, Tuple

import torch

from models.hypervectors import VectorAlgebra

# The associative memory holds one prototype hypervector per class. The list
# position is the class index: index 0 is the lowest label seen in training,
# index 1 the next one, and so on.


class AssociativeMemory:
    def __init__(self, algebra: VectorAlgebra) -> None:
        self.algebra = algebra
        self._prototypes: List[torch.Tensor] = []

    def append(self, prototype: torch.Tensor) -> None:
        # Add the next class prototype; order defines the class index.
        if prototype.shape[-1] != self.algebra.dim:
            raise ValueError(
                f"Prototype dimension {prototype.shape[-1]} does not match algebra dimension {self.algebra.dim}."
            )
        self._prototypes.append(prototype)

    @property
    def prototypes(self) -> Tuple[torch.Tensor, ...]:
        return tuple(self._prototypes)

    def __len__(self) -> int:
        return len(self._prototypes)

    def __iter__(self) -> Iterator[torch.Tensor]:
        return iter(self._prototypes)

    def at(self, index: int) -> torch.Tensor:
        return self._prototypes[index]

    def distances(self, query: torch.Tensor) -> List[float]:
        # Distance from the query to every prototype, in class-index order.
        if not self._prototypes:
            raise ValueError("Associative memory is empty; train it before searching.")
        return [self.algebra.distance(query, prototype) for prototype in self._prototypes]

    def search(self, query: torch.Tensor) -> int:
        # Nearest prototype wins; on equal distance the lowest index is kept.
        distances = self.distances(query)
        best_index = 0
        best_distance = distances[0]
        for index, distance in enumerate(distances[1:], start=1):
            if distance < best_distance:
                best_distance = distance
                best_index = index
        return best_index
