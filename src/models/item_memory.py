from __future__ import annotations

import torch

from models.hypervectors import VectorAlgebra

# Item memories are lookup tables built once per run and only read afterwards.
# - ItemMemory: one independent random hypervector per channel index.
# - ContinuousItemMemory: one hypervector per quantization level, where
#   neighbouring levels share most of their elements.


class ItemMemory:
    def __init__(self, algebra: VectorAlgebra, count: int) -> None:
        # Draw `count` independent hypervectors from the algebra's generator.
        if count <= 0:
            raise ValueError("Item memory size must be a positive integer.")
        self.algebra = algebra
        self.vectors = self._build(int(count))

    def _build(self, count: int) -> torch.Tensor:
        return self.algebra.random(count)

    def __len__(self) -> int:
        return int(self.vectors.shape[0])

    def at(self, index: int) -> torch.Tensor:
        # Return the hypervector for a symbol, rejecting unknown symbols.
        if index < 0 or index >= len(self):
            raise IndexError(f"Item memory index {index} out of range (size {len(self)}).")
        return self.vectors[index]

    def __getitem__(self, index: int) -> torch.Tensor:
        return self.at(index)


class ContinuousItemMemory(ItemMemory):
    def _build(self, count: int) -> torch.Tensor:
        return self.algebra.levels(count)
