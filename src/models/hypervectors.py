from __future__ import annotations

from abc import ABC, abstractmethod
from functools import reduce
from typing import Dict, Sequence, Type

import torch

# Hypervectors are plain 1-D tensors of length `dim`. Every operation below
# returns a new tensor; nothing is modified in place once it has been created.
#
# Three representations share one interface:
# - "bin":   boolean elements, XOR binding, majority bundling, Hamming distance.
# - "int":   bipolar integer elements, product binding, sum bundling, cosine distance.
# - "float": Gaussian float elements, product binding, sum bundling, cosine distance.


class VectorAlgebra(ABC):
    kind: str = ""

    def __init__(self, dim: int, seed: int = 0) -> None:
        if dim <= 0:
            raise ValueError("dim must be a positive integer.")
        self.dim = int(dim)
        self.seed = int(seed)
        self.generator = torch.Generator().manual_seed(self.seed)

    @abstractmethod
    def random(self, count: int) -> torch.Tensor:
        # Independent random hypervectors, one per row.
        ...

    @abstractmethod
    def levels(self, count: int) -> torch.Tensor:
        # Correlated hypervectors: adjacent rows are closer than distant ones.
        ...

    @abstractmethod
    def bundle(self, vectors: Sequence[torch.Tensor]) -> torch.Tensor:
        ...

    @abstractmethod
    def bind(self, vectors: Sequence[torch.Tensor]) -> torch.Tensor:
        ...

    @abstractmethod
    def distance(self, a: torch.Tensor, b: torch.Tensor) -> float:
        # Symmetric and normalized to [0, 1]; smaller means more similar.
        ...

    def permute(self, vector: torch.Tensor, shift: int) -> torch.Tensor:
        # Cyclic shift used to tag a vector with its position in a sequence.
        return torch.roll(vector, shifts=int(shift), dims=-1)

    def _stack(self, vectors: Sequence[torch.Tensor], operation: str) -> torch.Tensor:
        if len(vectors) == 0:
            raise ValueError(f"Cannot {operation} an empty list of hypervectors.")
        stacked = torch.stack(list(vectors))
        if stacked.shape[-1] != self.dim:
            raise ValueError(
                f"Hypervector dimension {stacked.shape[-1]} does not match algebra dimension {self.dim}."
            )
        return stacked

    def _flip_counts(self, count: int) -> int:
        # Positions flipped between two adjacent levels so that the first and
        # last level end up roughly orthogonal.
        if count <= 1:
            return 0
        return self.dim // 2 // (count - 1)


class BinaryAlgebra(VectorAlgebra):
    kind = "bin"

    def __init__(self, dim: int, seed: int = 0) -> None:
        super().__init__(dim, seed)
        # Majority bundling of an even number of operands needs a fixed tie-breaker.
        self.tie_breaker = self.random(1)[0]

    def random(self, count: int) -> torch.Tensor:
        return torch.rand((int(count), self.dim), generator=self.generator) < 0.5

    def levels(self, count: int) -> torch.Tensor:
        count = int(count)
        if count <= 0:
            raise ValueError("count must be a positive integer.")
        base = self.random(1)[0]
        order = torch.randperm(self.dim, generator=self.generator)
        step = self._flip_counts(count)

        rows = []
        for level in range(count):
            mask = torch.zeros(self.dim, dtype=torch.bool)
            mask[order[: level * step]] = True
            rows.append(torch.logical_xor(base, mask))
        return torch.stack(rows)

    def bundle(self, vectors: Sequence[torch.Tensor]) -> torch.Tensor:
        stacked = self._stack(vectors, "bundle")
        votes = stacked.to(torch.int64).sum(dim=0) * 2
        total = stacked.shape[0]
        result = votes > total
        ties = votes == total
        return torch.where(ties, self.tie_breaker, result)

    def bind(self, vectors: Sequence[torch.Tensor]) -> torch.Tensor:
        stacked = self._stack(vectors, "bind")
        return reduce(torch.logical_xor, stacked.unbind(0))

    def distance(self, a: torch.Tensor, b: torch.Tensor) -> float:
        return float(torch.count_nonzero(a != b).item()) / float(self.dim)


class _CosineAlgebra(VectorAlgebra):
    # Shared arithmetic for the integer and float representations.

    def bundle(self, vectors: Sequence[torch.Tensor]) -> torch.Tensor:
        return self._stack(vectors, "bundle").sum(dim=0)

    def bind(self, vectors: Sequence[torch.Tensor]) -> torch.Tensor:
        stacked = self._stack(vectors, "bind")
        return reduce(torch.mul, stacked.unbind(0))

    def distance(self, a: torch.Tensor, b: torch.Tensor) -> float:
        a64 = a.to(torch.float64)
        b64 = b.to(torch.float64)
        norm = float(torch.linalg.vector_norm(a64).item() * torch.linalg.vector_norm(b64).item())
        if norm == 0.0:
            # A zero vector is equally unrelated to everything.
            return 0.5
        cosine = float(torch.dot(a64, b64).item()) / norm
        cosine = max(-1.0, min(1.0, cosine))
        return (1.0 - cosine) / 2.0


class IntegerAlgebra(_CosineAlgebra):
    kind = "int"

    def random(self, count: int) -> torch.Tensor:
        bits = torch.randint(0, 2, (int(count), self.dim), generator=self.generator, dtype=torch.int64)
        return bits * 2 - 1

    def levels(self, count: int) -> torch.Tensor:
        count = int(count)
        if count <= 0:
            raise ValueError("count must be a positive integer.")
        base = self.random(1)[0]
        order = torch.randperm(self.dim, generator=self.generator)
        step = self._flip_counts(count)

        rows = []
        for level in range(count):
            signs = torch.ones(self.dim, dtype=torch.int64)
            signs[order[: level * step]] = -1
            rows.append(base * signs)
        return torch.stack(rows)


class FloatAlgebra(_CosineAlgebra):
    kind = "float"

    def random(self, count: int) -> torch.Tensor:
        return torch.randn((int(count), self.dim), generator=self.generator, dtype=torch.float32)

    def levels(self, count: int) -> torch.Tensor:
        count = int(count)
        if count <= 0:
            raise ValueError("count must be a positive integer.")
        low, high = self.random(2)
        if count == 1:
            return low.unsqueeze(0)
        weights = torch.linspace(0.0, 1.0, count, dtype=torch.float32).unsqueeze(1)
        return (1.0 - weights) * low + weights * high


ALGEBRA_KINDS: Dict[str, Type[VectorAlgebra]] = {
    BinaryAlgebra.kind: BinaryAlgebra,
    IntegerAlgebra.kind: IntegerAlgebra,
    FloatAlgebra.kind: FloatAlgebra,
}


def make_algebra(kind: str, dim: int, seed: int = 0) -> VectorAlgebra:
    # Select the hypervector representation once; every component receives it.
    try:
        algebra_cls = ALGEBRA_KINDS[kind]
    except KeyError:
        raise ValueError(
            f"Unknown hypervector kind '{kind}'. Expected one of: {', '.join(ALGEBRA_KINDS)}"
        ) from None
    return algebra_cls(dim, seed=seed)
