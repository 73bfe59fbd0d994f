from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List

import torch

from models.item_memory import ContinuousItemMemory, ItemMemory

# Encoding turns raw EMG samples into hypervectors:
# - "Quantization": each channel amplitude is mapped to one of `levels` bins.
# - "Spatial" encoding: bind every channel vector with the vector of its
#   amplitude level and bundle the channels into one vector per sample.
# - "Temporal" encoding: permute each sample's spatial vector by its position
#   in an n-gram window and bind the window together, so order matters.

# Dataset amplitudes lie in [0, 20]; a few readings overshoot and get clamped.
MIN_AMPLITUDE = 0.0
MAX_AMPLITUDE = 20.0


class EncodingMode(str, Enum):
    SPATIAL = "spatial"
    TEMPORAL = "temporal"


@dataclass(frozen=True)
class QuantizerConfig:
    levels: int = 10
    min_amplitude: float = MIN_AMPLITUDE
    max_amplitude: float = MAX_AMPLITUDE

    def quantize(self, amp: float) -> int:
        return quantize(amp, self.levels, self.min_amplitude, self.max_amplitude)


def validate_quantizer_config(config: QuantizerConfig) -> None:
    if config.levels <= 0:
        raise ValueError("levels must be a positive integer.")
    if config.max_amplitude <= config.min_amplitude:
        raise ValueError("max_amplitude must be greater than min_amplitude.")


def quantize(
    amp: float,
    levels: int,
    min_amplitude: float = MIN_AMPLITUDE,
    max_amplitude: float = MAX_AMPLITUDE,
) -> int:
    # Return the first equal-width bin whose upper edge is >= the clamped amplitude.
    if levels <= 0:
        raise ValueError("levels must be a positive integer.")
    amp = max_amplitude if amp > max_amplitude else amp
    step = (max_amplitude - min_amplitude) / levels

    for index in range(levels):
        top_threshold = min_amplitude + step * (index + 1)
        if amp <= top_threshold:
            return index

    raise RuntimeError(f"Unreachable condition in quantize(). Value: {amp}")


def encode_window(
    quantizer: QuantizerConfig,
    n_grams: int,
    start_index: int,
    samples: torch.Tensor,
    idm: ItemMemory,
    cim: ContinuousItemMemory,
    mode: EncodingMode,
) -> torch.Tensor:
    # Encode the window samples[start_index : start_index + n_grams] into one hypervector.
    if n_grams <= 0:
        raise ValueError("n_grams must be a positive integer.")
    if start_index < 0 or start_index + n_grams - 1 >= int(samples.shape[0]):
        raise IndexError(
            f"Window [{start_index}, {start_index + n_grams}) exceeds sequence of length {int(samples.shape[0])}."
        )

    algebra = idm.algebra
    mode = EncodingMode(mode)

    if mode is EncodingMode.SPATIAL:
        bindings: List[torch.Tensor] = []
        for offset in range(n_grams):
            bindings.extend(_channel_bindings(quantizer, samples[start_index + offset], idm, cim))
        return algebra.bundle(bindings)

    steps: List[torch.Tensor] = []
    for offset in range(n_grams):
        spatial = algebra.bundle(_channel_bindings(quantizer, samples[start_index + offset], idm, cim))
        steps.append(algebra.permute(spatial, offset))
    return algebra.bind(steps)


def _channel_bindings(
    quantizer: QuantizerConfig,
    sample: torch.Tensor,
    idm: ItemMemory,
    cim: ContinuousItemMemory,
) -> List[torch.Tensor]:
    algebra = idm.algebra
    bindings = []
    for channel, amp in enumerate(sample.tolist()):
        level = quantizer.quantize(float(amp))
        bindings.append(algebra.bind([idm.at(channel), cim.at(level)]))
    return bindings
