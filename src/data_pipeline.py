from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

import torch

from emg_parser import LABEL_RANGE, EMGSequence

# Some vocabulary used across the pipeline:
# - "Downsampling": keeping every n-th sample so neighbouring samples differ more.
# - "Training split": the first fraction of every gesture's samples, grouped
#                     gesture by gesture in ascending label order. The trainer
#                     relies on this grouping to build one prototype per gesture.
# - "Test set": the whole downsampled recording, training samples included.


@dataclass(frozen=True)
class SubjectData:
    train: EMGSequence
    test: EMGSequence


def downsample(sequence: EMGSequence, rate: int) -> EMGSequence:
    # Keep samples 0, rate, 2*rate, ... together with their labels.
    if rate <= 0:
        raise ValueError("downsample rate must be a positive integer.")
    return EMGSequence(
        samples=sequence.samples[::rate].clone(),
        labels=sequence.labels[::rate].clone(),
    )


def build_training_split(
    sequence: EMGSequence,
    training_fraction: float,
    label_range: Sequence[int] = LABEL_RANGE,
) -> EMGSequence:
    # Take the first `fraction` of each label's samples and group them by label.
    if not 0.0 <= training_fraction <= 1.0:
        raise ValueError("training_fraction must be between 0 and 1.")

    selected: List[torch.Tensor] = []
    for label in range(int(label_range[0]), int(label_range[1]) + 1):
        indexes = torch.nonzero(sequence.labels == label, as_tuple=False).flatten()
        train_size = int(int(indexes.numel()) * training_fraction)
        selected.append(indexes[:train_size])

    index = torch.cat(selected) if selected else torch.empty(0, dtype=torch.int64)
    return EMGSequence(
        samples=sequence.samples[index].reshape(-1, sequence.channels),
        labels=sequence.labels[index],
    )


def prepare_subject_data(
    sequence: EMGSequence,
    downsample_rate: int,
    training_fraction: float,
    label_range: Sequence[int] = LABEL_RANGE,
) -> SubjectData:
    # Downsample a subject's recording and carve the training split out of it.
    test = downsample(sequence, downsample_rate)
    train = build_training_split(test, training_fraction, label_range)
    return SubjectData(train=train, test=test)
