from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple, TypedDict

import torch

from emg_parser import LABEL_RANGE, EMGSequence
from encoding import EncodingMode, QuantizerConfig, encode_window
from models.associative_memory import AssociativeMemory
from models.item_memory import ContinuousItemMemory, ItemMemory

# Two ways of scoring a trained associative memory:
# - "Whole-sequence accuracy": classify every window start on its own. The
#   score divides by the full sequence length, so tail samples that cannot
#   start a window count as misses.
# - "Slicing": split the labels into runs of the same gesture, classify each
#   run as a whole, and score the fraction of runs classified correctly.
#
# Accuracies are percentages in [0, 100]. None means nothing was predicted.

# Prototype index 0 corresponds to this label in whole-sequence scoring.
LABEL_BASE = int(LABEL_RANGE[0])


class ClassificationMetrics(TypedDict):
    accuracy: float
    precision: float
    recall: float
    f1: float
    confusion_matrix: List[List[int]]


class RunState(Enum):
    SEEKING_START = "seeking_start"
    ACCUMULATING = "accumulating"


@dataclass(frozen=True)
class LabelRun:
    start: int
    stop: int
    label: int


def compute_classification_metrics(
    predictions: torch.Tensor,
    targets: torch.Tensor,
    num_classes: int,
) -> ClassificationMetrics:
    # Compute accuracy, precision, recall, f1, and confusion matrix from class indexes.
    if num_classes <= 0:
        return {
            "accuracy": 0.0,
            "precision": 0.0,
            "recall": 0.0,
            "f1": 0.0,
            "confusion_matrix": [],
        }

    preds = predictions.to(torch.long).cpu()
    targs = targets.to(torch.long).cpu()
    # Row = true gesture index, column = predicted gesture index.
    confusion = torch.bincount(targs * num_classes + preds, minlength=num_classes * num_classes)
    confusion = confusion.reshape(num_classes, num_classes)

    true_positives = confusion.diag().to(torch.float64)
    predicted_counts = confusion.sum(dim=0).to(torch.float64)
    actual_counts = confusion.sum(dim=1).to(torch.float64)
    total = float(actual_counts.sum().item())

    # A class that is never predicted (or never present) has zero true positives.
    precision = true_positives / predicted_counts.clamp(min=1.0)
    recall = true_positives / actual_counts.clamp(min=1.0)
    denominator = precision + recall
    f1 = torch.where(
        denominator > 0,
        2.0 * precision * recall / denominator.clamp(min=1e-12),
        torch.zeros_like(denominator),
    )

    return {
        "accuracy": float(true_positives.sum().item() / total) if total > 0 else 0.0,
        "precision": float(precision.mean().item()),
        "recall": float(recall.mean().item()),
        "f1": float(f1.mean().item()),
        "confusion_matrix": confusion.tolist(),
    }


def predict_sequence(
    quantizer: QuantizerConfig,
    n_grams: int,
    sequence: EMGSequence,
    idm: ItemMemory,
    cim: ContinuousItemMemory,
    am: AssociativeMemory,
    mode: EncodingMode,
) -> Tuple[List[int], List[int]]:
    # Predict a label for every window start; returns (predicted labels, true labels).
    predictions: List[int] = []
    targets: List[int] = []
    labels = sequence.labels.tolist()

    for index in range(len(sequence) - n_grams + 1):
        query = encode_window(quantizer, n_grams, index, sequence.samples, idm, cim, mode)
        predictions.append(am.search(query) + LABEL_BASE)
        targets.append(int(labels[index]))

    return predictions, targets


def score_predictions(predictions: Sequence[int], targets: Sequence[int], sequence_length: int) -> Optional[float]:
    # Percentage of correct predictions over the whole sequence length.
    if sequence_length <= 0 or not predictions:
        return None
    correct = sum(1 for predicted, target in zip(predictions, targets) if predicted == target)
    return correct / sequence_length * 100.0


def predict_accuracy(
    quantizer: QuantizerConfig,
    n_grams: int,
    sequence: EMGSequence,
    idm: ItemMemory,
    cim: ContinuousItemMemory,
    am: AssociativeMemory,
    mode: EncodingMode,
) -> Optional[float]:
    predictions, targets = predict_sequence(quantizer, n_grams, sequence, idm, cim, am, mode)
    return score_predictions(predictions, targets, len(sequence))


def predict_window_max(
    quantizer: QuantizerConfig,
    n_grams: int,
    start: int,
    stop: int,
    samples: torch.Tensor,
    idm: ItemMemory,
    cim: ContinuousItemMemory,
    am: AssociativeMemory,
    mode: EncodingMode,
) -> int:
    # Class of the single closest (window, prototype) pair over window starts [start, stop).
    if stop <= start:
        raise ValueError(f"Empty window range [{start}, {stop}).")

    best_index = 0
    best_distance = float("inf")
    for window_start in range(start, stop):
        query = encode_window(quantizer, n_grams, window_start, samples, idm, cim, mode)
        for index, distance in enumerate(am.distances(query)):
            if distance < best_distance:
                best_distance = distance
                best_index = index
    return best_index


def find_label_runs(labels: Sequence[int], n_grams: int) -> List[LabelRun]:
    # Split a label sequence into contiguous runs of at least two equal labels.
    if n_grams <= 0:
        raise ValueError("n_grams must be a positive integer.")
    labels = [int(label) for label in labels]
    runs: List[LabelRun] = []
    state = RunState.SEEKING_START
    start: Optional[int] = None

    for index in range(len(labels) - max(n_grams, 2) + 1):
        same = labels[index] == labels[index + 1]
        if state is RunState.SEEKING_START and same:
            start = index
            state = RunState.ACCUMULATING
        elif state is RunState.ACCUMULATING and same:
            continue
        elif state is RunState.ACCUMULATING and start is not None:
            runs.append(LabelRun(start=start, stop=index, label=labels[start]))
            start = None
            state = RunState.SEEKING_START
        else:
            raise RuntimeError(
                f"Unreachable condition in find_label_runs(): isolated label {labels[index]} at position {index}."
            )

    if state is RunState.ACCUMULATING and start is not None:
        # The last run reaches the end of the scan; close it at the last window start.
        runs.append(LabelRun(start=start, stop=len(labels) - n_grams + 1, label=labels[start]))

    return runs


def slice_evaluate(
    quantizer: QuantizerConfig,
    n_grams: int,
    sequence: EMGSequence,
    idm: ItemMemory,
    cim: ContinuousItemMemory,
    am: AssociativeMemory,
    mode: EncodingMode,
) -> Optional[float]:
    # Percentage of label runs whose best-matching window picks the right class.
    if len(sequence) == 0:
        return None

    labels = sequence.labels.tolist()
    min_label = min(int(label) for label in labels)
    last_window_end = len(sequence) - n_grams + 1

    predictions = 0
    correct = 0
    for run in find_label_runs(labels, n_grams):
        window = max(run.stop - run.start, n_grams)
        stop = min(run.start + window, last_window_end)
        predicted = predict_window_max(
            quantizer, n_grams, run.start, stop, sequence.samples, idm, cim, am, mode
        )

        predictions += 1
        if predicted + min_label == run.label:
            correct += 1

    if predictions == 0:
        return None
    return correct / predictions * 100.0
