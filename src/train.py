from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import torch

from data_pipeline import prepare_subject_data
from emg_parser import CHANNEL_COUNT, EMGSequence
from encoding import EncodingMode, QuantizerConfig, encode_window, validate_quantizer_config
from evaluate import (
    LABEL_BASE,
    ClassificationMetrics,
    compute_classification_metrics,
    predict_sequence,
    score_predictions,
    slice_evaluate,
)
from models.associative_memory import AssociativeMemory
from models.hypervectors import ALGEBRA_KINDS, make_algebra
from models.item_memory import ContinuousItemMemory, ItemMemory

# Some vocabulary:
# - "Item memory": a fixed table of random hypervectors, one per channel (or
#                  per amplitude level), shared by every encoding call.
# - "Prototype": the bundle of all encoded training windows of one gesture.
# - "Associative memory": the list of prototypes, one per gesture, searched
#                         for the closest match at prediction time.
# - "Seed": initializes the random generator of the item memories, so the same
#           seed reproduces the same prototypes and accuracies.

EVALUATIONS = ("accuracy", "slicing")


@dataclass(frozen=True)
class HDCConfig:
    kind: str = "bin"
    dim: int = 10000
    levels: int = 10
    seed: int = 42
    channels: int = CHANNEL_COUNT
    min_amplitude: float = 0.0
    max_amplitude: float = 20.0

    @property
    def quantizer(self) -> QuantizerConfig:
        return QuantizerConfig(
            levels=self.levels,
            min_amplitude=self.min_amplitude,
            max_amplitude=self.max_amplitude,
        )


@dataclass(frozen=True)
class ExperimentConfig:
    name: str
    mode: EncodingMode
    n_grams: int
    downsample_rate: int = 1
    training_fraction: float = 0.25
    evaluation: str = "accuracy"
    # Per-subject downsample rates, keyed by subject number (from 1).
    downsample_overrides: Dict[int, int] = field(default_factory=dict)

    def downsample_rate_for(self, subject: int) -> int:
        return int(self.downsample_overrides.get(subject, self.downsample_rate))


@dataclass
class SubjectResult:
    subject: int
    accuracy: Optional[float]
    downsample_rate: int
    train_size: int
    test_size: int
    prototypes: int
    metrics: Optional[ClassificationMetrics] = None


@dataclass
class ExperimentResult:
    experiment: ExperimentConfig
    subjects: List[SubjectResult] = field(default_factory=list)

    @property
    def mean_accuracy(self) -> Optional[float]:
        scored = [result.accuracy for result in self.subjects if result.accuracy is not None]
        if not scored:
            return None
        return sum(scored) / len(scored)


def default_experiments() -> List[ExperimentConfig]:
    # The two reference experiments: spatial encoding scored per sample and
    # temporal 4-gram encoding scored per gesture run.
    return [
        ExperimentConfig(
            name="spatial",
            mode=EncodingMode.SPATIAL,
            n_grams=1,
            downsample_rate=1,
            training_fraction=0.25,
            evaluation="accuracy",
        ),
        ExperimentConfig(
            name="temporal",
            mode=EncodingMode.TEMPORAL,
            n_grams=4,
            downsample_rate=250,
            training_fraction=0.25,
            evaluation="slicing",
            downsample_overrides={5: 50},
        ),
    ]


def validate_hdc_config(config: HDCConfig) -> None:
    # Reject settings the encoder or the algebra cannot work with.
    if config.kind not in ALGEBRA_KINDS:
        raise ValueError(f"kind must be one of: {', '.join(ALGEBRA_KINDS)}")
    if config.dim <= 0:
        raise ValueError("dim must be a positive integer.")
    if config.channels <= 0:
        raise ValueError("channels must be a positive integer.")
    validate_quantizer_config(config.quantizer)
    # Binary and integer levels flip dim // 2 // (levels - 1) positions per step.
    if config.kind != "float" and config.levels > 1 and config.dim // 2 < config.levels - 1:
        raise ValueError(
            f"dim {config.dim} is too small for {config.levels} distinct levels; "
            f"it must be at least {2 * (config.levels - 1)}."
        )


def validate_experiment_config(config: ExperimentConfig) -> None:
    if config.n_grams <= 0:
        raise ValueError("n_grams must be a positive integer.")
    if config.downsample_rate <= 0 or any(rate <= 0 for rate in config.downsample_overrides.values()):
        raise ValueError("downsample rates must be positive integers.")
    if not 0.0 < config.training_fraction <= 1.0:
        raise ValueError("training_fraction must be in (0, 1].")
    if config.evaluation not in EVALUATIONS:
        raise ValueError(f"evaluation must be one of: {', '.join(EVALUATIONS)}")
    EncodingMode(config.mode)


def build_item_memories(config: HDCConfig) -> Tuple[ItemMemory, ContinuousItemMemory]:
    # Create the channel and level item memories once; they are shared read-only.
    validate_hdc_config(config)
    algebra = make_algebra(config.kind, config.dim, seed=config.seed)
    idm = ItemMemory(algebra, config.channels)
    cim = ContinuousItemMemory(algebra, config.levels)
    return idm, cim


def train_associative_memory(
    quantizer: QuantizerConfig,
    n_grams: int,
    sequence: EMGSequence,
    idm: ItemMemory,
    cim: ContinuousItemMemory,
    mode: EncodingMode,
) -> AssociativeMemory:
    # Bundle the encoded windows of each label run into one prototype per class.
    if n_grams <= 0:
        raise ValueError("n_grams must be a positive integer.")
    labels = [int(label) for label in sequence.labels.tolist()]
    if not labels:
        raise ValueError("Training sequence is empty.")
    if labels[0] != min(labels):
        raise ValueError("Training labels must be grouped by class in ascending label order.")

    am = AssociativeMemory(idm.algebra)
    current = labels[0]
    finished = set()
    encoded: List[torch.Tensor] = []

    for index in range(len(labels) - n_grams + 1):
        if labels[index] != current:
            am.append(_bundle_class(idm, encoded, current, n_grams))
            encoded = []
            finished.add(current)
            if labels[index] in finished or labels[index] < current:
                raise ValueError(
                    f"Label {labels[index]} at position {index} breaks the ascending class grouping."
                )
            current = labels[index]

        # Windows that straddle a label change are not training examples.
        if labels[index] == labels[index + n_grams - 1]:
            encoded.append(encode_window(quantizer, n_grams, index, sequence.samples, idm, cim, mode))

    am.append(_bundle_class(idm, encoded, current, n_grams))
    finished.add(current)

    # Classes confined to the last n_grams - 1 samples are never scanned.
    unreached = sorted(set(labels) - finished)
    if unreached:
        _bundle_class(idm, [], unreached[0], n_grams)
    return am


def _bundle_class(idm: ItemMemory, encoded: Sequence[torch.Tensor], label: int, n_grams: int) -> torch.Tensor:
    if not encoded:
        raise ValueError(f"Label {label} has no complete {n_grams}-sample window to train on.")
    return idm.algebra.bundle(encoded)


def evaluate_subject(
    subject: int,
    sequence: EMGSequence,
    experiment: ExperimentConfig,
    hdc_config: HDCConfig,
    idm: ItemMemory,
    cim: ContinuousItemMemory,
) -> SubjectResult:
    # Downsample, split, train, and score one subject's recording.
    rate = experiment.downsample_rate_for(subject)
    data = prepare_subject_data(sequence, rate, experiment.training_fraction)
    quantizer = hdc_config.quantizer

    am = train_associative_memory(quantizer, experiment.n_grams, data.train, idm, cim, experiment.mode)

    metrics: Optional[ClassificationMetrics] = None
    if experiment.evaluation == "slicing":
        accuracy = slice_evaluate(quantizer, experiment.n_grams, data.test, idm, cim, am, experiment.mode)
    else:
        predictions, targets = predict_sequence(
            quantizer, experiment.n_grams, data.test, idm, cim, am, experiment.mode
        )
        accuracy = score_predictions(predictions, targets, len(data.test))
        if targets and min(targets) >= LABEL_BASE:
            num_classes = max(len(am), max(targets) - LABEL_BASE + 1)
            metrics = compute_classification_metrics(
                torch.tensor([value - LABEL_BASE for value in predictions]),
                torch.tensor([value - LABEL_BASE for value in targets]),
                num_classes,
            )

    return SubjectResult(
        subject=subject,
        accuracy=accuracy,
        downsample_rate=rate,
        train_size=len(data.train),
        test_size=len(data.test),
        prototypes=len(am),
        metrics=metrics,
    )


def format_experiment_header(experiment: ExperimentConfig, hdc_config: HDCConfig) -> str:
    return (
        f"D: {hdc_config.dim}"
        f" Levels: {hdc_config.levels}"
        f" Encode type: {EncodingMode(experiment.mode).name}"
        f" N-grams: {experiment.n_grams}"
        f" Training Fraction: {experiment.training_fraction * 100.0}%"
        f" Downsample: {experiment.downsample_rate}"
    )


def format_accuracy(accuracy: Optional[float]) -> str:
    if accuracy is None:
        return "n/a (no predictions)"
    return f"{accuracy:.4f}%"


def run_experiment(
    sequences: Mapping[int, EMGSequence],
    experiment: ExperimentConfig,
    hdc_config: HDCConfig,
    idm: ItemMemory,
    cim: ContinuousItemMemory,
) -> ExperimentResult:
    # Train and score every subject with one experiment configuration.
    validate_experiment_config(experiment)
    print(f"{experiment.name.capitalize()} encoding")
    print(format_experiment_header(experiment, hdc_config))

    result = ExperimentResult(experiment=experiment)
    for subject in sorted(sequences):
        subject_result = evaluate_subject(subject, sequences[subject], experiment, hdc_config, idm, cim)
        print(f"Accuracy[{subject}]: {format_accuracy(subject_result.accuracy)}")
        result.subjects.append(subject_result)
    return result


def run_sweep(
    sequences: Mapping[int, EMGSequence],
    experiments: Sequence[ExperimentConfig],
    hdc_config: HDCConfig,
) -> List[ExperimentResult]:
    # Run every experiment against the same item memories.
    idm, cim = build_item_memories(hdc_config)
    print(f"emg {hdc_config.kind}")
    return [run_experiment(sequences, experiment, hdc_config, idm, cim) for experiment in experiments]
