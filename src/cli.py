from __future__ import annotations

import argparse
import os
from typing import Dict, List, Optional

from emg_parser import CHANNEL_COUNT, EMGParserConfig, EMGSequence, load_subject, load_subject_csv
from encoding import EncodingMode
from reporting import build_report_data, write_reports
from train import (
    EVALUATIONS,
    ExperimentConfig,
    HDCConfig,
    default_experiments,
    run_sweep,
    validate_experiment_config,
    validate_hdc_config,
)
from models.hypervectors import ALGEBRA_KINDS

# Command-line interface construction.

SUBJECT_COUNT = 5


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    # Arguments shared by every command: dataset location and hypervector settings.
    parser.add_argument("dataset", help="Path to the dataset dir.")
    parser.add_argument(
        "--hdc",
        choices=sorted(ALGEBRA_KINDS),
        default="bin",
        help="Hypervector representation.",
    )
    parser.add_argument("--dim", type=int, default=10000, help="Hypervector dimensionality.")
    parser.add_argument("-l", "--levels", type=int, default=10, help="Number of levels.")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for the item memories.")
    parser.add_argument("--subjects", type=int, default=SUBJECT_COUNT, help="Number of subjects to load.")
    parser.add_argument("--channels", type=int, default=CHANNEL_COUNT, help="EMG channels per sample.")
    parser.add_argument(
        "--input-format",
        choices=("bin", "csv"),
        default="bin",
        help="Read complete<N>.bin/labels<N>.bin or complete<N>.csv per subject.",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output directory for reports (defaults to <dataset>/reports).",
    )


def build_parser() -> argparse.ArgumentParser:
    # Define CLI commands for the default sweep and for a single experiment.
    parser = argparse.ArgumentParser(description="EMG hyperdimensional computing CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sweep_parser = subparsers.add_parser("sweep", help="Run the spatial and temporal reference experiments")
    _add_common_arguments(sweep_parser)

    run_parser = subparsers.add_parser("run", help="Run a single experiment")
    _add_common_arguments(run_parser)
    run_parser.add_argument(
        "--mode",
        choices=[mode.value for mode in EncodingMode],
        default=EncodingMode.SPATIAL.value,
        help="Encoding mode.",
    )
    run_parser.add_argument("--n-grams", type=int, default=1, help="Samples per encoded window.")
    run_parser.add_argument("--downsample", type=int, default=1, help="Keep every n-th sample.")
    run_parser.add_argument(
        "--training-fraction",
        type=float,
        default=0.25,
        help="Fraction of each gesture's samples used for training.",
    )
    run_parser.add_argument(
        "--evaluation",
        choices=EVALUATIONS,
        default="accuracy",
        help="Score every window (accuracy) or every gesture run (slicing).",
    )

    return parser


def load_sequences(
    dataset_dir: str,
    subjects: int,
    channels: int = CHANNEL_COUNT,
    input_format: str = "bin",
) -> Dict[int, EMGSequence]:
    # Load every subject's recording, keyed by subject number (from 1).
    if subjects <= 0:
        raise ValueError("subjects must be a positive integer.")
    parser_config = EMGParserConfig(channels=channels)
    sequences: Dict[int, EMGSequence] = {}
    for subject in range(1, subjects + 1):
        if input_format == "csv":
            sequences[subject] = load_subject_csv(dataset_dir, subject, parser_config)
        else:
            sequences[subject] = load_subject(dataset_dir, subject, channels=channels)
    return sequences


def main(argv: Optional[List[str]] = None) -> None:
    # Entry point that wires CLI arguments to the experiment driver.
    parser = build_parser()
    args = parser.parse_args(argv)

    hdc_config = HDCConfig(
        kind=args.hdc,
        dim=args.dim,
        levels=args.levels,
        seed=args.seed,
        channels=args.channels,
    )
    validate_hdc_config(hdc_config)

    if args.command == "sweep":
        experiments = default_experiments()
    else:
        experiment = ExperimentConfig(
            name=args.mode,
            mode=EncodingMode(args.mode),
            n_grams=args.n_grams,
            downsample_rate=args.downsample,
            training_fraction=args.training_fraction,
            evaluation=args.evaluation,
        )
        validate_experiment_config(experiment)
        experiments = [experiment]

    sequences = load_sequences(args.dataset, args.subjects, args.channels, args.input_format)
    results = run_sweep(sequences, experiments, hdc_config)

    report_data = build_report_data(hdc_config, results)
    report_dir = args.output_dir or os.path.join(os.path.abspath(args.dataset), "reports")
    write_reports(report_data, report_dir, f"{args.command}_report")


if __name__ == "__main__":
    main()
