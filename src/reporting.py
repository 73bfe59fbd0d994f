from __future__ import annotations

import json
import os
from typing import Any, Dict, Iterable, List, Optional

from encoding import EncodingMode
from train import ExperimentResult, HDCConfig


def _format_percent(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.4f}"


def build_report_data(hdc_config: HDCConfig, results: Iterable[ExperimentResult]) -> Dict[str, Any]:
    # Bundle the run configuration and per-subject accuracies into one payload.
    experiments: List[Dict[str, Any]] = []
    for result in results:
        experiment = result.experiment
        experiments.append(
            {
                "name": experiment.name,
                "mode": EncodingMode(experiment.mode).value,
                "n_grams": int(experiment.n_grams),
                "downsample_rate": int(experiment.downsample_rate),
                "training_fraction": float(experiment.training_fraction),
                "evaluation": experiment.evaluation,
                "mean_accuracy": result.mean_accuracy,
                "subjects": [
                    {
                        "subject": int(subject.subject),
                        "accuracy": subject.accuracy,
                        "downsample_rate": int(subject.downsample_rate),
                        "train_size": int(subject.train_size),
                        "test_size": int(subject.test_size),
                        "prototypes": int(subject.prototypes),
                        "metrics": subject.metrics,
                    }
                    for subject in result.subjects
                ],
            }
        )

    return {
        "config": {
            "kind": hdc_config.kind,
            "dim": int(hdc_config.dim),
            "levels": int(hdc_config.levels),
            "seed": int(hdc_config.seed),
            "channels": int(hdc_config.channels),
            "amplitude_range": [float(hdc_config.min_amplitude), float(hdc_config.max_amplitude)],
        },
        "experiments": experiments,
    }


def format_markdown_report(report_data: Dict[str, Any]) -> str:
    # Convert report data into a readable Markdown summary.
    config = report_data.get("config", {})
    experiments = report_data.get("experiments", [])

    lines = ["# EMG HDC Report", "", "## Configuration"]
    lines.append(f"- kind: {config.get('kind', '')}")
    lines.append(f"- dim: {config.get('dim', 0)}")
    lines.append(f"- levels: {config.get('levels', 0)}")
    lines.append(f"- seed: {config.get('seed', 0)}")
    lines.append(f"- channels: {config.get('channels', 0)}")
    lines.append("")

    for experiment in experiments:
        lines.append(f"## Experiment: {experiment.get('name', '')}")
        lines.append(f"- mode: {experiment.get('mode', '')}")
        lines.append(f"- n_grams: {experiment.get('n_grams', 0)}")
        lines.append(f"- downsample_rate: {experiment.get('downsample_rate', 0)}")
        lines.append(f"- training_fraction: {experiment.get('training_fraction', 0.0)}")
        lines.append(f"- evaluation: {experiment.get('evaluation', '')}")
        lines.append(f"- mean_accuracy: {_format_percent(experiment.get('mean_accuracy'))}")
        lines.append("")
        lines.append("| subject | accuracy (%) | downsample | train | test | prototypes |")
        lines.append("| --- | --- | --- | --- | --- | --- |")
        for subject in experiment.get("subjects", []):
            lines.append(
                f"| {subject.get('subject', 0)} | {_format_percent(subject.get('accuracy'))} "
                f"| {subject.get('downsample_rate', 0)} | {subject.get('train_size', 0)} "
                f"| {subject.get('test_size', 0)} | {subject.get('prototypes', 0)} |"
            )
        lines.append("")

        for subject in experiment.get("subjects", []):
            confusion = (subject.get("metrics") or {}).get("confusion_matrix", [])
            if not confusion:
                continue
            lines.append(f"### Confusion Matrix (subject {subject.get('subject', 0)})")
            lines.append("```")
            for row in confusion:
                lines.append(" ".join(str(value) for value in row))
            lines.append("```")
            lines.append("")

    return "\n".join(lines) + "\n"


def write_reports(report_data: Dict[str, Any], output_dir: str, report_name: str) -> Dict[str, str]:
    # Write JSON and Markdown versions of the report to disk.
    os.makedirs(output_dir, exist_ok=True)
    json_path = os.path.join(output_dir, f"{report_name}.json")
    md_path = os.path.join(output_dir, f"{report_name}.md")

    with open(json_path, "w", encoding="utf-8") as handle:
        json.dump(report_data, handle, indent=2)
        handle.write("\n")

    with open(md_path, "w", encoding="utf-8") as handle:
        handle.write(format_markdown_report(report_data))

    return {"json": json_path, "markdown": md_path}
