from __future__ import annotations

from dataclasses import dataclass
import os
from typing import List, Sequence

import numpy as np
import pandas as pd
import torch

# Each sample holds one amplitude per EMG channel. Gesture labels run from 1
# to 7, with 1 used for "no gesture".
CHANNEL_COUNT = 4
LABEL_RANGE = (1, 7)
SAMPLE_DTYPE = np.dtype("<f8")
LABEL_DTYPE = np.dtype("u1")


@dataclass(frozen=True)
class EMGParserConfig:
    channels: int = CHANNEL_COUNT
    label_range: Sequence[int] = LABEL_RANGE


@dataclass(frozen=True)
class EMGSequence:
    samples: torch.Tensor
    labels: torch.Tensor

    def __post_init__(self) -> None:
        # Samples and labels are parallel arrays; anything else is a caller bug.
        if self.samples.dim() != 2:
            raise ValueError("samples must be a 2-D tensor of shape (length, channels).")
        if self.labels.dim() != 1:
            raise ValueError("labels must be a 1-D tensor.")
        if int(self.samples.shape[0]) != int(self.labels.shape[0]):
            raise ValueError(
                f"Sample count {int(self.samples.shape[0])} does not match label count {int(self.labels.shape[0])}."
            )

    def __len__(self) -> int:
        return int(self.labels.shape[0])

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1])

    @classmethod
    def from_lists(cls, samples: Sequence[Sequence[float]], labels: Sequence[int]) -> "EMGSequence":
        # Convenience constructor for hand-written or generated data.
        sample_tensor = torch.tensor(list(samples), dtype=torch.float64)
        if sample_tensor.dim() == 1:
            sample_tensor = sample_tensor.reshape(0, CHANNEL_COUNT)
        return cls(samples=sample_tensor, labels=torch.tensor(list(labels), dtype=torch.int64))


def parse_emg_buffers(sample_bytes: bytes, label_bytes: bytes, channels: int = CHANNEL_COUNT) -> EMGSequence:
    # Decode little-endian float64 channel tuples and uint8 labels.
    if channels <= 0:
        raise ValueError("channels must be a positive integer.")
    entry_size = SAMPLE_DTYPE.itemsize * channels
    if len(sample_bytes) % entry_size != 0:
        raise ValueError(
            f"Sample buffer size {len(sample_bytes)} is not a multiple of the entry size {entry_size}."
        )
    if len(label_bytes) % LABEL_DTYPE.itemsize != 0:
        raise ValueError("Label buffer size is not a multiple of the label size.")

    samples = np.frombuffer(sample_bytes, dtype=SAMPLE_DTYPE).reshape(-1, channels)
    labels = np.frombuffer(label_bytes, dtype=LABEL_DTYPE)

    return EMGSequence(
        samples=torch.from_numpy(samples.astype(np.float64)),
        labels=torch.from_numpy(labels.astype(np.int64)),
    )


def load_subject(dataset_dir: str, subject: int, channels: int = CHANNEL_COUNT) -> EMGSequence:
    # Read complete<N>.bin and labels<N>.bin for one subject (numbered from 1).
    sample_path = os.path.join(dataset_dir, f"complete{subject}.bin")
    label_path = os.path.join(dataset_dir, f"labels{subject}.bin")
    with open(sample_path, "rb") as handle:
        sample_bytes = handle.read()
    with open(label_path, "rb") as handle:
        label_bytes = handle.read()
    return parse_emg_buffers(sample_bytes, label_bytes, channels=channels)


def channel_columns(channels: int) -> List[str]:
    return [f"ch{index}" for index in range(1, int(channels) + 1)]


def parse_emg_csv(path: str, config: EMGParserConfig) -> EMGSequence:
    # Read an exported CSV (ch1..chN,label) into a sequence.
    _validate_config(config)
    df = pd.read_csv(path)
    columns = channel_columns(config.channels)
    _validate_dataframe(df, columns)
    df = _coerce(df, columns, config.label_range)

    return EMGSequence(
        samples=torch.tensor(df[columns].to_numpy(dtype=np.float64), dtype=torch.float64).reshape(-1, config.channels),
        labels=torch.tensor(df["label"].to_numpy(dtype=np.int64), dtype=torch.int64),
    )


def load_subject_csv(dataset_dir: str, subject: int, config: EMGParserConfig) -> EMGSequence:
    return parse_emg_csv(os.path.join(dataset_dir, f"complete{subject}.csv"), config)


def _validate_config(config: EMGParserConfig) -> None:
    # Guard against invalid parser settings before reading any data.
    if config.channels <= 0:
        raise ValueError("channels must be a positive integer.")
    if len(config.label_range) != 2 or int(config.label_range[0]) > int(config.label_range[1]):
        raise ValueError("label_range must be a (lower, upper) pair with lower <= upper.")


def _validate_dataframe(df: pd.DataFrame, columns: Sequence[str]) -> None:
    # Check that the DataFrame includes every channel column plus the label.
    missing = [col for col in (*columns, "label") if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")


def _coerce(df: pd.DataFrame, columns: Sequence[str], label_range: Sequence[int]) -> pd.DataFrame:
    # Convert channel values to floats and labels to integers.
    df = df.copy()

    for column in columns:
        df[column] = pd.to_numeric(df[column], errors="coerce")
        if df[column].isna().any():
            raise ValueError(f"Non-numeric values found in column: {column}")

    series = pd.to_numeric(df["label"], errors="coerce")
    if series.isna().any():
        raise ValueError("Missing or non-numeric values found in column: label")
    if (series % 1 != 0).any():
        raise ValueError("Non-integer values found in column: label")
    df["label"] = series.astype(int)

    _enforce_label_range(df, "label", label_range)
    return df


def _enforce_label_range(df: pd.DataFrame, column: str, valid_range: Sequence[int]) -> None:
    # Validate that label values fall within the allowed range.
    lower, upper = int(valid_range[0]), int(valid_range[1])
    out_of_range = ~df[column].between(lower, upper)
    if out_of_range.any():
        raise ValueError(
            f"Values in column '{column}' must be in range {lower}-{upper} (inclusive)."
        )
