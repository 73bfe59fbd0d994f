import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from data_pipeline import build_training_split, downsample, prepare_subject_data
from emg_parser import EMGSequence


def _indexed_sequence(labels) -> EMGSequence:
    # Every channel carries the sample's position so selections are easy to check.
    return EMGSequence.from_lists([[float(index)] * 4 for index in range(len(labels))], labels)


class TestDownsample(unittest.TestCase):
    def test_keeps_every_nth_sample(self) -> None:
        sequence = _indexed_sequence([1, 1, 2, 2, 3, 3, 4])
        result = downsample(sequence, 3)

        self.assertEqual(result.labels.tolist(), [1, 2, 4])
        self.assertEqual(result.samples[:, 0].tolist(), [0.0, 3.0, 6.0])

    def test_rate_one_is_identity(self) -> None:
        sequence = _indexed_sequence([1, 2, 3])
        self.assertEqual(downsample(sequence, 1).labels.tolist(), [1, 2, 3])

    def test_invalid_rate_raises(self) -> None:
        with self.assertRaisesRegex(ValueError, "downsample rate must be a positive integer"):
            downsample(_indexed_sequence([1]), 0)


class TestTrainingSplit(unittest.TestCase):
    def test_takes_prefix_of_each_label_grouped_ascending(self) -> None:
        sequence = _indexed_sequence([2, 1, 2, 1, 2, 1, 3, 3])
        result = build_training_split(sequence, 0.5)

        self.assertEqual(result.labels.tolist(), [1, 2, 3])
        self.assertEqual(result.samples[:, 0].tolist(), [1.0, 0.0, 6.0])

    def test_full_fraction_groups_all_samples(self) -> None:
        sequence = _indexed_sequence([1, 1, 2, 2, 1, 1])
        result = build_training_split(sequence, 1.0)

        self.assertEqual(result.labels.tolist(), [1, 1, 1, 1, 2, 2])
        self.assertEqual(result.samples[:, 0].tolist(), [0.0, 1.0, 4.0, 5.0, 2.0, 3.0])

    def test_labels_outside_range_are_ignored(self) -> None:
        sequence = _indexed_sequence([0, 1, 1, 9])
        result = build_training_split(sequence, 1.0)
        self.assertEqual(result.labels.tolist(), [1, 1])

    def test_invalid_fraction_raises(self) -> None:
        with self.assertRaisesRegex(ValueError, "training_fraction must be between 0 and 1"):
            build_training_split(_indexed_sequence([1]), 1.5)

    def test_prepare_subject_data(self) -> None:
        sequence = _indexed_sequence([1, 1, 1, 1, 2, 2, 2, 2])
        data = prepare_subject_data(sequence, downsample_rate=2, training_fraction=0.5)

        self.assertEqual(data.test.labels.tolist(), [1, 1, 2, 2])
        self.assertEqual(data.train.labels.tolist(), [1, 2])
        self.assertEqual(data.train.samples[:, 0].tolist(), [0.0, 4.0])


if __name__ == "__main__":
    unittest.main()
