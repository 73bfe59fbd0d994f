import struct
import sys
import tempfile
import unittest
from pathlib import Path

import torch

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from emg_parser import EMGParserConfig, EMGSequence, load_subject, load_subject_csv, parse_emg_buffers, parse_emg_csv


def _sample_bytes(rows) -> bytes:
    flat = [value for row in rows for value in row]
    return struct.pack(f"<{len(flat)}d", *flat)


ROWS = [
    [0.5, 1.5, 2.5, 3.5],
    [4.0, 5.0, 6.0, 7.0],
    [19.5, 20.25, 0.0, 8.0],
]


class TestParseBuffers(unittest.TestCase):
    def test_decodes_samples_and_labels(self) -> None:
        sequence = parse_emg_buffers(_sample_bytes(ROWS), bytes([1, 1, 2]))

        self.assertEqual(len(sequence), 3)
        self.assertEqual(sequence.channels, 4)
        self.assertEqual(sequence.samples.dtype, torch.float64)
        self.assertEqual(sequence.samples.tolist(), ROWS)
        self.assertEqual(sequence.labels.tolist(), [1, 1, 2])

    def test_partial_sample_entry_raises(self) -> None:
        with self.assertRaisesRegex(ValueError, "not a multiple of the entry size 32"):
            parse_emg_buffers(_sample_bytes(ROWS)[:-8], bytes([1, 1, 2]))

    def test_label_count_mismatch_raises(self) -> None:
        with self.assertRaisesRegex(ValueError, "Sample count 3 does not match label count 2"):
            parse_emg_buffers(_sample_bytes(ROWS), bytes([1, 1]))

    def test_custom_channel_count(self) -> None:
        sequence = parse_emg_buffers(_sample_bytes([[1.0, 2.0], [3.0, 4.0]]), bytes([1, 2]), channels=2)
        self.assertEqual(sequence.channels, 2)
        self.assertEqual(sequence.samples.tolist(), [[1.0, 2.0], [3.0, 4.0]])

    def test_load_subject_reads_numbered_files(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            temp_path = Path(temp_dir)
            (temp_path / "complete2.bin").write_bytes(_sample_bytes(ROWS))
            (temp_path / "labels2.bin").write_bytes(bytes([3, 3, 4]))

            sequence = load_subject(temp_dir, 2)

            self.assertEqual(sequence.samples.tolist(), ROWS)
            self.assertEqual(sequence.labels.tolist(), [3, 3, 4])


class TestSequence(unittest.TestCase):
    def test_mismatched_lengths_raise(self) -> None:
        with self.assertRaisesRegex(ValueError, "does not match label count"):
            EMGSequence(samples=torch.zeros((3, 4), dtype=torch.float64), labels=torch.ones(2, dtype=torch.int64))

    def test_from_lists(self) -> None:
        sequence = EMGSequence.from_lists(ROWS, [1, 2, 3])
        self.assertEqual(len(sequence), 3)
        self.assertEqual(len(EMGSequence.from_lists([], [])), 0)


class TestParseCsv(unittest.TestCase):
    def _write(self, temp_dir: str, text: str, name: str = "complete1.csv") -> Path:
        path = Path(temp_dir) / name
        path.write_text(text, encoding="utf-8")
        return path

    def test_parse_valid_csv(self) -> None:
        csv_text = "ch1,ch2,ch3,ch4,label\n0.5,1.5,2.5,3.5,1\n4.0,5.0,6.0,7.0,2\n"
        with tempfile.TemporaryDirectory() as temp_dir:
            self._write(temp_dir, csv_text)
            sequence = load_subject_csv(temp_dir, 1, EMGParserConfig())

            self.assertEqual(sequence.samples.tolist(), ROWS[:2])
            self.assertEqual(sequence.labels.tolist(), [1, 2])

    def test_missing_columns_raise(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = self._write(temp_dir, "ch1,ch2,ch3,label\n1,2,3,1\n")
            with self.assertRaisesRegex(ValueError, "Missing required columns: ch4"):
                parse_emg_csv(str(path), EMGParserConfig())

    def test_non_numeric_values_raise(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = self._write(temp_dir, "ch1,ch2,ch3,ch4,label\n1,abc,3,4,1\n")
            with self.assertRaisesRegex(ValueError, "Non-numeric values found in column: ch2"):
                parse_emg_csv(str(path), EMGParserConfig())

    def test_label_range_errors_raise(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = self._write(temp_dir, "ch1,ch2,ch3,ch4,label\n1,2,3,4,8\n")
            with self.assertRaisesRegex(ValueError, "Values in column 'label' must be in range 1-7"):
                parse_emg_csv(str(path), EMGParserConfig())

    def test_non_integer_labels_raise(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = self._write(temp_dir, "ch1,ch2,ch3,ch4,label\n1,2,3,4,1.5\n")
            with self.assertRaisesRegex(ValueError, "Non-integer values found in column: label"):
                parse_emg_csv(str(path), EMGParserConfig())


if __name__ == "__main__":
    unittest.main()
