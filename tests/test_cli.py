import io
import json
import struct
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from cli import build_parser, load_sequences, main


def _write_subject(dataset_dir: Path, subject: int) -> None:
    labels = [1, 1, 1, 1, 2, 2, 2, 2, 1, 1, 1, 1]
    rows = [[1.0, 1.2, 1.4, 1.6] if label == 1 else [16.5, 17.0, 17.5, 18.0] for label in labels]
    flat = [value for row in rows for value in row]
    (dataset_dir / f"complete{subject}.bin").write_bytes(struct.pack(f"<{len(flat)}d", *flat))
    (dataset_dir / f"labels{subject}.bin").write_bytes(bytes(labels))


class TestCLIParsing(unittest.TestCase):
    def test_sweep_parsing(self) -> None:
        parser = build_parser()
        args = parser.parse_args(
            [
                "sweep",
                "data",
                "--hdc",
                "float",
                "--dim",
                "2048",
                "-l",
                "21",
                "--seed",
                "9",
                "--subjects",
                "3",
                "--input-format",
                "csv",
                "--output-dir",
                "out",
            ]
        )

        self.assertEqual(args.command, "sweep")
        self.assertEqual(args.dataset, "data")
        self.assertEqual(args.hdc, "float")
        self.assertEqual(args.dim, 2048)
        self.assertEqual(args.levels, 21)
        self.assertEqual(args.seed, 9)
        self.assertEqual(args.subjects, 3)
        self.assertEqual(args.input_format, "csv")
        self.assertEqual(args.output_dir, "out")

    def test_run_parsing_defaults(self) -> None:
        parser = build_parser()
        args = parser.parse_args(["run", "data"])

        self.assertEqual(args.hdc, "bin")
        self.assertEqual(args.dim, 10000)
        self.assertEqual(args.levels, 10)
        self.assertEqual(args.mode, "spatial")
        self.assertEqual(args.n_grams, 1)
        self.assertEqual(args.downsample, 1)
        self.assertAlmostEqual(args.training_fraction, 0.25)
        self.assertEqual(args.evaluation, "accuracy")
        self.assertIsNone(args.output_dir)

    def test_run_parsing(self) -> None:
        parser = build_parser()
        args = parser.parse_args(
            [
                "run",
                "data",
                "--mode",
                "temporal",
                "--n-grams",
                "4",
                "--downsample",
                "250",
                "--training-fraction",
                "0.5",
                "--evaluation",
                "slicing",
            ]
        )

        self.assertEqual(args.mode, "temporal")
        self.assertEqual(args.n_grams, 4)
        self.assertEqual(args.downsample, 250)
        self.assertAlmostEqual(args.training_fraction, 0.5)
        self.assertEqual(args.evaluation, "slicing")

    def test_unknown_representation_is_rejected(self) -> None:
        parser = build_parser()
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit):
            parser.parse_args(["run", "data", "--hdc", "complex"])


class TestCLIRunSmoke(unittest.TestCase):
    def test_load_sequences(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            temp_path = Path(temp_dir)
            _write_subject(temp_path, 1)
            _write_subject(temp_path, 2)

            sequences = load_sequences(temp_dir, 2)

            self.assertEqual(sorted(sequences), [1, 2])
            self.assertEqual(len(sequences[2]), 12)

    def test_run_command_writes_reports(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            temp_path = Path(temp_dir)
            output_dir = temp_path / "reports"
            _write_subject(temp_path, 1)

            buffer = io.StringIO()
            with redirect_stdout(buffer):
                main(
                    [
                        "run",
                        str(temp_path),
                        "--dim",
                        "256",
                        "--subjects",
                        "1",
                        "--mode",
                        "temporal",
                        "--n-grams",
                        "2",
                        "--training-fraction",
                        "0.5",
                        "--evaluation",
                        "slicing",
                        "--output-dir",
                        str(output_dir),
                    ]
                )

            self.assertIn("Accuracy[1]: 100.0000%", buffer.getvalue())
            report_path = output_dir / "run_report.json"
            self.assertTrue(report_path.exists())
            self.assertTrue((output_dir / "run_report.md").exists())
            report = json.loads(report_path.read_text(encoding="utf-8"))
            self.assertEqual(report["config"]["dim"], 256)
            self.assertEqual(report["experiments"][0]["subjects"][0]["accuracy"], 100.0)


if __name__ == "__main__":
    unittest.main()
