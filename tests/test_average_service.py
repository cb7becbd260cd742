import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from school_records.average_service import calculate_average, recompute_average
from school_records.fs_atomic import RecordIOError
from school_records.record_codec import FieldKey

FULL_RECORD = (
    "NAME = Ada\n"
    "SUBJECT1_NAME = Math\n"
    "SUBJECT1_GRADE = 80.00\n"
    "SUBJECT2_NAME = Physics\n"
    "SUBJECT2_GRADE = 90.00\n"
    "SUBJECT3_NAME = History\n"
    "SUBJECT3_GRADE = 70.00\n"
    "SUBJECT4_NAME = Art\n"
    "SUBJECT4_GRADE = 60.00\n"
    "AVERAGE_GRADE = 0.00\n"
)


class RecomputeAverageTest(unittest.TestCase):
    def _record(self, td: str, text: str) -> Path:
        path = Path(td) / "output_1.txt"
        path.write_text(text, encoding="utf-8")
        return path

    def test_recompute_rewrites_average_and_keeps_subject_lines(self):
        with TemporaryDirectory() as td:
            path = self._record(td, FULL_RECORD)
            result = recompute_average(path)

            self.assertTrue(result.ok)
            self.assertEqual(result.average, 75.0)
            self.assertFalse(result.appended)
            self.assertEqual(path.read_text(encoding="utf-8"), FULL_RECORD.replace("AVERAGE_GRADE = 0.00", "AVERAGE_GRADE = 75.00"))
            self.assertEqual([p.name for p in Path(td).iterdir()], ["output_1.txt"])

    def test_recompute_ignores_previous_average(self):
        with TemporaryDirectory() as td:
            path = self._record(td, FULL_RECORD.replace("AVERAGE_GRADE = 0.00", "AVERAGE_GRADE = 99.99"))
            recompute_average(path)
            self.assertIn("AVERAGE_GRADE = 75.00\n", path.read_text(encoding="utf-8"))

    def test_recompute_uses_two_decimal_rounding(self):
        with TemporaryDirectory() as td:
            text = FULL_RECORD.replace("SUBJECT4_GRADE = 60.00", "SUBJECT4_GRADE = 61.00")
            path = self._record(td, text)
            result = recompute_average(path)
            self.assertAlmostEqual(result.average, 75.25)
            self.assertIn("AVERAGE_GRADE = 75.25\n", path.read_text(encoding="utf-8"))

    def test_missing_subject_grade_leaves_file_untouched(self):
        with TemporaryDirectory() as td:
            text = FULL_RECORD.replace("SUBJECT3_GRADE = 70.00\n", "")
            path = self._record(td, text)
            before = path.read_bytes()

            result = recompute_average(path)

            self.assertFalse(result.ok)
            self.assertEqual(result.missing, (FieldKey.SUBJECT3_GRADE,))
            self.assertIsNone(result.average)
            self.assertEqual(path.read_bytes(), before)

    def test_absent_average_is_appended_once(self):
        with TemporaryDirectory() as td:
            text = FULL_RECORD.replace("AVERAGE_GRADE = 0.00\n", "").rstrip("\n")
            path = self._record(td, text)

            result = recompute_average(path)

            self.assertTrue(result.appended)
            content = path.read_text(encoding="utf-8")
            self.assertTrue(content.endswith("SUBJECT4_GRADE = 60.00\nAVERAGE_GRADE = 75.00\n"))
            self.assertEqual(content.count("AVERAGE_GRADE"), 1)

            recompute_average(path)
            self.assertEqual(path.read_text(encoding="utf-8").count("AVERAGE_GRADE"), 1)

    def test_unreadable_grade_counts_as_zero(self):
        with TemporaryDirectory() as td:
            path = self._record(td, FULL_RECORD.replace("SUBJECT4_GRADE = 60.00", "SUBJECT4_GRADE = n/a"))
            with self.assertLogs("school_records.average_service", level="WARNING"):
                result = recompute_average(path)
            self.assertTrue(result.ok)
            self.assertEqual(result.defaulted, (FieldKey.SUBJECT4_GRADE,))
            self.assertIn("AVERAGE_GRADE = 60.00\n", path.read_text(encoding="utf-8"))

    def test_missing_record_is_an_io_error(self):
        with TemporaryDirectory() as td:
            with self.assertRaises(RecordIOError):
                recompute_average(Path(td) / "output_9.txt")

    def test_undecodable_record_is_a_read_error_and_left_untouched(self):
        with TemporaryDirectory() as td:
            path = Path(td) / "output_1.txt"
            original = FULL_RECORD.replace("NAME = Ada", "NAME = A\udcffda").encode("utf-8", "surrogateescape")
            path.write_bytes(original)
            with self.assertRaises(RecordIOError) as ctx:
                recompute_average(path)
            self.assertEqual(ctx.exception.operation, "read")
            self.assertEqual(path.read_bytes(), original)
            self.assertEqual([p.name for p in Path(td).iterdir()], ["output_1.txt"])

    def test_calculate_average(self):
        self.assertEqual(calculate_average([80.0, 90.0, 70.0, 60.0]), 75.0)
        with self.assertRaises(ValueError):
            calculate_average([])


if __name__ == "__main__":
    unittest.main()
