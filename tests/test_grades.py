from decimal import Decimal
import unittest

from schoolledger.core.grades import (
    InvalidScore,
    compute_total,
    evaluate_score,
    grade_from_total,
    score_entry_from_record,
    validate_scores,
)


class ScoreTotalTests(unittest.TestCase):
    def test_total_is_plain_sum(self):
        self.assertEqual(compute_total(15, 12, 48), 75)
        self.assertEqual(compute_total(0, 0, 0), 0)
        self.assertEqual(compute_total(20, 20, 60), 100)

    def test_fractional_components(self):
        self.assertAlmostEqual(compute_total(12.5, 10.25, 30.5), 53.25, places=9)

    def test_ca_above_max_rejected(self):
        with self.assertRaises(InvalidScore) as ctx:
            compute_total(21, 10, 40)
        self.assertEqual(ctx.exception.field, "ca")
        self.assertEqual(ctx.exception.message, "CA must be at most 20")

    def test_negative_and_non_numeric_rejected(self):
        with self.assertRaises(InvalidScore) as ctx:
            compute_total(10, -1, 40)
        self.assertEqual(ctx.exception.field, "midterm")

        for bad in ("12", None, True, float("nan"), float("inf")):
            with self.assertRaises(InvalidScore):
                compute_total(10, 10, bad)

    def test_huge_integer_is_out_of_range(self):
        with self.assertRaises(InvalidScore) as ctx:
            compute_total(10**400, 0, 0)
        self.assertEqual(ctx.exception.field, "ca")
        self.assertEqual(ctx.exception.message, "CA must be at most 20")

    def test_decimal_nan_rejected(self):
        with self.assertRaises(InvalidScore):
            compute_total(Decimal("NaN"), 0, 0)

    def test_exam_max_is_sixty(self):
        with self.assertRaises(InvalidScore):
            compute_total(0, 0, 61)


class GradeBandTests(unittest.TestCase):
    def test_boundaries(self):
        self.assertEqual(grade_from_total(75), "A1")
        self.assertEqual(grade_from_total(74), "B2")
        self.assertEqual(grade_from_total(74.9), "B2")
        self.assertEqual(grade_from_total(65), "B3")
        self.assertEqual(grade_from_total(60), "C4")
        self.assertEqual(grade_from_total(55), "C5")
        self.assertEqual(grade_from_total(50), "C6")
        self.assertEqual(grade_from_total(45), "D7")
        self.assertEqual(grade_from_total(40), "E8")
        self.assertEqual(grade_from_total(39), "F9")
        self.assertEqual(grade_from_total(0), "F9")

    def test_monotonic(self):
        order = ["F9", "E8", "D7", "C6", "C5", "C4", "B3", "B2", "A1"]
        previous = 0
        for total in range(0, 101):
            rank = order.index(grade_from_total(total))
            self.assertGreaterEqual(rank, previous)
            previous = rank


class ScoreValidationTests(unittest.TestCase):
    def test_collects_every_field_error(self):
        errors = validate_scores(25, "x", -3)
        self.assertEqual(
            errors,
            {
                "ca": "CA must be at most 20",
                "midterm": "Midterm must be a number",
                "exam": "Exam cannot be negative",
            },
        )

    def test_valid_scores_have_no_errors(self):
        self.assertEqual(validate_scores(20, 20, 60), {})


class ScoreEntryTests(unittest.TestCase):
    def test_evaluate_score(self):
        entry = evaluate_score(18, 15, 40, course_id="c1", course_name="Mathematics")
        self.assertEqual(entry.total, 73)
        self.assertEqual(entry.grade, "B2")
        self.assertEqual(entry.to_dict()["courseName"], "Mathematics")

    def test_record_is_regraded(self):
        record = {
            "courseId": "c9",
            "courseName": "Biology",
            "ca": "10",
            "midterm": 10,
            "exam": 20,
            "total": 99,
            "grade": "A1",
        }
        entry = score_entry_from_record(record)
        self.assertEqual(entry.total, 40)
        self.assertEqual(entry.grade, "E8")
        self.assertEqual(entry.course_id, "c9")

    def test_record_with_score_suffix_columns(self):
        entry = score_entry_from_record({"course_id": 3, "ca_score": 20, "midterm_score": 20, "exam_score": 60})
        self.assertEqual(entry.total, 100)
        self.assertEqual(entry.course_id, "3")

    def test_record_out_of_range_rejected(self):
        with self.assertRaises(InvalidScore):
            score_entry_from_record({"ca": 21, "midterm": 0, "exam": 0})


if __name__ == "__main__":
    unittest.main()
