import unittest

from schoolledger.core.gpa import calculate_cgpa, calculate_gpa, grade_to_point


class GradePointTests(unittest.TestCase):
    def test_points(self):
        self.assertEqual(grade_to_point("A1"), 5.0)
        self.assertEqual(grade_to_point("b2"), 4.5)
        self.assertEqual(grade_to_point("E8"), 1.0)
        self.assertEqual(grade_to_point("F9"), 0.0)
        self.assertEqual(grade_to_point(None), 0.0)
        self.assertEqual(grade_to_point("Z"), 0.0)

    def test_any_a_grade_is_top_point(self):
        self.assertEqual(grade_to_point("A"), 5.0)


class GPATests(unittest.TestCase):
    def test_gpa(self):
        self.assertAlmostEqual(calculate_gpa(["A1", "B3", "C6"]), 3.83, places=2)

    def test_empty_gpa(self):
        self.assertEqual(calculate_gpa([]), 0.0)

    def test_cgpa(self):
        term1 = ["A1", "B2"]
        term2 = ["C4", "F9", "E8"]
        self.assertAlmostEqual(calculate_cgpa([term1, term2]), 2.8, places=2)
        self.assertEqual(calculate_cgpa([[], []]), 0.0)


if __name__ == "__main__":
    unittest.main()
