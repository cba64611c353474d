from typing import Dict, Iterable, Optional


GRADE_POINTS: Dict[str, float] = {
    "A1": 5.0,
    "B2": 4.5,
    "B3": 4.0,
    "C4": 3.5,
    "C5": 3.0,
    "C6": 2.5,
    "D7": 2.0,
    "E8": 1.0,
    "F9": 0.0,
}


def grade_to_point(grade: Optional[str]) -> float:
    letter = (grade or "").strip().upper()
    if letter.startswith("A"):
        return GRADE_POINTS["A1"]
    return GRADE_POINTS.get(letter, 0.0)


def calculate_gpa(grades: Iterable[Optional[str]], *, round_to: int = 2) -> float:
    """
    grades: iterable of letter grades for one term or session.
    GPA = Σ(grade_point) / number_of_grades
    """
    points = [grade_to_point(grade) for grade in grades]
    if not points:
        return 0.0
    return round(sum(points) / len(points), round_to)


def calculate_cgpa(period_grades: Iterable[Iterable[Optional[str]]], *, round_to: int = 2) -> float:
    """
    period_grades: iterable of per-term (or per-session) grade lists.
    Every graded course weighs the same, regardless of which period it sits in.
    """
    points = [grade_to_point(grade) for period in period_grades for grade in period]
    if not points:
        return 0.0
    return round(sum(points) / len(points), round_to)
