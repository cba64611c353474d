from dataclasses import dataclass
from decimal import Decimal
import math
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class ScoreComponent:
    label: str
    maximum: float


SCORE_COMPONENTS: Dict[str, ScoreComponent] = {
    "ca": ScoreComponent("CA", 20),
    "midterm": ScoreComponent("Midterm", 20),
    "exam": ScoreComponent("Exam", 60),
}

GRADE_BANDS: List[Tuple[float, str]] = [
    (75, "A1"),
    (70, "B2"),
    (65, "B3"),
    (60, "C4"),
    (55, "C5"),
    (50, "C6"),
    (45, "D7"),
    (40, "E8"),
]

FAIL_GRADE = "F9"


class InvalidScore(ValueError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


@dataclass(frozen=True)
class ScoreEntry:
    ca: float
    midterm: float
    exam: float
    total: float
    grade: str
    course_id: Optional[str] = None
    course_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "courseId": self.course_id,
            "courseName": self.course_name,
            "ca": self.ca,
            "midterm": self.midterm,
            "exam": self.exam,
            "total": self.total,
            "grade": self.grade,
        }


def _component_error(field: str, value: Any) -> Optional[str]:
    component = SCORE_COMPONENTS[field]
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return f"{component.label} must be a number"
    if isinstance(value, float) and not math.isfinite(value):
        return f"{component.label} must be a number"
    if isinstance(value, Decimal) and not value.is_finite():
        return f"{component.label} must be a number"
    if value < 0:
        return f"{component.label} cannot be negative"
    if value > component.maximum:
        return f"{component.label} must be at most {component.maximum:g}"
    return None


def validate_scores(ca: Any, midterm: Any, exam: Any) -> Dict[str, str]:
    """
    Field-level validation for a score form.
    Returns {field: message} for every invalid component, or {} when all pass.
    """
    errors: Dict[str, str] = {}
    for field, value in (("ca", ca), ("midterm", midterm), ("exam", exam)):
        message = _component_error(field, value)
        if message:
            errors[field] = message
    return errors


def compute_total(ca: float, midterm: float, exam: float) -> float:
    errors = validate_scores(ca, midterm, exam)
    if errors:
        field, message = next(iter(errors.items()))
        raise InvalidScore(field, message)
    return float(ca) + float(midterm) + float(exam)


def grade_from_total(total: float) -> str:
    for lower_bound, grade in GRADE_BANDS:
        if total >= lower_bound:
            return grade
    return FAIL_GRADE


def evaluate_score(
    ca: float,
    midterm: float,
    exam: float,
    *,
    course_id: Optional[str] = None,
    course_name: Optional[str] = None,
) -> ScoreEntry:
    total = compute_total(ca, midterm, exam)
    return ScoreEntry(
        ca=float(ca),
        midterm=float(midterm),
        exam=float(exam),
        total=total,
        grade=grade_from_total(total),
        course_id=course_id,
        course_name=course_name,
    )


def _parse_component(field: str, value: Any) -> Any:
    # Score APIs sometimes hand back numeric columns as strings.
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as exc:
            raise InvalidScore(field, f"{SCORE_COMPONENTS[field].label} must be a number") from exc
    return value


def score_entry_from_record(record: Dict[str, Any]) -> ScoreEntry:
    """
    Build a ScoreEntry from a results API row.
    Accepts both {ca, midterm, exam} and {ca_score, midterm_score, exam_score};
    stored total and grade are recomputed rather than trusted.
    """
    scores = {}
    for field in SCORE_COMPONENTS:
        value = record.get(field, record.get(f"{field}_score"))
        scores[field] = _parse_component(field, value)

    course_id = record.get("courseId", record.get("course_id"))
    course_name = record.get("courseName", record.get("course_name"))
    return evaluate_score(
        scores["ca"],
        scores["midterm"],
        scores["exam"],
        course_id=str(course_id) if course_id is not None else None,
        course_name=str(course_name) if course_name is not None else None,
    )
