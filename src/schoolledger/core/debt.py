from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from schoolledger.core.ledger import Charge, LedgerRow, PaymentStatus, classify_status, to_amount


@dataclass(frozen=True)
class DebtSplit:
    current_fee: Decimal
    previous_debt: Decimal
    current_outstanding: Decimal
    previous_outstanding: Decimal

    @property
    def total(self) -> Decimal:
        return self.current_fee + self.previous_debt

    def to_dict(self) -> Dict[str, float]:
        return {
            "current_fee": float(self.current_fee),
            "previous_debt": float(self.previous_debt),
            "total": float(self.total),
            "current_outstanding": float(self.current_outstanding),
            "previous_outstanding": float(self.previous_outstanding),
        }


def allocate_payment(paid: Decimal, current_fee: Decimal, previous_debt: Decimal) -> DebtSplit:
    """
    Apply a paid amount to the current-term fee first, then to carried-over debt.
    Anything left after both buckets are cleared is not carried anywhere.
    """
    paid = to_amount(paid)
    current_fee = to_amount(current_fee)
    previous_debt = to_amount(previous_debt)

    paid_to_current = min(paid, current_fee)
    paid_to_previous = paid - paid_to_current
    return DebtSplit(
        current_fee=current_fee,
        previous_debt=previous_debt,
        current_outstanding=max(Decimal(0), current_fee - paid_to_current),
        previous_outstanding=max(Decimal(0), previous_debt - paid_to_previous),
    )


def _bucket_charges(charges: Iterable[Charge]) -> Tuple[Decimal, Decimal]:
    current_fee = Decimal(0)
    previous_debt = Decimal(0)
    for charge in charges:
        if charge.carried_over:
            previous_debt += to_amount(charge.amount)
        else:
            current_fee += to_amount(charge.amount)
    return current_fee, previous_debt


def split_debt(ledger_scope_current: Sequence[LedgerRow], carried_over_charges: Iterable[Charge]) -> DebtSplit:
    """
    ledger_scope_current: ledger rows for the queried session/term; their total_paid is the pot to allocate.
    carried_over_charges: the scope's charges; the carried_over flag decides which bucket each lands in.
    """
    current_fee, previous_debt = _bucket_charges(carried_over_charges)
    paid = sum((to_amount(row.total_paid) for row in ledger_scope_current), Decimal(0))
    return allocate_payment(paid, current_fee, previous_debt)


@dataclass(frozen=True)
class BreakdownRow:
    student_id: str
    full_name: str
    class_level: str
    stream: Optional[str]
    split: DebtSplit

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student_id": self.student_id,
            "full_name": self.full_name,
            "class_level": self.class_level,
            "stream": self.stream,
            **self.split.to_dict(),
        }


TOTAL_KEYS = ("current_fee", "previous_debt", "total", "current_outstanding", "previous_outstanding")


def _sum_splits(splits: Iterable[DebtSplit]) -> Dict[str, Decimal]:
    totals = {key: Decimal(0) for key in TOTAL_KEYS}
    for split in splits:
        totals["current_fee"] += split.current_fee
        totals["previous_debt"] += split.previous_debt
        totals["total"] += split.total
        totals["current_outstanding"] += split.current_outstanding
        totals["previous_outstanding"] += split.previous_outstanding
    return totals


@dataclass(frozen=True)
class FeeBreakdown:
    rows: List[BreakdownRow] = field(default_factory=list)
    totals: Dict[str, Decimal] = field(default_factory=dict)

    def by_class(self) -> Dict[str, Dict[str, Decimal]]:
        """Column totals per class level, classes in first-seen row order."""
        grouped: Dict[str, List[DebtSplit]] = {}
        for row in self.rows:
            grouped.setdefault(row.class_level, []).append(row.split)
        return {class_level: _sum_splits(splits) for class_level, splits in grouped.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rows": [row.to_dict() for row in self.rows],
            "totals": {key: float(value) for key, value in self.totals.items()},
            "classes": {
                class_level: {key: float(value) for key, value in totals.items()}
                for class_level, totals in self.by_class().items()
            },
        }


def _student_info(students: Mapping[str, Mapping[str, Any]], sid: str) -> Dict[str, Any]:
    info = students.get(sid, {})
    return {
        "student_id": str(info.get("student_id") or ""),
        "full_name": str(info.get("full_name") or "Unknown"),
        "class_level": str(info.get("class_level") or "Unknown"),
        "stream": info.get("stream"),
    }


def fee_breakdown(
    charges_by_student: Mapping[str, Iterable[Charge]],
    paid_by_student: Mapping[str, Any],
    students: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> FeeBreakdown:
    """
    Per-student current fee / previous debt report for one session and term.

    charges_by_student: internal student id -> that student's charges in scope.
    paid_by_student: internal student id -> total paid in scope.
    students: internal student id -> {student_id, full_name, class_level, stream}.
    Only students with charges get a row; rows are ordered by total, largest first.
    """
    students = students or {}
    rows: List[BreakdownRow] = []

    for sid, charges in charges_by_student.items():
        current_fee, previous_debt = _bucket_charges(charges)
        paid = to_amount(paid_by_student.get(sid, 0))
        rows.append(
            BreakdownRow(
                **_student_info(students, sid),
                split=allocate_payment(paid, current_fee, previous_debt),
            )
        )

    rows.sort(key=lambda row: row.split.total, reverse=True)
    return FeeBreakdown(rows=rows, totals=_sum_splits(row.split for row in rows))


@dataclass(frozen=True)
class RevenueSummary:
    expected_revenue: Decimal
    actual_revenue: Decimal
    outstanding: Decimal
    collection_rate: float
    total_students: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expected_revenue": float(self.expected_revenue),
            "actual_revenue": float(self.actual_revenue),
            "outstanding": float(self.outstanding),
            "collection_rate": self.collection_rate,
            "total_students": self.total_students,
        }


def _norm(value: Any) -> str:
    return str(value or "").strip().lower()


def fee_structure_expected(
    students: Iterable[Mapping[str, Any]],
    fee_structures: Iterable[Mapping[str, Any]],
) -> Decimal:
    """
    Expected revenue from fee structures: every student owes each fee whose
    class level matches theirs and whose stream is blank or matches theirs.
    """
    fee_structures = list(fee_structures)
    expected = Decimal(0)
    for student in students:
        for fee in fee_structures:
            if _norm(fee.get("class_level")) != _norm(student.get("class_level")):
                continue
            stream = fee.get("stream")
            if stream and _norm(stream) != _norm(student.get("stream")):
                continue
            expected += to_amount(fee.get("amount"))
    return expected


def revenue_summary(
    charges_by_student: Mapping[str, Iterable[Charge]],
    paid_by_student: Mapping[str, Any],
    students: Optional[Mapping[str, Mapping[str, Any]]] = None,
    fee_structures: Optional[Iterable[Mapping[str, Any]]] = None,
) -> RevenueSummary:
    """
    Expected vs collected revenue for one session and term.

    Expected is the sum of all charges. When nothing has been charged yet and
    fee structures are supplied, expected falls back to what the listed
    students owe under those structures.
    Actual counts every payment, including from students with no charge.
    """
    expected = Decimal(0)
    charged_students = 0
    for charges in charges_by_student.values():
        charges = list(charges)
        if charges:
            charged_students += 1
        for charge in charges:
            expected += to_amount(charge.amount)

    if expected == 0 and fee_structures is not None:
        expected = fee_structure_expected((students or {}).values(), fee_structures)

    actual = sum((to_amount(paid) for paid in paid_by_student.values()), Decimal(0))
    collection_rate = round(float(actual / expected * 100), 2) if expected > 0 else 0.0
    return RevenueSummary(
        expected_revenue=expected,
        actual_revenue=actual,
        outstanding=max(Decimal(0), expected - actual),
        collection_rate=collection_rate,
        total_students=charged_students,
    )


@dataclass(frozen=True)
class OutstandingRow:
    student_id: str
    full_name: str
    class_level: str
    stream: Optional[str]
    expected: Decimal
    paid: Decimal
    status: PaymentStatus

    @property
    def outstanding(self) -> Decimal:
        return max(Decimal(0), self.expected - self.paid)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student_id": self.student_id,
            "full_name": self.full_name,
            "class_level": self.class_level,
            "stream": self.stream,
            "expected": float(self.expected),
            "paid": float(self.paid),
            "outstanding": float(self.outstanding),
            "status": self.status.value,
        }


def outstanding_report(
    charges_by_student: Mapping[str, Iterable[Charge]],
    paid_by_student: Mapping[str, Any],
    students: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> List[OutstandingRow]:
    """
    Students who still owe money in scope, largest balance first.
    Status is Partial or Outstanding depending on whether anything was paid.
    """
    students = students or {}
    rows: List[OutstandingRow] = []
    for sid in dict.fromkeys([*charges_by_student, *paid_by_student]):
        expected = sum((to_amount(c.amount) for c in charges_by_student.get(sid, ())), Decimal(0))
        paid = to_amount(paid_by_student.get(sid, 0))
        if expected - paid <= 0:
            continue
        rows.append(
            OutstandingRow(
                **_student_info(students, sid),
                expected=expected,
                paid=paid,
                status=classify_status(expected, paid),
            )
        )
    rows.sort(key=lambda row: row.outstanding, reverse=True)
    return rows
