from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from schoolledger.config.settings import settings
from schoolledger.core.debt import fee_breakdown, outstanding_report, revenue_summary, split_debt
from schoolledger.core.gpa import calculate_gpa
from schoolledger.core.grades import evaluate_score, validate_scores
from schoolledger.core.ledger import (
    Charge,
    Payment,
    charge_from_record,
    filter_scope,
    payment_from_record,
    reduce_ledger,
    summarize_ledger,
    to_amount,
)
from schoolledger.services.records_service import RecordsService, RecordsServiceError


logging.getLogger("schoolledger").setLevel(getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(title="School Ledger API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ScorePayload(BaseModel):
    ca: Any = None
    midterm: Any = None
    exam: Any = None
    course_id: Optional[str] = None
    course_name: Optional[str] = None


class ChargePayload(BaseModel):
    purpose: str
    amount: Any = None
    session_id: Optional[str] = None
    term_id: Optional[str] = None
    carried_over: bool = False
    id: Optional[str] = None


class PaymentPayload(BaseModel):
    purpose: str
    amount: Any = None
    paid_on: Optional[str] = None
    session_id: Optional[str] = None
    term_id: Optional[str] = None
    reference: Optional[str] = None
    id: Optional[str] = None


class LedgerPayload(BaseModel):
    charges: List[ChargePayload] = Field(default_factory=list)
    payments: List[PaymentPayload] = Field(default_factory=list)


class StudentPayload(BaseModel):
    id: str
    student_id: str = ""
    full_name: str = ""
    class_level: str = ""
    stream: Optional[str] = None


class StudentChargePayload(BaseModel):
    student_id: str
    amount: Any = None
    purpose: str = "Other"
    carried_over: bool = False


class StudentPaymentPayload(BaseModel):
    student_id: str
    amount: Any = None


class FeeStructurePayload(BaseModel):
    class_level: str = ""
    stream: Optional[str] = None
    amount: Any = None


class BreakdownPayload(BaseModel):
    charges: List[StudentChargePayload] = Field(default_factory=list)
    payments: List[StudentPaymentPayload] = Field(default_factory=list)
    students: List[StudentPayload] = Field(default_factory=list)
    fee_structures: Optional[List[FeeStructurePayload]] = None


def format_money(value: Decimal) -> str:
    if value == value.to_integral_value():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


def debt_note(previous_debt: Decimal) -> str:
    if previous_debt == 0:
        return ""
    return f"(debt {settings.currency_symbol}{format_money(previous_debt)} from last term)"


def _build_records(payload: LedgerPayload) -> tuple[List[Charge], List[Payment]]:
    try:
        charges = [charge_from_record(item.model_dump()) for item in payload.charges]
        payments = [payment_from_record(item.model_dump()) for item in payload.payments]
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return charges, payments


def _ledger_response(charges: List[Charge], payments: List[Payment]) -> Dict:
    rows = reduce_ledger(charges, payments)
    split = split_debt(rows, charges)
    return {
        "ledger": [row.to_dict() for row in rows],
        "summary": summarize_ledger(rows).to_dict(),
        "debt": split.to_dict(),
        "debt_note": debt_note(split.previous_debt),
    }


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/scores/evaluate")
def evaluate(payload: ScorePayload) -> Dict:
    errors = validate_scores(payload.ca, payload.midterm, payload.exam)
    if errors:
        raise HTTPException(status_code=422, detail={"errors": errors})
    entry = evaluate_score(
        payload.ca,
        payload.midterm,
        payload.exam,
        course_id=payload.course_id,
        course_name=payload.course_name,
    )
    return entry.to_dict()


@app.post("/ledger")
def ledger(payload: LedgerPayload) -> Dict:
    charges, payments = _build_records(payload)
    rows = reduce_ledger(charges, payments)
    return {
        "ledger": [row.to_dict() for row in rows],
        "summary": summarize_ledger(rows).to_dict(),
    }


@app.post("/ledger/debt-split")
def debt_split(payload: LedgerPayload) -> Dict:
    charges, payments = _build_records(payload)
    split = split_debt(reduce_ledger(charges, payments), charges)
    return {**split.to_dict(), "debt_note": debt_note(split.previous_debt)}


@app.get("/students/{student_id}/ledger")
def student_ledger(student_id: str, session_id: Optional[str] = None, term_id: Optional[str] = None) -> Dict:
    try:
        service = RecordsService.from_settings()
        charges = service.list_charges(student_id, session_id=session_id, term_id=term_id)
        payments = service.list_payments(student_id, session_id=session_id, term_id=term_id)
    except RecordsServiceError as exc:
        logger.warning("Ledger lookup failed for student %s: %s", student_id, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    charges = filter_scope(charges, session_id, term_id)
    payments = filter_scope(payments, session_id, term_id)
    return {"student_id": student_id, **_ledger_response(charges, payments)}


@app.get("/students/{student_id}/results")
def student_results(student_id: str, session_id: Optional[str] = None, term_id: Optional[str] = None) -> Dict:
    try:
        service = RecordsService.from_settings()
        scores = service.list_scores(student_id, session_id=session_id, term_id=term_id)
    except RecordsServiceError as exc:
        logger.warning("Results lookup failed for student %s: %s", student_id, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    return {
        "student_id": student_id,
        "results": [entry.to_dict() for entry in scores],
        "gpa": calculate_gpa(entry.grade for entry in scores),
    }


def _group_by_student(payload: BreakdownPayload) -> tuple[Dict[str, List[Charge]], Dict[str, Decimal], Dict[str, Dict]]:
    charges_by_student: Dict[str, List[Charge]] = {}
    paid_by_student: Dict[str, Decimal] = {}
    try:
        for item in payload.charges:
            charge = Charge(purpose=item.purpose, amount=item.amount, carried_over=item.carried_over)
            charges_by_student.setdefault(item.student_id, []).append(charge)
        for item in payload.payments:
            paid_by_student[item.student_id] = paid_by_student.get(item.student_id, Decimal(0)) + to_amount(item.amount)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    students = {student.id: student.model_dump() for student in payload.students}
    return charges_by_student, paid_by_student, students


@app.post("/reports/fee-breakdown")
def class_fee_breakdown(payload: BreakdownPayload) -> Dict:
    charges_by_student, paid_by_student, students = _group_by_student(payload)
    return fee_breakdown(charges_by_student, paid_by_student, students).to_dict()


@app.post("/reports/expected-revenue")
def expected_revenue(payload: BreakdownPayload) -> Dict:
    charges_by_student, paid_by_student, students = _group_by_student(payload)
    fee_structures = None
    if payload.fee_structures is not None:
        fee_structures = [fee.model_dump() for fee in payload.fee_structures]
    try:
        summary = revenue_summary(charges_by_student, paid_by_student, students, fee_structures)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return summary.to_dict()


@app.post("/reports/outstanding")
def outstanding(payload: BreakdownPayload) -> Dict:
    charges_by_student, paid_by_student, students = _group_by_student(payload)
    rows = outstanding_report(charges_by_student, paid_by_student, students)
    return {"outstanding": [row.to_dict() for row in rows]}
