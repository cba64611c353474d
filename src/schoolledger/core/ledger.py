from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, TypeVar, Union


class Purpose(str, Enum):
    TUITION = "Tuition"
    EXAM = "Exam"
    UNIFORM = "Uniform"
    PTA = "PTA"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Union["Purpose", str]) -> "Purpose":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for purpose in cls:
            if purpose.value.lower() == text:
                return purpose
        raise ValueError(f"Unsupported fee purpose: {value!r}")


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    PARTIAL = "Partial"
    OUTSTANDING = "Outstanding"
    OVERPAID = "Overpaid"


class InvalidAmount(ValueError):
    def __init__(self, value: Any, message: Optional[str] = None) -> None:
        super().__init__(message or f"Invalid amount: {value!r}")
        self.value = value


def to_amount(value: Any) -> Decimal:
    """Convert a wire amount to Decimal, rejecting anything negative, non-finite or non-numeric."""
    if isinstance(value, bool):
        raise InvalidAmount(value)
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        # str() keeps 0.1 as 0.1 instead of its binary expansion
        amount = Decimal(str(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation as exc:
            raise InvalidAmount(value) from exc
    else:
        raise InvalidAmount(value)

    if not amount.is_finite():
        raise InvalidAmount(value)
    if amount < 0:
        raise InvalidAmount(value, f"Amount cannot be negative: {value!r}")
    return amount


def _to_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return date.fromisoformat(text[:10])


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"created_at must be an ISO-8601 datetime string: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass(frozen=True)
class Charge:
    purpose: Purpose
    amount: Decimal
    session_id: Optional[str] = None
    term_id: Optional[str] = None
    carried_over: bool = False
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "purpose", Purpose.parse(self.purpose))
        object.__setattr__(self, "amount", to_amount(self.amount))


@dataclass(frozen=True)
class Payment:
    purpose: Purpose
    amount: Decimal
    paid_on: Optional[date] = None
    session_id: Optional[str] = None
    term_id: Optional[str] = None
    reference: Optional[str] = None
    id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "purpose", Purpose.parse(self.purpose))
        object.__setattr__(self, "amount", to_amount(self.amount))


@dataclass(frozen=True)
class LedgerRow:
    purpose: Purpose
    total_charged: Decimal
    total_paid: Decimal
    balance: Decimal
    status: PaymentStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            "purpose": self.purpose.value,
            "total_charged": float(self.total_charged),
            "total_paid": float(self.total_paid),
            "balance": float(self.balance),
            "status": self.status.value,
        }


@dataclass(frozen=True)
class LedgerSummary:
    total_charged: Decimal
    total_paid: Decimal
    balance: Decimal
    status: PaymentStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_charged": float(self.total_charged),
            "total_paid": float(self.total_paid),
            "balance": float(self.balance),
            "status": self.status.value,
        }


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "y", "on"}
    return bool(value)


def charge_from_record(record: Dict[str, Any]) -> Charge:
    return Charge(
        purpose=record.get("purpose"),
        amount=record.get("amount"),
        session_id=_optional_str(record.get("session_id")),
        term_id=_optional_str(record.get("term_id")),
        carried_over=_to_bool(record.get("carried_over", False)),
        id=_optional_str(record.get("id")),
        created_at=_to_datetime(record.get("created_at")),
    )


def payment_from_record(record: Dict[str, Any]) -> Payment:
    return Payment(
        purpose=record.get("purpose"),
        amount=record.get("amount"),
        paid_on=_to_date(record.get("paid_on")),
        session_id=_optional_str(record.get("session_id")),
        term_id=_optional_str(record.get("term_id")),
        reference=_optional_str(record.get("reference")),
        id=_optional_str(record.get("id")),
    )


Record = TypeVar("Record", Charge, Payment)


def filter_scope(
    records: Iterable[Record],
    session_id: Optional[str] = None,
    term_id: Optional[str] = None,
) -> List[Record]:
    scoped = []
    for record in records:
        if session_id is not None and record.session_id != session_id:
            continue
        if term_id is not None and record.term_id != term_id:
            continue
        scoped.append(record)
    return scoped


def classify_status(total_charged: Decimal, total_paid: Decimal) -> PaymentStatus:
    if total_charged == 0 and total_paid == 0:
        return PaymentStatus.PENDING
    if total_paid > total_charged:
        return PaymentStatus.OVERPAID
    if total_paid == total_charged:
        return PaymentStatus.PAID
    if total_paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.OUTSTANDING


def reduce_ledger(charges: Sequence[Charge], payments: Sequence[Payment]) -> List[LedgerRow]:
    """
    One LedgerRow per purpose present in either input, in Purpose order.
    Amounts are re-checked here so duck-typed records cannot slip through.
    """
    charged: Dict[Purpose, Decimal] = {}
    paid: Dict[Purpose, Decimal] = {}

    for charge in charges:
        purpose = Purpose.parse(charge.purpose)
        charged[purpose] = charged.get(purpose, Decimal(0)) + to_amount(charge.amount)

    for payment in payments:
        purpose = Purpose.parse(payment.purpose)
        paid[purpose] = paid.get(purpose, Decimal(0)) + to_amount(payment.amount)

    rows: List[LedgerRow] = []
    for purpose in Purpose:
        if purpose not in charged and purpose not in paid:
            continue
        total_charged = charged.get(purpose, Decimal(0))
        total_paid = paid.get(purpose, Decimal(0))
        rows.append(
            LedgerRow(
                purpose=purpose,
                total_charged=total_charged,
                total_paid=total_paid,
                balance=total_charged - total_paid,
                status=classify_status(total_charged, total_paid),
            )
        )
    return rows


def summarize_ledger(rows: Iterable[LedgerRow]) -> LedgerSummary:
    total_charged = Decimal(0)
    total_paid = Decimal(0)
    for row in rows:
        total_charged += row.total_charged
        total_paid += row.total_paid
    return LedgerSummary(
        total_charged=total_charged,
        total_paid=total_paid,
        balance=total_charged - total_paid,
        status=classify_status(total_charged, total_paid),
    )
