import logging
from typing import Any, Dict, List, Optional, Sequence

import requests
from requests import RequestException

from schoolledger.config.settings import settings
from schoolledger.core.grades import InvalidScore, ScoreEntry, score_entry_from_record
from schoolledger.core.ledger import (
    Charge,
    Payment,
    charge_from_record,
    payment_from_record,
)


logger = logging.getLogger(__name__)


class RecordsServiceError(Exception):
    pass


class RecordsService:
    CHARGES_PATH = "/api/admin/fees"
    PAYMENTS_PATH = "/api/admin/payment-records"
    RESULTS_PATH = "/api/results"

    def __init__(self, base_url: str, api_token: str = "", timeout: float = 15.0) -> None:
        if not base_url:
            raise RecordsServiceError("Missing SCHOOL_API_BASE_URL in environment")
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "RecordsService":
        return cls(
            base_url=settings.school_api_base_url,
            api_token=settings.school_api_token,
            timeout=settings.school_api_timeout,
        )

    def list_charges(
        self,
        student_id: str,
        session_id: Optional[str] = None,
        term_id: Optional[str] = None,
    ) -> List[Charge]:
        data = self._get(self.CHARGES_PATH, self._params(student_id, session_id, term_id))
        rows = self._unwrap(data, ("charges", "fees", "records"))
        try:
            return [charge_from_record(row) for row in rows]
        except ValueError as exc:
            raise RecordsServiceError(f"Malformed charge record: {exc}") from exc

    def list_payments(
        self,
        student_id: str,
        session_id: Optional[str] = None,
        term_id: Optional[str] = None,
    ) -> List[Payment]:
        data = self._get(self.PAYMENTS_PATH, self._params(student_id, session_id, term_id))
        rows = self._unwrap(data, ("payments", "records"))
        try:
            return [payment_from_record(row) for row in rows]
        except ValueError as exc:
            raise RecordsServiceError(f"Malformed payment record: {exc}") from exc

    def list_scores(
        self,
        student_id: str,
        session_id: Optional[str] = None,
        term_id: Optional[str] = None,
    ) -> List[ScoreEntry]:
        data = self._get(self.RESULTS_PATH, self._params(student_id, session_id, term_id))
        rows = self._unwrap(data, ("results", "records"))
        try:
            return [score_entry_from_record(row) for row in rows]
        except InvalidScore as exc:
            raise RecordsServiceError(f"Malformed score record ({exc.field}): {exc.message}") from exc

    @staticmethod
    def _params(student_id: str, session_id: Optional[str], term_id: Optional[str]) -> Dict[str, str]:
        params = {"student_id": student_id}
        if session_id:
            params["session_id"] = session_id
        if term_id:
            params["term_id"] = term_id
        return params

    def _get(self, path: str, params: Dict[str, str]) -> Any:
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        try:
            res = requests.get(url, headers=headers, params=params, timeout=self.timeout)
        except RequestException as exc:
            logger.warning("School API unreachable at %s: %s", url, exc)
            raise RecordsServiceError("SCHOOL_API_UNAVAILABLE") from exc
        try:
            data = res.json()
        except ValueError:
            logger.warning("School API returned a non-JSON body for %s (HTTP %s)", url, res.status_code)
            raise RecordsServiceError("SCHOOL_API_UNAVAILABLE")

        if res.status_code >= 400:
            message = data.get("error") if isinstance(data, dict) else None
            logger.warning("School API error for %s (HTTP %s): %s", url, res.status_code, message)
            raise RecordsServiceError(str(message or f"SCHOOL_API_ERROR_{res.status_code}"))

        return data

    @staticmethod
    def _unwrap(data: Any, keys: Sequence[str]) -> List[Dict[str, Any]]:
        rows = None
        if isinstance(data, list):
            rows = data
        elif isinstance(data, dict):
            for key in keys:
                value = data.get(key)
                if isinstance(value, list):
                    rows = value
                    break
        if rows is None or not all(isinstance(row, dict) for row in rows):
            raise RecordsServiceError("Unexpected response shape from school API")
        return rows
