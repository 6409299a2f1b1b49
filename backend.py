"""
HTTP client for the CBT backend (students, exams, questions, results).
The console never stores anything itself: every record it shows is a
snapshot fetched through this client.
"""

import logging
from typing import Any, Dict, List, Optional, Type

import requests
from fastapi import Request
from pydantic import BaseModel, ValidationError as SchemaError

from config import Settings
from errors import BackendError
from schemas.cbt import Exam, Question, Result, Student, StudentDraft

logger = logging.getLogger(__name__)


class CBTBackend:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        if settings is not None:
            base_url = base_url or settings.api_base_url
            token = token or settings.api_token
            timeout_seconds = timeout_seconds or settings.api_timeout

        if not base_url:
            raise ValueError("base_url is required")

        self._base_url = str(base_url).rstrip("/")
        self._timeout = float(timeout_seconds or 10.0)
        self._headers = {"Accept": "application/json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

        # Created on first request
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def close(self) -> None:
        if self._session is not None:
            self._session.close()

    # --------------------------------------------------
    # Transport
    # --------------------------------------------------

    def _request(self, method: str, path: str, json: Any = None) -> Any:
        url = f"{self._base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            resp = self.session.request(
                method,
                url,
                json=json,
                headers=self._headers,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.warning("Backend unreachable: %s %s (%s)", method, url, e)
            raise BackendError("Could not reach the CBT backend") from e

        if resp.status_code >= 400:
            raise BackendError(_error_message(resp), status=resp.status_code)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise BackendError("Backend returned an invalid response", status=resp.status_code) from e

    def _list(self, path: str, model: Type[BaseModel]) -> List[Any]:
        data = self._request("GET", path)
        if not isinstance(data, list):
            return []
        try:
            return [model.model_validate(d) for d in data]
        except SchemaError as e:
            logger.warning("Invalid record in %s: %s", path, e)
            raise BackendError("Backend returned an invalid response") from e

    # --------------------------------------------------
    # Read-only collections
    # --------------------------------------------------

    def list_results(self) -> List[Result]:
        return self._list("/api/results", Result)

    def list_exams(self) -> List[Exam]:
        return self._list("/api/exams", Exam)

    def list_questions(self) -> List[Question]:
        return self._list("/api/questions", Question)

    def list_students(self) -> List[Student]:
        return self._list("/api/students", Student)

    # --------------------------------------------------
    # Roster mutations
    # --------------------------------------------------

    def create_student(self, draft: StudentDraft) -> Optional[Student]:
        data = self._request("POST", "/api/students", json=draft.to_api())
        return _student_or_none(data)

    def update_student(self, id: str, draft: StudentDraft) -> Optional[Student]:
        data = self._request("PUT", f"/api/students/{id}", json=draft.to_api())
        return _student_or_none(data)

    def delete_student(self, id: str) -> None:
        self._request("DELETE", f"/api/students/{id}")

    def bulk_create_students(self, rows: List[StudentDraft]) -> Dict[str, Any]:
        payload = {"students": [r.to_api() for r in rows]}
        data = self._request("POST", "/api/students/bulk", json=payload)
        return data if isinstance(data, dict) else {}


def _student_or_none(data: Any) -> Optional[Student]:
    if isinstance(data, dict) and data.get("id") is not None:
        try:
            return Student.model_validate(data)
        except SchemaError:
            logger.warning("Ignoring unreadable student in backend response: %r", data)
    return None


def _error_message(resp: requests.Response) -> str:
    """Pull the backend's own message out of an error response when it sent one."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            if isinstance(body.get(key), str) and body[key].strip():
                return body[key]
    return f"Backend request failed ({resp.status_code})"


# --- FastAPI dependency ---
def get_backend(request: Request) -> CBTBackend:
    return request.app.state.backend
