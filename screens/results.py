import logging
from typing import List

from backend import CBTBackend
from config import Settings
from errors import BackendError, NotFoundError
from routers.results import compose_report, filter_results, sort_for_display
from schemas.cbt import Exam, Question, ReportPayload, Result, Student
from screens.base import Screen

logger = logging.getLogger(__name__)


class ResultsScreen(Screen):
    """Results viewer: four independent snapshots plus print composition."""

    def __init__(self, backend: CBTBackend, settings: Settings):
        super().__init__(backend)
        self.settings = settings
        self.results: List[Result] = []
        self.exams: List[Exam] = []
        self.questions: List[Question] = []
        self.students: List[Student] = []

    def refresh(self) -> None:
        # Each collection loads on its own; one failing leaves the others usable
        for attr, fetch in (
            ("results", self.backend.list_results),
            ("exams", self.backend.list_exams),
            ("questions", self.backend.list_questions),
            ("students", self.backend.list_students),
        ):
            try:
                data = fetch()
            except BackendError as e:
                logger.warning("Could not load %s: %s", attr, e.message)
                continue
            if self.disposed:
                logger.debug("Discarding %s snapshot, screen disposed", attr)
                return
            setattr(self, attr, data)

    def visible_results(self, query: str = "") -> List[Result]:
        return sort_for_display(filter_results(self.results, query))

    def get_result(self, result_id: str) -> Result:
        for r in self.results:
            if r.id == result_id:
                return r
        raise NotFoundError("Result not found")

    def compose_report(self, result_id: str) -> ReportPayload:
        # Always rebuilt from the current snapshot, never cached
        result = self.get_result(result_id)
        return compose_report(result, self.exams, self.questions, self.students, self.settings)
