import pytest

from errors import NotFoundError
from schemas.cbt import Student
from screens.results import ResultsScreen


class TestResultsScreen:
    def test_refresh_loads_every_collection(self, results_screen):
        assert len(results_screen.results) == 3
        assert len(results_screen.exams) == 2
        assert len(results_screen.questions) == 7
        assert len(results_screen.students) == 3

    def test_one_failing_collection_leaves_the_rest(self, backend, settings):
        backend.failing.add("list_questions")
        screen = ResultsScreen(backend, settings)
        screen.refresh()
        assert screen.questions == []
        assert len(screen.results) == 3
        assert len(screen.students) == 3

    def test_report_degrades_when_questions_failed_to_load(self, backend, settings):
        backend.failing.add("list_questions")
        screen = ResultsScreen(backend, settings)
        screen.refresh()
        report = screen.compose_report("r1")
        assert report.exam_title == "Mathematics & English Mock"
        assert report.subject_breakdown == []

    def test_visible_results_filter_then_sort(self, results_screen):
        assert [r.id for r in results_screen.visible_results()] == ["r2", "r3", "r1"]
        assert [r.id for r in results_screen.visible_results("STUDENT-00")] == ["r2", "r1"]

    def test_unknown_result(self, results_screen):
        with pytest.raises(NotFoundError):
            results_screen.compose_report("missing")

    def test_report_reflects_latest_snapshot(self, results_screen, backend):
        assert results_screen.compose_report("r1").candidate.grade_level == "JSS1"
        backend.students[0] = Student(id="s1", name="John Doe", student_id="student-001", class_level="SS1", sex="M")
        results_screen.refresh()
        assert results_screen.compose_report("r1").candidate.grade_level == "SS1"

    def test_disposed_screen_keeps_old_snapshot(self, results_screen, backend):
        backend.results = []
        results_screen.dispose()
        results_screen.refresh()
        assert len(results_screen.results) == 3
