import logging
from typing import List, Optional

from backend import CBTBackend
from errors import ActionInProgressError, BackendError, EmptyImportError, NotFoundError, ValidationError
from routers.bulk_import import parse_roster_csv
from routers.students import filter_students, serialize_roster_csv
from schemas.cbt import CLASS_LEVELS, SEXES, ImportSummary, Student, StudentDraft, StudentDraftPatch
from screens.base import Screen

logger = logging.getLogger(__name__)

CLOSED = "closed"
OPEN = "open"
SUBMITTING = "submitting"


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def validate_new_student(draft: StudentDraft) -> StudentDraft:
    """Manual add needs every field filled in."""
    cleaned = StudentDraft(
        name=_clean(draft.name),
        student_id=_clean(draft.student_id),
        class_level=_clean(draft.class_level),
        sex=_clean(draft.sex),
    )
    if not (cleaned.name and cleaned.student_id and cleaned.class_level and cleaned.sex):
        raise ValidationError("Please provide name, student id, class level, and sex")
    _check_choices(cleaned)
    return cleaned


def validate_edit(draft: StudentDraft) -> StudentDraft:
    """Edits need name and student id; class level and sex may be cleared."""
    cleaned = StudentDraft(
        name=_clean(draft.name),
        student_id=_clean(draft.student_id),
        class_level=_clean(draft.class_level) or None,
        sex=_clean(draft.sex) or None,
    )
    if not cleaned.name:
        raise ValidationError("Name is required")
    if not cleaned.student_id:
        raise ValidationError("Student ID is required")
    _check_choices(cleaned)
    return cleaned


def _check_choices(draft: StudentDraft) -> None:
    if draft.class_level and draft.class_level not in CLASS_LEVELS:
        raise ValidationError(f"Unknown class level '{draft.class_level}'")
    if draft.sex and draft.sex not in SEXES:
        raise ValidationError(f"Sex must be one of {', '.join(SEXES)}")


class EditForm:
    """
    Edit dialog state: closed -> open(student) -> submitting -> closed.

    A failed submit drops back to open with the error kept on the form,
    so the admin can fix the draft and try again.
    """

    def __init__(self):
        self.state = CLOSED
        self.student_id: Optional[str] = None
        self.draft: Optional[StudentDraft] = None
        self.error: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state != CLOSED

    def open(self, student: Student) -> None:
        self.state = OPEN
        self.student_id = student.id
        self.draft = StudentDraft.from_student(student)
        self.error = None

    def update(self, patch: StudentDraftPatch) -> StudentDraft:
        if self.state == SUBMITTING:
            raise ActionInProgressError("update")
        if self.state != OPEN:
            raise NotFoundError("No student is being edited")
        changes = patch.model_dump(exclude_unset=True)
        self.draft = self.draft.model_copy(update=changes)
        return self.draft

    def close(self) -> None:
        self.state = CLOSED
        self.student_id = None
        self.draft = None
        self.error = None

    def to_api(self) -> dict:
        return {
            "state": self.state,
            "id": self.student_id,
            "draft": self.draft.to_api() if self.draft else None,
            "error": self.error,
        }


class RosterScreen(Screen):
    """Student roster: snapshot, manual CRUD, edit dialog and CSV exchange."""

    def __init__(self, backend: CBTBackend):
        super().__init__(backend)
        self.students: List[Student] = []
        self.edit_form = EditForm()

    # --------------------------------------------------
    # Snapshot
    # --------------------------------------------------

    def refresh(self) -> None:
        try:
            data = self.backend.list_students()
        except BackendError as e:
            logger.warning("Could not load students: %s", e.message)
            return
        if self.disposed:
            logger.debug("Discarding roster snapshot, screen disposed")
            return
        self.students = data

    def _after_mutation(self, action: str) -> None:
        if self.disposed:
            logger.debug("Skipping refresh after '%s', screen disposed", action)
            return
        self.refresh()

    def filtered(self, query: str = "") -> List[Student]:
        return filter_students(self.students, query)

    def get_student(self, id: str) -> Student:
        for s in self.students:
            if s.id == id:
                return s
        raise NotFoundError("Student not found")

    # --------------------------------------------------
    # Add / delete
    # --------------------------------------------------

    def add_student(self, draft: StudentDraft) -> str:
        cleaned = validate_new_student(draft)
        with self.in_flight("add"):
            try:
                self.backend.create_student(cleaned)
            except BackendError as e:
                logger.error("Add student %s failed: %s", cleaned.student_id, e.message)
                raise BackendError(e.message or "Failed to add student", status=e.status) from e
            logger.info("Student %s added", cleaned.student_id)
            self._after_mutation("add")
        return "Student added"

    def delete_student(self, id: str) -> str:
        with self.in_flight("delete"):
            try:
                self.backend.delete_student(id)
            except BackendError as e:
                logger.error("Delete student %s failed: %s", id, e.message)
                raise BackendError("Failed to delete student", status=e.status) from e
            logger.info("Student %s deleted", id)
            self._after_mutation("delete")
        return "Student deleted"

    # --------------------------------------------------
    # Edit dialog
    # --------------------------------------------------

    def open_edit(self, id: str) -> EditForm:
        self.edit_form.open(self.get_student(id))
        return self.edit_form

    def update_draft(self, patch: StudentDraftPatch) -> EditForm:
        self.edit_form.update(patch)
        return self.edit_form

    def close_edit(self) -> None:
        self.edit_form.close()

    def submit_edit(self) -> str:
        form = self.edit_form
        if form.state == SUBMITTING:
            raise ActionInProgressError("update")
        if form.state != OPEN:
            raise NotFoundError("No student is being edited")

        try:
            cleaned = validate_edit(form.draft)
        except ValidationError as e:
            form.error = e.message
            raise

        with self.in_flight("update"):
            form.state = SUBMITTING
            try:
                self.backend.update_student(form.student_id, cleaned)
            except BackendError as e:
                logger.error("Update student %s failed: %s", form.student_id, e.message)
                form.state = OPEN
                form.error = "Failed to update student"
                raise BackendError(form.error, status=e.status) from e
            logger.info("Student %s updated", form.student_id)
            form.close()
            self._after_mutation("update")
        return "Student updated successfully"

    # --------------------------------------------------
    # CSV exchange
    # --------------------------------------------------

    def import_csv(self, text: str) -> ImportSummary:
        return self.import_rows(parse_roster_csv(text))

    def import_rows(self, rows: List[StudentDraft]) -> ImportSummary:
        if not rows:
            raise EmptyImportError()
        with self.in_flight("import"):
            try:
                self.backend.bulk_create_students(rows)
            except BackendError as e:
                logger.error("Bulk upload of %d students failed: %s", len(rows), e.message)
                raise BackendError("Failed to upload CSV", status=e.status) from e
            logger.info("Uploaded %d students", len(rows))
            self._after_mutation("import")
        return ImportSummary(created=len(rows), message=f"Uploaded {len(rows)} students")

    def export_csv(self) -> str:
        return serialize_roster_csv(self.students)
