import uuid
from unittest.mock import patch

import pytest

from docshare.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from docshare.models.documents import Document, Notification, NotificationType, Subject
from docshare.services.subjects import (
    assign_subject,
    change_subject,
    sanitize_name,
    subjects,
)
from factories import make_document, make_subject


def _owner_notes(db_session, person, notification_type):
    return (
        db_session.query(Notification)
        .filter_by(person_id=person.id, notification_type=notification_type.value)
        .all()
    )


class TestSanitizeName:
    def test_collapses_whitespace(self) -> None:
        assert sanitize_name("  Data \t  Structures \n") == "Data Structures"

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_blank(self, raw) -> None:
        with pytest.raises(ValidationError):
            sanitize_name(raw)

    def test_length_limit(self) -> None:
        assert sanitize_name("a" * 150) == "a" * 150
        with pytest.raises(ValidationError):
            sanitize_name("a" * 151)


class TestSubjectCrud:
    def test_create(self, db_session) -> None:
        created = subjects.create(db_session, "  Linear   Algebra ")
        assert created.name == "Linear Algebra"

    def test_duplicate_is_case_insensitive(self, db_session, subject) -> None:
        with pytest.raises(ConflictError):
            subjects.create(db_session, subject.name.upper())

    def test_rename(self, db_session, subject) -> None:
        renamed = subjects.rename(db_session, subject.id, "Advanced  Algorithms")
        assert renamed.name == "Advanced Algorithms"

    def test_rename_to_own_name_in_other_case(self, db_session, subject) -> None:
        renamed = subjects.rename(db_session, subject.id, subject.name.lower())
        assert renamed.name == subject.name.lower()

    def test_rename_to_taken_name(self, db_session, subject) -> None:
        other = make_subject(db_session, "Databases")
        with pytest.raises(ConflictError):
            subjects.rename(db_session, other.id, "algorithms")

    def test_rename_unknown(self, db_session) -> None:
        with pytest.raises(NotFoundError):
            subjects.rename(db_session, uuid.uuid4(), "Anything")

    def test_list_counts_only_public_documents(
        self, db_session, subject, person
    ) -> None:
        empty = make_subject(db_session, "Empty")
        make_document(db_session, person, subject)
        make_document(db_session, person, subject, review_status=None)
        make_document(db_session, person, subject, review_status="PENDING")
        counts = {row["id"]: row["document_count"] for row in subjects.list_with_counts(db_session)}
        assert counts[subject.id] == 2
        assert counts[empty.id] == 0


class TestDeleteSubject:
    def test_documents_are_parked_and_owners_told(
        self, db_session, subject, person, other_person
    ) -> None:
        first = make_document(db_session, person, subject)
        second = make_document(db_session, other_person, subject)
        subject_id = subject.id

        affected = subjects.delete(db_session, subject_id)

        assert affected == 2
        assert db_session.get(Subject, subject_id) is None
        for doc, owner in ((first, person), (second, other_person)):
            db_session.refresh(doc)
            assert doc.subject_id is None
            assert doc.pending_subject is True
            notes = _owner_notes(db_session, owner, NotificationType.pending_subject)
            assert len(notes) == 1
            assert notes[0].subject_name == "Algorithms"
            assert "Algorithms" in notes[0].message

    def test_unknown_subject(self, db_session) -> None:
        with pytest.raises(NotFoundError):
            subjects.delete(db_session, uuid.uuid4())

    def test_failure_leaves_nothing_behind(self, db_session, subject, person) -> None:
        doc = make_document(db_session, person, subject)
        with patch(
            "docshare.services.subjects.notification_dispatcher.pending_subject",
            side_effect=RuntimeError("notification store down"),
        ):
            with pytest.raises(RuntimeError):
                with db_session.begin_nested():
                    subjects.delete(db_session, subject.id)
        db_session.refresh(doc)
        assert doc.subject_id == subject.id
        assert doc.pending_subject is False
        assert db_session.get(Subject, subject.id) is not None


class TestAssignSubject:
    def test_owner_classifies_pending_document(self, db_session, person, subject) -> None:
        doc = make_document(db_session, person, None, pending_subject=True)
        updated = assign_subject(db_session, doc.id, subject.id, person, False)
        assert updated.subject_id == subject.id
        assert updated.pending_subject is False
        assert _owner_notes(db_session, person, NotificationType.subject_change) == []

    def test_owner_cannot_reclassify(self, db_session, document, person) -> None:
        other = make_subject(db_session, "Networks")
        with pytest.raises(ValidationError):
            assign_subject(db_session, document.id, other.id, person, False)

    def test_stranger_is_forbidden(self, db_session, document, other_person, subject) -> None:
        with pytest.raises(ForbiddenError):
            assign_subject(db_session, document.id, subject.id, other_person, False)

    def test_missing_requester(self, db_session, document, subject) -> None:
        with pytest.raises(ForbiddenError):
            assign_subject(db_session, document.id, subject.id, None, False)

    def test_unknown_subject(self, db_session, person) -> None:
        doc = make_document(db_session, person, None, pending_subject=True)
        with pytest.raises(NotFoundError):
            assign_subject(db_session, doc.id, uuid.uuid4(), person, False)

    def test_admin_reassigns_and_owner_is_told(
        self, db_session, document, person, admin
    ) -> None:
        other = make_subject(db_session, "Networks")
        assign_subject(db_session, document.id, other.id, admin, True)
        notes = _owner_notes(db_session, person, NotificationType.subject_change)
        assert len(notes) == 1
        assert 'from subject "Algorithms" to "Networks"' in notes[0].message
        assert notes[0].subject_name == "Networks"

    def test_first_assignment_message(self, db_session, person, admin, subject) -> None:
        doc = make_document(db_session, person, None, pending_subject=True)
        assign_subject(db_session, doc.id, subject.id, admin, True)
        notes = _owner_notes(db_session, person, NotificationType.subject_change)
        assert 'was assigned to subject "Algorithms"' in notes[0].message

    def test_admin_on_own_document_is_silent(
        self, db_session, admin, subject
    ) -> None:
        doc = make_document(db_session, admin, subject)
        other = make_subject(db_session, "Networks")
        assign_subject(db_session, doc.id, other.id, admin, True)
        assert _owner_notes(db_session, admin, NotificationType.subject_change) == []


class TestChangeSubject:
    def test_always_notifies_owner(self, db_session, document, person) -> None:
        other = make_subject(db_session, "Networks")
        updated = change_subject(db_session, document.id, other.id)
        assert updated.subject_id == other.id
        assert len(_owner_notes(db_session, person, NotificationType.subject_change)) == 1

    def test_unknown_document(self, db_session, subject) -> None:
        with pytest.raises(NotFoundError):
            change_subject(db_session, uuid.uuid4(), subject.id)

    def test_document_count_is_unchanged(self, db_session, document) -> None:
        other = make_subject(db_session, "Networks")
        before = db_session.query(Document).count()
        change_subject(db_session, document.id, other.id)
        assert db_session.query(Document).count() == before
