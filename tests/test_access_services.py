import uuid

import pytest

from docshare.errors import ErrorKind, ForbiddenError, NotFoundError
from docshare.models.documents import Document
from docshare.services.access import (
    can_view,
    effective_review_status,
    is_approved,
    is_document_owner,
    require_visible,
    visible_filter,
)
from factories import make_document


class TestReviewStatus:
    @pytest.mark.parametrize("stored", [None, "", "   "])
    def test_legacy_blank_status_counts_as_approved(self, stored) -> None:
        doc = Document(title="t", file_name="f.pdf", review_status=stored)
        assert effective_review_status(doc) == "APPROVED"
        assert is_approved(doc) is True

    def test_status_is_case_insensitive(self) -> None:
        doc = Document(title="t", file_name="f.pdf", review_status=" approved ")
        assert effective_review_status(doc) == "APPROVED"
        assert is_approved(doc) is True

    def test_pending_is_not_approved(self) -> None:
        doc = Document(title="t", file_name="f.pdf", review_status="pending")
        assert effective_review_status(doc) == "PENDING"
        assert is_approved(doc) is False

    def test_missing_document_is_not_approved(self) -> None:
        assert is_approved(None) is False


class TestOwnership:
    def test_owner_matches(self, document, person) -> None:
        assert is_document_owner(document, person) is True

    def test_other_person_is_not_owner(self, document, other_person) -> None:
        assert is_document_owner(document, other_person) is False

    def test_ownerless_document_has_no_owner(self, db_session, person) -> None:
        doc = make_document(db_session, None)
        assert is_document_owner(doc, person) is False

    def test_anonymous_is_never_owner(self, document) -> None:
        assert is_document_owner(document, None) is False


class TestCanView:
    def test_anyone_sees_approved(self, document) -> None:
        assert can_view(document, None, False) is True

    def test_anonymous_cannot_see_pending(self, pending_document) -> None:
        assert can_view(pending_document, None, False) is False

    def test_owner_sees_own_pending(self, pending_document, person) -> None:
        assert can_view(pending_document, person, False) is True

    def test_stranger_cannot_see_pending(self, pending_document, other_person) -> None:
        assert can_view(pending_document, other_person, False) is False

    def test_privileged_sees_everything(self, db_session, person, admin) -> None:
        rejected = make_document(db_session, person, review_status="REJECTED")
        assert can_view(rejected, admin, True) is True


class TestVisibleFilter:
    def _statuses(self, db_session, owner):
        return [
            make_document(db_session, owner, review_status=status)
            for status in (None, "", "approved", "APPROVED", "PENDING", "REJECTED")
        ]

    def test_listing_matches_single_fetch(
        self, db_session, person, other_person, admin
    ) -> None:
        docs = self._statuses(db_session, person)
        for viewer, privileged in (
            (None, False),
            (other_person, False),
            (person, False),
            (admin, True),
        ):
            listed = {
                d.id
                for d in db_session.query(Document)
                .filter(visible_filter(viewer, privileged))
                .all()
            }
            expected = {d.id for d in docs if can_view(d, viewer, privileged)}
            assert listed & {d.id for d in docs} == expected

    def test_stranger_sees_only_approved_and_legacy(
        self, db_session, person, other_person
    ) -> None:
        docs = self._statuses(db_session, person)
        listed = {
            d.id
            for d in db_session.query(Document)
            .filter(visible_filter(other_person, False))
            .all()
        }
        assert listed == {d.id for d in docs[:4]}


class TestRequireVisible:
    def test_returns_visible_document(self, db_session, document) -> None:
        assert require_visible(db_session, str(document.id), None, False).id == document.id

    def test_unknown_id(self, db_session) -> None:
        with pytest.raises(NotFoundError) as exc:
            require_visible(db_session, str(uuid.uuid4()), None, False)
        assert exc.value.status_code == 404
        assert exc.value.kind == ErrorKind.not_found

    def test_malformed_id_is_not_found(self, db_session) -> None:
        with pytest.raises(NotFoundError):
            require_visible(db_session, "not-a-uuid", None, False)

    def test_denied_for_stranger(self, db_session, pending_document, other_person) -> None:
        with pytest.raises(ForbiddenError) as exc:
            require_visible(db_session, pending_document.id, other_person, False)
        assert exc.value.status_code == 403
