import uuid
from datetime import datetime, timedelta, timezone

import pytest

from docshare.errors import NotFoundError, ValidationError
from docshare.services.admin import RECENT_DOCUMENT_LIMIT, admin_console
from factories import make_document


class TestOverview:
    def test_empty_site(self, db_session) -> None:
        assert admin_console.overview(db_session) == {
            "total_users": 0,
            "active_users": 0,
            "total_documents": 0,
            "total_downloads": 0,
            "documents_today": 0,
            "total_comments": 0,
        }

    def test_counts_pending_documents_too(
        self, db_session, document, pending_document
    ) -> None:
        overview = admin_console.overview(db_session)
        assert overview["total_documents"] == 2
        assert overview["documents_today"] == 2


class TestRecentDocuments:
    def test_capped_and_newest_first(self, db_session, person, subject) -> None:
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        created = [
            make_document(
                db_session, person, subject, created_at=start + timedelta(hours=i)
            )
            for i in range(RECENT_DOCUMENT_LIMIT + 1)
        ]
        items = admin_console.recent_documents(db_session)
        assert len(items) == RECENT_DOCUMENT_LIMIT
        assert items[0]["document"].id == created[-1].id
        assert created[0].id not in {item["document"].id for item in items}
        assert all(item["report_count"] == 0 for item in items)


class TestUpdateRole:
    def test_role_name_is_case_insensitive(
        self, db_session, other_person, admin_role
    ) -> None:
        updated = admin_console.update_role(db_session, other_person.id, role_name="Admin")
        assert updated.role_id == admin_role.id

    def test_role_id_wins_over_name(
        self, db_session, other_person, admin_role, member_role
    ) -> None:
        updated = admin_console.update_role(
            db_session, other_person.id, role_id=admin_role.id, role_name="member"
        )
        assert updated.role_id == admin_role.id

    @pytest.mark.parametrize("role_name", [None, "", "   "])
    def test_role_required(self, db_session, other_person, role_name) -> None:
        with pytest.raises(ValidationError):
            admin_console.update_role(db_session, other_person.id, role_name=role_name)

    def test_unknown_person(self, db_session, admin_role) -> None:
        with pytest.raises(NotFoundError):
            admin_console.update_role(db_session, uuid.uuid4(), role_name="admin")
