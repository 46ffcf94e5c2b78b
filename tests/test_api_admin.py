import uuid
from datetime import datetime, timezone

from fastapi.testclient import TestClient

from docshare.models.documents import (
    Comment,
    Document,
    DocumentReport,
    Notification,
    NotificationType,
)
from factories import make_document, make_person, make_subject, viewer_headers


def test_admin_routes_require_viewer(client):
    assert client.get("/admin/review/documents").status_code == 401


def test_admin_routes_reject_members(client, other_person):
    response = client.get(
        "/admin/review/documents", headers=viewer_headers(other_person)
    )
    assert response.status_code == 403
    assert response.json()["code"] == "http_403"


def test_review_queue(client, document, pending_document, admin):
    response = client.get("/admin/review/documents", headers=viewer_headers(admin))
    assert response.status_code == 200
    ids = [item["document"]["id"] for item in response.json()]
    assert ids == [str(pending_document.id)]


def test_approve(client, pending_document, admin):
    response = client.patch(
        f"/admin/review/documents/{pending_document.id}",
        json={"action": "approved"},
        headers=viewer_headers(admin),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["action"] == "APPROVE"
    assert data["deleted"] is False
    assert data["document"]["review_status"] == "APPROVED"
    assert data["document"]["reviewed_by"] == admin.email


def test_reject_deletes(client, db_session, pending_document, person, admin):
    doc_id = pending_document.id
    response = client.patch(
        f"/admin/review/documents/{doc_id}",
        json={"action": "REJECT", "reason": "Unreadable"},
        headers=viewer_headers(admin),
    )
    assert response.status_code == 200
    assert response.json() == {"action": "REJECT", "deleted": True, "document": None}
    assert db_session.get(Document, doc_id) is None
    notes = client.get("/notifications", headers=viewer_headers(person)).json()
    rejected = [
        n for n in notes if n["notification_type"] == NotificationType.review_rejected.value
    ]
    assert rejected[0]["reason"] == "Unreadable"


def test_reject_without_reason(client, pending_document, admin):
    response = client.patch(
        f"/admin/review/documents/{pending_document.id}",
        json={"action": "reject"},
        headers=viewer_headers(admin),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "validation"


def test_missing_action(client, pending_document, admin):
    response = client.patch(
        f"/admin/review/documents/{pending_document.id}",
        json={},
        headers=viewer_headers(admin),
    )
    assert response.status_code == 400


def test_delete_document(client, db_session, document, person, admin):
    doc_id = document.id
    response = client.request(
        "DELETE",
        f"/admin/documents/{doc_id}",
        json={"reason": "Duplicate upload"},
        headers=viewer_headers(admin),
    )
    assert response.status_code == 204
    assert db_session.get(Document, doc_id) is None
    note = (
        db_session.query(Notification)
        .filter_by(
            person_id=person.id,
            notification_type=NotificationType.document_removed.value,
        )
        .one()
    )
    assert note.reason == "Duplicate upload"


def test_delete_document_without_body(client, document, admin):
    response = client.delete(
        f"/admin/documents/{document.id}", headers=viewer_headers(admin)
    )
    assert response.status_code == 204


def test_delete_unknown_document(client, admin):
    response = client.delete(
        f"/admin/documents/{uuid.uuid4()}", headers=viewer_headers(admin)
    )
    assert response.status_code == 404


def test_change_subject(client, db_session, document, admin):
    target = make_subject(db_session, "Networks")
    response = client.patch(
        f"/admin/documents/{document.id}/subject",
        json={"subject_id": str(target.id)},
        headers=viewer_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["subject"]["name"] == "Networks"


def test_comment_moderation(client, db_session, document, other_person, admin):
    comment = Comment(document_id=document.id, author_id=other_person.id, content="meh")
    db_session.add(comment)
    db_session.commit()

    listed = client.get("/admin/comments", headers=viewer_headers(admin)).json()
    assert listed["count"] == 1
    assert listed["items"][0]["document_title"] == "Graph Theory Notes"

    response = client.request(
        "DELETE",
        f"/admin/comments/{comment.id}",
        json={"reason": "off-topic"},
        headers=viewer_headers(admin),
    )
    assert response.status_code == 204
    assert db_session.query(Comment).filter_by(document_id=document.id).count() == 0


def test_failed_commit_returns_error(
    client, db_session, pending_document, admin, monkeypatch
):
    from docshare.main import app

    def _fail():
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(db_session, "commit", _fail)
    with TestClient(app, raise_server_exceptions=False) as failing_client:
        response = failing_client.patch(
            f"/admin/review/documents/{pending_document.id}",
            json={"action": "approve"},
            headers=viewer_headers(admin),
        )
    monkeypatch.undo()

    assert response.status_code == 500
    assert response.json()["code"] == "internal_error"
    db_session.rollback()
    assert db_session.get(Document, pending_document.id).review_status == "PENDING"


def test_overview(client, db_session, person, other_person, admin, subject):
    fresh = make_document(db_session, person, subject, download_count=3)
    make_document(
        db_session,
        person,
        subject,
        download_count=4,
        created_at=datetime(2020, 1, 1, tzinfo=timezone.utc),
    )
    make_person(db_session, "Gone", is_active=False)
    db_session.add(Comment(document_id=fresh.id, author_id=other_person.id, content="ok"))
    db_session.commit()

    response = client.get("/admin/overview", headers=viewer_headers(admin))
    assert response.status_code == 200
    assert response.json() == {
        "total_users": 4,
        "active_users": 3,
        "total_documents": 2,
        "total_downloads": 7,
        "documents_today": 1,
        "total_comments": 1,
    }


def test_recent_documents(client, db_session, person, other_person, admin, subject):
    older = make_document(
        db_session, person, subject, created_at=datetime(2026, 1, 1, tzinfo=timezone.utc)
    )
    newer = make_document(
        db_session,
        person,
        subject,
        review_status="PENDING",
        created_at=datetime(2026, 2, 1, tzinfo=timezone.utc),
    )
    db_session.add(DocumentReport(document_id=older.id, reporter_id=other_person.id))
    db_session.commit()

    response = client.get("/admin/documents", headers=viewer_headers(admin))
    assert response.status_code == 200
    items = response.json()
    assert [item["document"]["id"] for item in items] == [str(newer.id), str(older.id)]
    assert [item["report_count"] for item in items] == [0, 1]
    assert items[0]["document"]["review_status"] == "PENDING"


def test_promote_by_role_name(client, other_person, admin, admin_role):
    assert (
        client.get("/admin/overview", headers=viewer_headers(other_person)).status_code
        == 403
    )
    response = client.patch(
        f"/admin/people/{other_person.id}/role",
        json={"role_name": " ADMIN "},
        headers=viewer_headers(admin),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["role_id"] == str(admin_role.id)
    assert data["role_name"] == "admin"
    assert (
        client.get("/admin/overview", headers=viewer_headers(other_person)).status_code
        == 200
    )


def test_demote_by_role_id(client, db_session, admin, admin_role, member_role):
    second = make_person(db_session, "Second", role=admin_role)
    response = client.patch(
        f"/admin/people/{second.id}/role",
        json={"role_id": str(member_role.id)},
        headers=viewer_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["role_name"] == "member"
    assert (
        client.get("/admin/overview", headers=viewer_headers(second)).status_code == 403
    )


def test_role_update_errors(client, other_person, admin):
    url = f"/admin/people/{other_person.id}/role"
    headers = viewer_headers(admin)
    assert client.patch(url, json={}, headers=headers).status_code == 400
    assert (
        client.patch(url, json={"role_name": "owner"}, headers=headers).status_code
        == 404
    )
    assert (
        client.patch(
            url, json={"role_id": str(uuid.uuid4())}, headers=headers
        ).status_code
        == 404
    )
    assert (
        client.patch(
            f"/admin/people/{uuid.uuid4()}/role",
            json={"role_name": "admin"},
            headers=headers,
        ).status_code
        == 404
    )
