import uuid

from factories import make_document, viewer_headers


def test_list_subjects_with_counts(client, document, subject):
    response = client.get("/subjects")
    assert response.status_code == 200
    assert response.json() == [
        {"id": str(subject.id), "name": "Algorithms", "document_count": 1}
    ]


def test_create_subject(client, admin):
    response = client.post(
        "/subjects", json={"name": "  Operating   Systems "}, headers=viewer_headers(admin)
    )
    assert response.status_code == 201
    assert response.json()["name"] == "Operating Systems"


def test_create_duplicate(client, subject, admin):
    response = client.post(
        "/subjects", json={"name": "ALGORITHMS"}, headers=viewer_headers(admin)
    )
    assert response.status_code == 409


def test_members_cannot_manage_subjects(client, subject, person):
    headers = viewer_headers(person)
    assert client.post("/subjects", json={"name": "X"}, headers=headers).status_code == 403
    assert (
        client.put(f"/subjects/{subject.id}", json={"name": "X"}, headers=headers).status_code
        == 403
    )
    assert client.delete(f"/subjects/{subject.id}", headers=headers).status_code == 403


def test_rename_subject(client, subject, admin):
    response = client.put(
        f"/subjects/{subject.id}", json={"name": "Graphs"}, headers=viewer_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Graphs"


def test_delete_subject_parks_documents(client, db_session, subject, person, admin):
    doc = make_document(db_session, person, subject)
    response = client.delete(f"/subjects/{subject.id}", headers=viewer_headers(admin))
    assert response.status_code == 200
    assert response.json() == {"reassigned_documents": 1}
    data = client.get(f"/documents/{doc.id}").json()
    assert data["subject_id"] is None
    assert data["pending_subject"] is True


def test_delete_unknown_subject(client, admin):
    response = client.delete(f"/subjects/{uuid.uuid4()}", headers=viewer_headers(admin))
    assert response.status_code == 404
