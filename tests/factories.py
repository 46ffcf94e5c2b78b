import uuid

from sqlalchemy import update

from docshare.models.documents import Document, ReviewStatus, Subject
from docshare.models.person import Person
from docshare.services.storage import storage


def make_person(db_session, first_name="Test", role=None, **kwargs):
    person = Person(
        first_name=first_name,
        last_name="User",
        email=f"{first_name.lower()}-{uuid.uuid4().hex[:8]}@test.com",
        role=role,
        **kwargs,
    )
    db_session.add(person)
    db_session.commit()
    db_session.refresh(person)
    return person


def make_subject(db_session, name=None):
    subject = Subject(name=name or f"Subject {uuid.uuid4().hex[:8]}")
    db_session.add(subject)
    db_session.commit()
    db_session.refresh(subject)
    return subject


def make_document(
    db_session,
    owner,
    subject=None,
    review_status=ReviewStatus.approved.value,
    content=b"%PDF-1.4 test document",
    file_name="notes.pdf",
    **kwargs,
):
    document = Document(
        title=kwargs.pop("title", f"doc_{uuid.uuid4().hex[:8]}"),
        file_name=file_name,
        storage_key=storage.generate_storage_key(file_name) if content else None,
        mime_type="application/pdf",
        file_size=len(content or b""),
        owner_id=owner.id if owner else None,
        subject=subject,
        review_status=review_status,
        **kwargs,
    )
    db_session.add(document)
    db_session.commit()
    if review_status is None:
        # The column default would otherwise stamp PENDING on the insert.
        db_session.execute(
            update(Document)
            .where(Document.id == document.id)
            .values(review_status=None)
        )
        db_session.commit()
    db_session.refresh(document)
    if content:
        storage.put(document.storage_key, content)
    return document


def viewer_headers(person):
    return {"X-Viewer": str(person.id)}
