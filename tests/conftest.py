import os
from unittest.mock import patch

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["S3_ENDPOINT_URL"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from docshare import models  # noqa: E402,F401
from docshare.db import Base, get_db  # noqa: E402
from docshare.models.documents import ReviewStatus  # noqa: E402
from docshare.models.person import Role  # noqa: E402
from docshare.services.storage import StorageService  # noqa: E402
from factories import make_document, make_person, make_subject  # noqa: E402


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite needs to hand transaction control to SQLAlchemy for SAVEPOINT.
    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


@pytest.fixture(scope="session")
def tables(engine):
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture()
def db_session(engine, tables):
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(autouse=True)
def event_delay():
    with patch("docshare.tasks.events.process_event.delay") as mock_delay:
        yield mock_delay


@pytest.fixture(autouse=True)
def local_storage(tmp_path):
    # Own MonkeyPatch so a test's monkeypatch.undo() keeps the redirect.
    root = tmp_path / "uploads"
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(StorageService, "local_root", str(root))
        yield root


@pytest.fixture()
def client(db_session):
    from docshare.main import app

    def _override_get_db():
        try:
            yield db_session
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def admin_role(db_session):
    role = Role(name="admin", description="Moderators")
    db_session.add(role)
    db_session.commit()
    db_session.refresh(role)
    return role


@pytest.fixture()
def member_role(db_session):
    role = Role(name="member")
    db_session.add(role)
    db_session.commit()
    db_session.refresh(role)
    return role


@pytest.fixture()
def person(db_session, member_role):
    return make_person(db_session, "Owner", role=member_role)


@pytest.fixture()
def other_person(db_session, member_role):
    return make_person(db_session, "Reader", role=member_role)


@pytest.fixture()
def admin(db_session, admin_role):
    return make_person(db_session, "Admin", role=admin_role)


@pytest.fixture()
def subject(db_session):
    return make_subject(db_session, "Algorithms")


@pytest.fixture()
def document(db_session, person, subject):
    return make_document(db_session, person, subject, title="Graph Theory Notes")


@pytest.fixture()
def pending_document(db_session, person, subject):
    return make_document(
        db_session,
        person,
        subject,
        review_status=ReviewStatus.pending.value,
        title="Pending Notes",
    )
