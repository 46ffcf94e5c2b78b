import logging
from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from docshare.config import settings

logger = logging.getLogger(__name__)

_AFTER_COMMIT_KEY = "docshare.after_commit"


class Base(DeclarativeBase):
    pass


def get_engine():
    if settings.database_url.startswith("sqlite"):
        return create_engine(
            settings.database_url,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
    )


SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session.

    Services commit at the end of each operation, before the response is
    built; anything left uncommitted by a failing request is rolled back.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# ---------------------------------------------------------------------------
# After-commit hooks
# ---------------------------------------------------------------------------


def run_after_commit(db: Session, callback, *args) -> None:
    """Run ``callback(*args)`` once the outermost transaction commits.

    Hooks registered inside a savepoint are dropped if that savepoint rolls
    back; every hook is dropped if the whole transaction rolls back.
    """
    db.info.setdefault(_AFTER_COMMIT_KEY, []).append(
        (db.get_nested_transaction(), callback, args)
    )


def _within(transaction, ancestor) -> bool:
    while transaction is not None:
        if transaction is ancestor:
            return True
        transaction = transaction.parent
    return False


@event.listens_for(Session, "after_commit")
def _run_hooks(session: Session) -> None:
    # Also fired on savepoint release; only the outermost commit counts.
    if session.in_nested_transaction():
        return
    for _transaction, callback, args in session.info.pop(_AFTER_COMMIT_KEY, []):
        try:
            callback(*args)
        except Exception:
            logger.exception("After-commit hook %s failed", callback.__name__)


@event.listens_for(Session, "after_soft_rollback")
def _drop_hooks(session: Session, previous_transaction) -> None:
    hooks = session.info.get(_AFTER_COMMIT_KEY)
    if not hooks:
        return
    if previous_transaction.parent is None:
        session.info.pop(_AFTER_COMMIT_KEY, None)
        return
    session.info[_AFTER_COMMIT_KEY] = [
        hook for hook in hooks if not _within(hook[0], previous_transaction)
    ]
