from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from docshare.api.deps import require_admin
from docshare.db import get_db
from docshare.schemas.subject import (
    SubjectDeleteResponse,
    SubjectRead,
    SubjectWithCount,
    SubjectWrite,
)
from docshare.services.subjects import subjects

router = APIRouter(prefix="/subjects", tags=["subjects"])


@router.get("", response_model=list[SubjectWithCount])
def list_subjects(db: Session = Depends(get_db)):
    return subjects.list_with_counts(db)


@router.post(
    "",
    response_model=SubjectRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_subject(payload: SubjectWrite, db: Session = Depends(get_db)):
    return subjects.create(db, payload.name)


@router.put(
    "/{subject_id}",
    response_model=SubjectRead,
    dependencies=[Depends(require_admin)],
)
def rename_subject(subject_id: str, payload: SubjectWrite, db: Session = Depends(get_db)):
    return subjects.rename(db, subject_id, payload.name)


@router.delete(
    "/{subject_id}",
    response_model=SubjectDeleteResponse,
    dependencies=[Depends(require_admin)],
)
def delete_subject(subject_id: str, db: Session = Depends(get_db)):
    return {"reassigned_documents": subjects.delete(db, subject_id)}
