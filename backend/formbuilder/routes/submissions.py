from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session, joinedload, selectinload
from typing import Optional
from datetime import datetime
import io
import logging

from formbuilder.database import get_db
from formbuilder.data_access import backend_call, delete_row, fetch_single
from formbuilder.errors import ConfirmationRequired, NotFoundError
from formbuilder.models.submission import Submission, SubmissionValue
from formbuilder.services.export_service import build_rows, export_filename, write_workbook
from formbuilder.services.submission_query_service import (
    SortDirection,
    SortKey,
    fields_for_forms,
    query_submissions,
    serialize_submission,
)

logger = logging.getLogger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/submissions")
def list_submissions(
    form_id: Optional[int] = None,
    search: Optional[str] = None,
    sort: SortKey = SortKey.CREATED_AT,
    direction: SortDirection = SortDirection.DESC,
    db: Session = Depends(get_db),
):
    """Submissions across all forms or one, with their answers"""
    submissions = query_submissions(db, form_id, search, sort, direction)
    return {
        "total": len(submissions),
        "submissions": [serialize_submission(s) for s in submissions],
    }


@router.get("/submissions/export")
def export_submissions(
    form_id: Optional[int] = None,
    search: Optional[str] = None,
    sort: SortKey = SortKey.CREATED_AT,
    direction: SortDirection = SortDirection.DESC,
    db: Session = Depends(get_db),
):
    """Download the current selection as an XLSX workbook"""
    submissions = query_submissions(db, form_id, search, sort, direction)
    form_ids = []
    for submission in submissions:
        if submission.form_id not in form_ids:
            form_ids.append(submission.form_id)

    header, rows = build_rows(submissions, fields_for_forms(db, form_ids))
    content = write_workbook(header, rows)
    filename = export_filename(form_id, datetime.utcnow())
    logger.info(f"Exported {len(rows)} submissions (form {form_id or 'all'})")

    return StreamingResponse(
        io.BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/submissions/{submission_id}")
def get_submission(submission_id: int, db: Session = Depends(get_db)):
    with backend_call(db, "fetch submission", id=submission_id):
        submission = db.query(Submission).options(
            joinedload(Submission.form),
            selectinload(Submission.values).joinedload(SubmissionValue.field),
        ).filter(Submission.id == submission_id).one_or_none()
    if submission is None:
        raise NotFoundError("Submission")
    return serialize_submission(submission)


@router.delete("/submissions/{submission_id}")
def delete_submission(submission_id: int, confirm: bool = False, db: Session = Depends(get_db)):
    submission = fetch_single(db, Submission, Submission.id == submission_id, what="Submission")
    if not confirm:
        raise ConfirmationRequired("delete this submission")

    delete_row(db, submission)
    logger.info(f"Deleted submission {submission_id}")
    return {"success": True, "message": "Submission deleted"}
