from typing import Dict, List, Optional
import enum

from sqlalchemy.orm import Session, joinedload, selectinload

from formbuilder.data_access import backend_call, select_rows
from formbuilder.models.form import Field
from formbuilder.models.submission import Submission, SubmissionValue
from formbuilder.services.field_types import parse_answer


class SortKey(str, enum.Enum):
    CREATED_AT = "created_at"
    FORM_NAME = "form_name"


class SortDirection(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


def load_submissions(db: Session, form_id: Optional[int] = None) -> List[Submission]:
    """Submissions with their form and values, in insertion order"""
    with backend_call(db, "load submissions", form_id=form_id):
        query = db.query(Submission).options(
            joinedload(Submission.form),
            selectinload(Submission.values).joinedload(SubmissionValue.field),
        )
        if form_id is not None:
            query = query.filter(Submission.form_id == form_id)
        return query.order_by(Submission.id).all()


def value_label(value: SubmissionValue) -> str:
    if value.field is not None:
        return value.field.label
    return value.field_label or ""


def matches_search(submission: Submission, term: str) -> bool:
    needle = term.casefold()
    if submission.form is not None and needle in (submission.form.name or "").casefold():
        return True
    return any(needle in (v.value or "").casefold() for v in submission.values)


def filter_submissions(submissions: List[Submission], search: Optional[str]) -> List[Submission]:
    if not search or not search.strip():
        return list(submissions)
    term = search.strip()
    return [s for s in submissions if matches_search(s, term)]


def sort_submissions(submissions: List[Submission], sort: SortKey = SortKey.CREATED_AT,
                     direction: SortDirection = SortDirection.DESC) -> List[Submission]:
    # sorted() is stable, so equal keys keep insertion order in both directions
    if SortKey(sort) == SortKey.FORM_NAME:
        key = lambda s: (s.form.name if s.form else "").casefold()
    else:
        key = lambda s: s.created_at
    return sorted(submissions, key=key, reverse=SortDirection(direction) == SortDirection.DESC)


def query_submissions(db: Session, form_id: Optional[int] = None, search: Optional[str] = None,
                      sort: SortKey = SortKey.CREATED_AT,
                      direction: SortDirection = SortDirection.DESC) -> List[Submission]:
    submissions = load_submissions(db, form_id)
    return sort_submissions(filter_submissions(submissions, search), sort, direction)


def fields_for_forms(db: Session, form_ids: List[int]) -> Dict[int, List[Field]]:
    grouped: Dict[int, List[Field]] = {form_id: [] for form_id in form_ids}
    if not form_ids:
        return grouped
    for field in select_rows(db, Field, Field.form_id.in_(form_ids), order_by=(Field.order, Field.id)):
        grouped[field.form_id].append(field)
    return grouped


def serialize_value(value: SubmissionValue) -> dict:
    data = {
        "field_id": value.field_id,
        "label": value_label(value),
        "value": value.value,
    }
    if value.field is not None:
        data["type"] = value.field.type.value
        data["answer"] = parse_answer(value.field.type, value.value).model_dump()
    return data


def serialize_submission(submission: Submission) -> dict:
    return {
        "id": submission.id,
        "form_id": submission.form_id,
        "form_name": submission.form.name if submission.form else None,
        "created_at": submission.created_at.isoformat(),
        "values": [serialize_value(v) for v in submission.values],
    }
