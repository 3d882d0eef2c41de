from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Dict, List
import logging
import secrets
import string

from formbuilder.database import get_db
from formbuilder.data_access import (
    backend_call,
    count_rows,
    delete_row,
    fetch_maybe_single,
    fetch_single,
    insert_row,
    select_rows,
    update_row,
)
from formbuilder.errors import ConfirmationRequired, ConflictError, FormBuilderError, PartialWriteFailure
from formbuilder.models.form import Field, Form
from formbuilder.models.submission import Submission
from formbuilder.schemas.form import (
    FieldCreate,
    FieldMove,
    FieldResponse,
    FieldUpdate,
    FormCreate,
    FormResponse,
    FormUpdate,
)
from formbuilder.services.field_types import needs_options, normalize_options
from formbuilder.services.form_templates import FORM_TEMPLATES, instantiate_fields, list_templates
from formbuilder.services.visibility_service import dependency_creates_cycle

logger = logging.getLogger(__name__)

router = APIRouter()

PUBLIC_URL_ALPHABET = string.ascii_lowercase + string.digits
PUBLIC_URL_LENGTH = 26


def generate_public_url() -> str:
    return "".join(secrets.choice(PUBLIC_URL_ALPHABET) for _ in range(PUBLIC_URL_LENGTH))


def unused_public_url(db: Session) -> str:
    for _ in range(5):
        candidate = generate_public_url()
        if fetch_maybe_single(db, Form, Form.public_url == candidate) is None:
            return candidate
    raise ConflictError("Could not allocate a public URL")


def ordered_fields(db: Session, form_id: int) -> List[Field]:
    return select_rows(db, Field, Field.form_id == form_id, order_by=(Field.order, Field.id))


def submission_counts(db: Session) -> Dict[int, int]:
    with backend_call(db, "count submissions per form"):
        rows = db.query(Submission.form_id, func.count(Submission.id)).group_by(Submission.form_id).all()
    return {form_id: count for form_id, count in rows}


def form_payload(form: Form, fields: List[Field] = None, submission_count: int = None) -> dict:
    data = FormResponse.model_validate(form).model_dump(mode="json")
    if fields is not None:
        data["fields"] = [FieldResponse.model_validate(f).model_dump(mode="json") for f in fields]
    if submission_count is not None:
        data["submission_count"] = submission_count
    return data


def check_dependency(db: Session, form_id: int, field_id, depends_on_field_id) -> None:
    """The controlling field must live in the same form and must not close a loop"""
    if depends_on_field_id is None:
        return
    fields = ordered_fields(db, form_id)
    if depends_on_field_id not in {f.id for f in fields}:
        raise HTTPException(status_code=422, detail="Controlling field must belong to the same form")
    if dependency_creates_cycle(fields, field_id, depends_on_field_id):
        raise HTTPException(status_code=422, detail="Field dependencies cannot form a cycle")


# ─────────────────────────────────────────
# FORMS
# ─────────────────────────────────────────

@router.get("/forms")
def get_all_forms(db: Session = Depends(get_db)):
    """All forms, newest first, with their submission counts"""
    forms = select_rows(db, Form, order_by=(Form.created_at.desc(), Form.id.desc()))
    counts = submission_counts(db)
    return [form_payload(f, submission_count=counts.get(f.id, 0)) for f in forms]


@router.get("/forms/templates")
def get_templates():
    return list_templates()


@router.post("/forms")
def create_form(form_data: FormCreate, db: Session = Depends(get_db)):
    """Create a form, optionally pre-filled from a template"""
    if form_data.template is not None and form_data.template not in FORM_TEMPLATES:
        raise HTTPException(status_code=400, detail=f"Unknown template '{form_data.template}'")

    if form_data.public_url:
        if fetch_maybe_single(db, Form, Form.public_url == form_data.public_url) is not None:
            raise ConflictError("Public URL already in use")
        public_url = form_data.public_url
    else:
        public_url = unused_public_url(db)

    new_form = insert_row(db, Form(
        name=form_data.name,
        description=form_data.description,
        status=form_data.status,
        public_url=public_url,
        media_type=form_data.media_type,
        media_url=form_data.media_url,
        tutorial_video_url=form_data.tutorial_video_url,
    ))
    logger.info(f"Created form {new_form.id}")

    if form_data.template:
        try:
            instantiate_fields(db, new_form, form_data.template)
        except FormBuilderError:
            logger.error(f"Form {new_form.id} saved but template '{form_data.template}' fields failed")
            raise PartialWriteFailure("form", "fields", new_form.id)

    return {
        "success": True,
        "form": form_payload(new_form, ordered_fields(db, new_form.id)),
    }


@router.get("/forms/{form_id}")
def get_form(form_id: int, db: Session = Depends(get_db)):
    form = fetch_single(db, Form, Form.id == form_id, what="Form")
    count = count_rows(db, Submission, Submission.form_id == form.id)
    return form_payload(form, ordered_fields(db, form.id), submission_count=count)


@router.patch("/forms/{form_id}")
def update_form(form_id: int, form_data: FormUpdate, db: Session = Depends(get_db)):
    form = fetch_single(db, Form, Form.id == form_id, what="Form")
    values = form_data.model_dump(exclude_unset=True)
    if "name" in values and values["name"] is None:
        del values["name"]
    if "status" in values and values["status"] is None:
        del values["status"]
    if "media_type" in values and values["media_type"] is None:
        del values["media_type"]

    form = update_row(db, form, values)
    logger.info(f"Updated form {form.id}: {sorted(values)}")
    return {"success": True, "form": form_payload(form)}


@router.delete("/forms/{form_id}")
def delete_form(form_id: int, confirm: bool = False, db: Session = Depends(get_db)):
    """Delete a form together with its fields and submissions"""
    form = fetch_single(db, Form, Form.id == form_id, what="Form")
    if not confirm:
        raise ConfirmationRequired("delete this form and all of its submissions")

    delete_row(db, form)
    logger.info(f"Deleted form {form_id}")
    return {"success": True, "message": "Form deleted"}


# ─────────────────────────────────────────
# FIELDS
# ─────────────────────────────────────────

@router.get("/forms/{form_id}/fields")
def get_fields(form_id: int, db: Session = Depends(get_db)):
    fetch_single(db, Form, Form.id == form_id, what="Form")
    return [FieldResponse.model_validate(f) for f in ordered_fields(db, form_id)]


@router.post("/forms/{form_id}/fields")
def create_field(form_id: int, field_data: FieldCreate, db: Session = Depends(get_db)):
    """Append a field; without an explicit order it goes after the current last one"""
    form = fetch_single(db, Form, Form.id == form_id, what="Form")
    check_dependency(db, form.id, None, field_data.depends_on_field_id)

    order = field_data.order
    if order is None:
        with backend_call(db, "max field order", form_id=form.id):
            current_max = db.query(func.max(Field.order)).filter(Field.form_id == form.id).scalar()
        order = (current_max or 0) + 1

    field = insert_row(db, Field(
        form_id=form.id,
        label=field_data.label,
        type=field_data.type,
        required=field_data.required,
        placeholder=field_data.placeholder,
        options=normalize_options(field_data.type, field_data.options),
        order=order,
        enabled=field_data.enabled,
        depends_on_field_id=field_data.depends_on_field_id,
        show_when_value=field_data.show_when_value,
    ))
    logger.info(f"Added field {field.id} to form {form.id}")
    return {"success": True, "field": FieldResponse.model_validate(field)}


@router.patch("/fields/{field_id}")
def update_field(field_id: int, field_data: FieldUpdate, db: Session = Depends(get_db)):
    field = fetch_single(db, Field, Field.id == field_id, what="Field")
    values = field_data.model_dump(exclude_unset=True)
    for key in ("label", "type", "required", "enabled"):
        if key in values and values[key] is None:
            del values[key]

    field_type = values.get("type", field.type)
    options = values.get("options", field.options)
    if needs_options(field_type) and not normalize_options(field_type, options):
        raise HTTPException(status_code=422, detail=f"Options are required for '{field_type.value}' fields")
    if "type" in values or "options" in values:
        values["options"] = normalize_options(field_type, options)

    if "depends_on_field_id" in values or "show_when_value" in values:
        depends_on = values.get("depends_on_field_id", field.depends_on_field_id)
        show_when = values.get("show_when_value", field.show_when_value)
        if (depends_on is None) != (show_when is None):
            raise HTTPException(status_code=422,
                                detail="depends_on_field_id and show_when_value must be set together")
        check_dependency(db, field.form_id, field.id, depends_on)

    field = update_row(db, field, values)
    logger.info(f"Updated field {field.id}: {sorted(values)}")
    return {"success": True, "field": FieldResponse.model_validate(field)}


@router.delete("/fields/{field_id}")
def delete_field(field_id: int, confirm: bool = False, db: Session = Depends(get_db)):
    """Delete a field. Stored answers keep their label snapshot; dependents become unconditional."""
    field = fetch_single(db, Field, Field.id == field_id, what="Field")
    if not confirm:
        raise ConfirmationRequired("delete this field")

    dependents = select_rows(db, Field, Field.depends_on_field_id == field.id)
    with backend_call(db, "delete field", id=field.id, form_id=field.form_id):
        for dependent in dependents:
            dependent.depends_on_field_id = None
            dependent.show_when_value = None
        db.delete(field)
        db.commit()

    logger.info(f"Deleted field {field_id} ({len(dependents)} dependents released)")
    return {"success": True, "message": "Field deleted"}


@router.post("/fields/{field_id}/move")
def move_field(field_id: int, move: FieldMove, db: Session = Depends(get_db)):
    """Swap a field with its neighbour. Moving past either end leaves the order unchanged."""
    field = fetch_single(db, Field, Field.id == field_id, what="Field")
    fields = ordered_fields(db, field.form_id)
    index = next(i for i, f in enumerate(fields) if f.id == field.id)
    target = index - 1 if move.direction == "up" else index + 1

    if 0 <= target < len(fields):
        neighbour = fields[target]
        with backend_call(db, "reorder fields", id=field.id, neighbour=neighbour.id):
            if field.order == neighbour.order:
                # duplicate order values: renumber in display order first
                for position, f in enumerate(fields, start=1):
                    f.order = position
            field.order, neighbour.order = neighbour.order, field.order
            db.commit()
        logger.info(f"Moved field {field.id} {move.direction}")

    return [FieldResponse.model_validate(f) for f in ordered_fields(db, field.form_id)]
