from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Any, Dict, List
import logging

from formbuilder.config import settings
from formbuilder.database import get_db
from formbuilder.data_access import backend_call, fetch_maybe_single, select_rows
from formbuilder.errors import FormValidationError, NotFoundError
from formbuilder.models.form import Field, Form, FormStatus
from formbuilder.models.submission import Submission, SubmissionValue
from formbuilder.schemas.submission import LocationRequest, SubmitAnswers, VisibilityRequest
from formbuilder.services.field_types import render_field, serialize_answer
from formbuilder.services.geocoding_service import reverse_geocode
from formbuilder.services.location_service import GeolocationError, LocationCapture
from formbuilder.services.validation_service import describe_errors, validate
from formbuilder.services.visibility_service import apply_answer_change, compute_visibility, prune_hidden_answers

logger = logging.getLogger(__name__)

router = APIRouter()
api_router = APIRouter()

# Initial map view when no location has been picked yet (Tunisia)
DEFAULT_MAP_CENTER = {"lat": 33.8869, "lng": 10.1218}
DEFAULT_MAP_ZOOM = 7


def get_active_form(db: Session, slug: str) -> Form:
    """Drafts and disabled forms are indistinguishable from missing ones"""
    form = fetch_maybe_single(db, Form, Form.public_url == slug, Form.status == FormStatus.ACTIVE)
    if form is None:
        raise NotFoundError("Form")
    return form


def get_enabled_fields(db: Session, form: Form) -> List[Field]:
    return select_rows(db, Field, Field.form_id == form.id, Field.enabled.is_(True),
                       order_by=(Field.order, Field.id))


def serialize_answers(fields: List[Field], answers: Dict[int, Any]) -> Dict[int, str]:
    """Native values -> stored strings. Answers for unknown or disabled fields are dropped."""
    by_id = {f.id: f for f in fields}
    return {
        field_id: serialize_answer(by_id[field_id].type, value)
        for field_id, value in answers.items()
        if field_id in by_id
    }


# ============== PUBLIC FORM ==============

@router.get("/{slug}")
def get_public_form(slug: str, db: Session = Depends(get_db)):
    """Form definition and the fields to draw, for anonymous respondents"""
    form = get_active_form(db, slug)
    fields = get_enabled_fields(db, form)

    return {
        "id": form.id,
        "name": form.name,
        "description": form.description,
        "public_url": form.public_url,
        "media_type": form.media_type.value,
        "media_url": form.media_url,
        "tutorial_video_url": form.tutorial_video_url,
        "fields": [render_field(f) for f in fields],
        "visible_field_ids": sorted(compute_visibility(fields, {})),
    }


@router.post("/{slug}/visibility")
def recompute_visibility(slug: str, data: VisibilityRequest, db: Session = Depends(get_db)):
    """Apply one answer change and return the surviving answers and visible fields"""
    form = get_active_form(db, slug)
    fields = get_enabled_fields(db, form)
    answers = serialize_answers(fields, data.answers)

    if data.changed_field_id is not None:
        field = next((f for f in fields if f.id == data.changed_field_id), None)
        if field is None:
            raise NotFoundError("Field")
        answers = apply_answer_change(fields, answers, field.id, serialize_answer(field.type, data.value))
    else:
        answers = prune_hidden_answers(fields, answers)

    return {
        "answers": answers,
        "visible_field_ids": sorted(compute_visibility(fields, answers)),
    }


@router.post("/{slug}/submit")
def submit_form(slug: str, data: SubmitAnswers, db: Session = Depends(get_db)):
    """Validate visible answers and store the submission with its values in one transaction"""
    form = get_active_form(db, slug)
    fields = get_enabled_fields(db, form)

    answers = serialize_answers(fields, data.answers)
    visible = compute_visibility(fields, answers)
    answers = prune_hidden_answers(fields, answers, visible)
    # pruning can hide more fields
    visible = compute_visibility(fields, answers)

    errors = validate(fields, visible, answers)
    if errors:
        raise FormValidationError(describe_errors(fields, errors))

    labels = {f.id: f.label for f in fields}
    stored = {field_id: value for field_id, value in answers.items() if value.strip()}

    submission = Submission(form_id=form.id)
    with backend_call(db, "insert submission", form_id=form.id):
        db.add(submission)
        db.flush()
        db.add_all([
            SubmissionValue(
                submission_id=submission.id,
                field_id=field_id,
                field_label=labels[field_id],
                value=value,
            )
            for field_id, value in stored.items()
        ])
        db.commit()
        db.refresh(submission)

    logger.info(f"Stored submission {submission.id} for form {form.id} ({len(stored)} values)")
    return {
        "success": True,
        "submission_id": submission.id,
        "message": "Thank you! Your response has been recorded.",
    }


# ============== LOCATION PICKER ==============

@api_router.post("/location")
def capture_location(data: LocationRequest):
    """Move a location answer to its next state and resolve its address when possible"""
    capture = LocationCapture(data.current)
    notice = None

    if data.source == "device" and data.error:
        def locate():
            raise GeolocationError(data.error)
        notice = capture.use_device_location(locate)
    elif data.lat is None or data.lng is None:
        raise HTTPException(status_code=400, detail="lat and lng are required")
    elif not (-90 <= data.lat <= 90 and -180 <= data.lng <= 180):
        raise HTTPException(status_code=400, detail="Coordinates out of range")
    else:
        capture.pick(data.lat, data.lng)
        if data.resolve_address:
            capture.resolve_address(reverse_geocode)

    return {
        "state": capture.state.value,
        "value": capture.to_answer(),
        "point": capture.point.model_dump() if capture.point else None,
        "notice": notice,
    }


@api_router.get("/map-config")
def map_config():
    return {
        "tile_url": settings.MAP_TILE_URL,
        "attribution": settings.MAP_ATTRIBUTION,
        "center": DEFAULT_MAP_CENTER,
        "zoom": DEFAULT_MAP_ZOOM,
    }
