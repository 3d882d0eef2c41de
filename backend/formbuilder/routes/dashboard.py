from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from formbuilder.database import get_db
from formbuilder.data_access import count_rows, select_rows
from formbuilder.errors import BackendError
from formbuilder.models.form import Field, FieldType, Form, FormStatus
from formbuilder.routes.forms import submission_counts
from formbuilder.services.field_types import parse_geopoint
from formbuilder.services.submission_query_service import load_submissions

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
def get_dashboard(db: Session = Depends(get_db)):
    """Forms overview. A failing backend yields an empty, flagged dashboard instead of an error page."""
    try:
        forms = select_rows(db, Form, order_by=(Form.created_at.desc(), Form.id.desc()))
        counts = submission_counts(db)
        active_forms = count_rows(db, Form, Form.status == FormStatus.ACTIVE)
    except BackendError:
        logger.warning("Dashboard degraded: backend unavailable")
        return {
            "forms": [],
            "active_forms": 0,
            "total_submissions": 0,
            "degraded": True,
        }

    return {
        "forms": [
            {
                "id": f.id,
                "name": f.name,
                "status": f.status.value,
                "public_url": f.public_url,
                "submission_count": counts.get(f.id, 0),
                "created_at": f.created_at.isoformat(),
            }
            for f in forms
        ],
        "active_forms": active_forms,
        "total_submissions": sum(counts.values()),
        "degraded": False,
    }


@router.get("/map")
def get_location_map(db: Session = Depends(get_db)):
    """Every stored location answer as a map pin"""
    try:
        location_field_ids = {
            f.id for f in select_rows(db, Field, Field.type == FieldType.LOCATION)
        }
        submissions = load_submissions(db)
    except BackendError:
        logger.warning("Location map degraded: backend unavailable")
        return {"pins": [], "degraded": True}

    pins = []
    for submission in submissions:
        for value in submission.values:
            if value.field_id not in location_field_ids:
                continue
            point = parse_geopoint(value.value)
            if point is None:
                continue
            pins.append({
                "lat": point.lat,
                "lng": point.lng,
                "address": point.address,
                "field_label": value.field.label if value.field else value.field_label,
                "form_name": submission.form.name if submission.form else None,
                "submission_id": submission.id,
                "created_at": submission.created_at.isoformat(),
            })

    return {"pins": pins, "degraded": False}
