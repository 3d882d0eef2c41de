"""
Spreadsheet export of submissions.

One row per submission. Fixed columns first, then one column per field label
of the exported forms (form order of first appearance, then field order).
Answers whose field has since been deleted get a column from their label
snapshot. Unanswered cells stay empty.
"""
from datetime import datetime
from io import BytesIO
from typing import Dict, List, Optional, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font

from formbuilder.models.submission import Submission
from formbuilder.services.submission_query_service import value_label

FIXED_COLUMNS = ["Submission ID", "Form", "Date"]
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
SHEET_TITLE = "Submissions"


def _unique(taken, name: str) -> str:
    if name not in taken:
        return name
    i = 2
    while f"{name} ({i})" in taken:
        i += 1
    return f"{name} ({i})"


def build_columns(submissions: List[Submission], fields_by_form: Dict[int, list]) -> Tuple[List[str], Dict[int, str]]:
    columns: List[str] = []
    field_columns: Dict[int, str] = {}

    form_order: List[int] = []
    for submission in submissions:
        if submission.form_id not in form_order:
            form_order.append(submission.form_id)

    for form_id in form_order:
        used_in_form = set(FIXED_COLUMNS)
        for field in fields_by_form.get(form_id, []):
            label = _unique(used_in_form, field.label)
            used_in_form.add(label)
            field_columns[field.id] = label
            if label not in columns:
                columns.append(label)

    for submission in submissions:
        for value in submission.values:
            if value.field_id in field_columns:
                continue
            label = value_label(value) or "Unknown field"
            if label not in columns and label not in FIXED_COLUMNS:
                columns.append(label)

    return columns, field_columns


def build_rows(submissions: List[Submission], fields_by_form: Dict[int, list]) -> Tuple[List[str], List[list]]:
    columns, field_columns = build_columns(submissions, fields_by_form)
    header = FIXED_COLUMNS + columns

    rows = []
    for submission in submissions:
        cells = {label: "" for label in columns}
        for value in submission.values:
            label = field_columns.get(value.field_id) or value_label(value) or "Unknown field"
            if label in cells:
                cells[label] = value.value or ""
        rows.append([
            submission.id,
            submission.form.name if submission.form else "",
            submission.created_at.strftime(DATE_FORMAT),
        ] + [cells[label] for label in columns])
    return header, rows


def _keep_as_text(cells) -> None:
    # openpyxl stores any string starting with "=" as a formula
    for cell in cells:
        if isinstance(cell.value, str) and cell.value.startswith("="):
            cell.data_type = "s"


def write_workbook(header: List[str], rows: List[list]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    ws.append(header)
    _keep_as_text(ws[1])
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        # unanswered cells stay blank rather than holding an empty string
        ws.append([None if cell == "" else cell for cell in row])
        _keep_as_text(ws[ws.max_row])

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def export_filename(form_id: Optional[int], now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    selection = str(form_id) if form_id is not None else "all"
    return f"submissions-{selection}-{now.strftime('%Y%m%d%H%M%S')}.xlsx"
