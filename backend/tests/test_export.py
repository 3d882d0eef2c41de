from datetime import datetime
from io import BytesIO

from openpyxl import load_workbook

from formbuilder.models import FieldType, Submission, SubmissionValue
from formbuilder.services.export_service import build_rows, export_filename, write_workbook
from formbuilder.services.submission_query_service import fields_for_forms, load_submissions


def add_submission(db, form, answers, created_at=None):
    submission = Submission(form_id=form.id, created_at=created_at or datetime(2024, 5, 1, 9, 30, 0))
    db.add(submission)
    db.flush()
    for field, value in answers:
        db.add(SubmissionValue(submission_id=submission.id, field_id=field.id, field_label=field.label, value=value))
    db.commit()
    return submission


def test_rows_have_empty_cells_for_unanswered_fields(db, make_form):
    form, (f1, f2, f3) = make_form(fields=[{"label": "Name"}, {"label": "Phone"}, {"label": "City"}])
    a = add_submission(db, form, [(f1, "Ali"), (f2, "71 000 000")])
    b = add_submission(db, form, [(f3, "Sousse")])

    submissions = load_submissions(db, form.id)
    header, rows = build_rows(submissions, fields_for_forms(db, [form.id]))

    assert header == ["Submission ID", "Form", "Date", "Name", "Phone", "City"]
    assert rows == [
        [a.id, "Survey", "2024-05-01 09:30:00", "Ali", "71 000 000", ""],
        [b.id, "Survey", "2024-05-01 09:30:00", "", "", "Sousse"],
    ]


def test_deleted_field_keeps_its_column(db, make_form):
    form, (name, city) = make_form(fields=[{"label": "Name"}, {"label": "City"}])
    add_submission(db, form, [(name, "Ali"), (city, "Gabes")])
    db.delete(city)
    db.commit()
    db.expire_all()

    header, rows = build_rows(load_submissions(db, form.id), fields_for_forms(db, [form.id]))
    assert header[3:] == ["Name", "City"]
    assert rows[0][3:] == ["Ali", "Gabes"]


def test_forms_sharing_a_label_share_a_column(db, make_form):
    one, (c1,) = make_form(name="One", public_url="one", fields=[{"label": "City"}])
    two, (c2, n2) = make_form(name="Two", public_url="two", fields=[{"label": "City"}, {"label": "Notes"}])
    add_submission(db, one, [(c1, "Tunis")])
    add_submission(db, two, [(c2, "Bizerte"), (n2, "-")])

    header, rows = build_rows(load_submissions(db), fields_for_forms(db, [one.id, two.id]))
    assert header[3:] == ["City", "Notes"]
    assert [r[3:] for r in rows] == [["Tunis", ""], ["Bizerte", "-"]]


def test_workbook_has_one_sheet_with_header():
    content = write_workbook(["Submission ID", "Form", "Date", "Name"], [[1, "Survey", "2024-05-01 09:30:00", "Ali"]])
    wb = load_workbook(BytesIO(content))
    assert wb.sheetnames == ["Submissions"]
    ws = wb["Submissions"]
    assert [c.value for c in ws[1]] == ["Submission ID", "Form", "Date", "Name"]
    assert [c.value for c in ws[2]] == [1, "Survey", "2024-05-01 09:30:00", "Ali"]


def test_export_filename():
    now = datetime(2024, 5, 1, 9, 30, 15)
    assert export_filename(7, now) == "submissions-7-20240501093015.xlsx"
    assert export_filename(None, now) == "submissions-all-20240501093015.xlsx"


def test_export_endpoint_streams_xlsx(admin_client, db, make_form):
    form, (f1, f2, f3) = make_form(fields=[
        {"label": "Name"},
        {"label": "Tags", "type": FieldType.CHECKBOX, "options": ["A", "B"]},
        {"label": "City"},
    ])
    add_submission(db, form, [(f1, "Ali"), (f2, "A, B")])
    add_submission(db, form, [(f3, "Sfax")])

    response = admin_client.get(f"/admin/submissions/export?form_id={form.id}&direction=asc")
    assert response.status_code == 200
    disposition = response.headers["content-disposition"]
    assert f'filename="submissions-{form.id}-' in disposition
    assert disposition.endswith('.xlsx"')

    ws = load_workbook(BytesIO(response.content))["Submissions"]
    rows = [[c.value for c in row] for row in ws.iter_rows(min_row=2)]
    assert len(rows) == 2
    assert [r[3:] for r in rows] == [["Ali", "A, B", None], [None, None, "Sfax"]]


def test_formula_like_answers_are_written_as_text():
    content = write_workbook(
        ["Submission ID", "Form", "Date", "Name"],
        [[1, "Survey", "2024-05-01 09:30:00", '=HYPERLINK("http://x.example","go")'], [2, "Survey", "2024-05-01 09:30:00", "=1+1"]],
    )
    ws = load_workbook(BytesIO(content))["Submissions"]
    assert ws["D2"].data_type == "s"
    assert ws["D2"].value == '=HYPERLINK("http://x.example","go")'
    assert ws["D3"].data_type == "s"
    assert ws["D3"].value == "=1+1"
