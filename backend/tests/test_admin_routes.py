from formbuilder.models import Field, FieldType, Form, FormStatus, Submission, SubmissionValue

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD


def add_submission(db, form, answers):
    submission = Submission(form_id=form.id)
    db.add(submission)
    db.flush()
    for field, value in answers:
        db.add(SubmissionValue(submission_id=submission.id, field_id=field.id, field_label=field.label, value=value))
    db.commit()
    return submission


# ─────────────────────────────────────────
# AUTH
# ─────────────────────────────────────────

def test_admin_pages_redirect_to_login(client):
    response = client.get("/admin/forms", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/auth/login?redirect=/admin/forms"

    response = client.get("/admin", follow_redirects=False)
    assert response.status_code == 303


def test_login_rejects_bad_password(client, admin):
    response = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": "wrong"})
    assert response.status_code == 401


def test_login_sets_session_cookie(client, admin):
    response = client.post("/api/auth/login?redirect=/admin/map",
                           json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    assert response.json()["redirect"] == "/admin/map"
    assert "httponly" in response.headers["set-cookie"].lower()

    assert client.get("/api/auth/me").json()["email"] == ADMIN_EMAIL


def test_bearer_token_is_accepted(client, admin):
    token = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}).json()["access_token"]
    client.cookies.clear()
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 200


def test_login_page_sends_signed_in_admin_on(admin_client):
    response = admin_client.get("/auth/login?redirect=/admin/submissions", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/admin/submissions"

    response = admin_client.get("/auth/login?redirect=https://evil.example", follow_redirects=False)
    assert response.headers["location"] == "/admin"


def test_login_page_for_anonymous_visitor(client):
    response = client.get("/auth/login?redirect=/admin/forms")
    assert response.status_code == 200
    assert response.json() == {"login_required": True, "redirect": "/admin/forms"}


def test_logout_ends_session(admin_client):
    admin_client.post("/api/auth/logout")
    assert admin_client.get("/admin", follow_redirects=False).status_code == 303


# ─────────────────────────────────────────
# FORMS
# ─────────────────────────────────────────

def test_create_form_with_generated_slug(admin_client):
    response = admin_client.post("/admin/forms", json={"name": "  Contact us  "})
    assert response.status_code == 200
    form = response.json()["form"]
    assert form["name"] == "Contact us"
    assert form["status"] == "draft"
    assert len(form["public_url"]) == 26
    assert form["public_url"].isalnum()
    assert form["fields"] == []


def test_duplicate_slug_is_rejected(admin_client):
    assert admin_client.post("/admin/forms", json={"name": "A", "public_url": "taken"}).status_code == 200
    assert admin_client.post("/admin/forms", json={"name": "B", "public_url": "taken"}).status_code == 409


def test_blank_form_name_is_rejected(admin_client):
    assert admin_client.post("/admin/forms", json={"name": "   "}).status_code == 422


def test_create_form_from_template(admin_client, db):
    response = admin_client.post("/admin/forms", json={"name": "Housing", "template": "housing"})
    assert response.status_code == 200
    fields = response.json()["form"]["fields"]
    assert len(fields) == 20
    assert [f["order"] for f in fields] == list(range(1, 21))

    by_label = {f["label"]: f for f in fields}
    installment = by_label["في صورة نعم، قيمة القسط الشهري"]
    assert installment["depends_on_field_id"] == by_label["هل يوجد قرض حالي؟"]["id"]
    assert installment["show_when_value"] == "نعم"


def test_unknown_template(admin_client, db):
    assert admin_client.post("/admin/forms", json={"name": "X", "template": "nope"}).status_code == 400
    assert db.query(Form).count() == 0


def test_templates_listing(admin_client):
    keys = {t["key"] for t in admin_client.get("/admin/forms/templates").json()}
    assert keys == {"housing", "contact", "job_application"}


def test_update_form_status(admin_client, make_form):
    form, _ = make_form(status=FormStatus.DRAFT)
    response = admin_client.patch(f"/admin/forms/{form.id}", json={"status": "active", "description": "d"})
    assert response.status_code == 200
    assert response.json()["form"]["status"] == "active"
    assert admin_client.get("/form/survey").status_code == 200


def test_delete_form_requires_confirmation(admin_client, db, make_form):
    form, fields = make_form(fields=[{"label": "Name"}])
    add_submission(db, form, [(fields[0], "Ali")])

    response = admin_client.delete(f"/admin/forms/{form.id}")
    assert response.status_code == 400
    assert db.query(Form).count() == 1

    assert admin_client.delete(f"/admin/forms/{form.id}?confirm=true").status_code == 200
    assert db.query(Form).count() == 0
    assert db.query(Field).count() == 0
    assert db.query(Submission).count() == 0


def test_missing_form_is_404(admin_client):
    assert admin_client.get("/admin/forms/999").status_code == 404


# ─────────────────────────────────────────
# FIELDS
# ─────────────────────────────────────────

def test_add_field_appends_after_last(admin_client, make_form):
    form, _ = make_form(fields=[{"label": "A"}, {"label": "B"}])
    response = admin_client.post(f"/admin/forms/{form.id}/fields", json={
        "label": "Color", "type": "select", "options": ["Red", " ", "Blue"],
    })
    assert response.status_code == 200
    field = response.json()["field"]
    assert field["order"] == 3
    assert field["options"] == ["Red", "Blue"]


def test_choice_field_needs_options(admin_client, make_form):
    form, fields = make_form(fields=[{"label": "A"}])
    response = admin_client.post(f"/admin/forms/{form.id}/fields", json={"label": "Pick", "type": "checkbox"})
    assert response.status_code == 422

    response = admin_client.patch(f"/admin/fields/{fields[0].id}", json={"type": "select"})
    assert response.status_code == 422

    response = admin_client.patch(f"/admin/fields/{fields[0].id}", json={"type": "select", "options": ["x"]})
    assert response.status_code == 200
    assert response.json()["field"]["options"] == ["x"]


def test_text_field_drops_options(admin_client, make_form):
    form, _ = make_form()
    response = admin_client.post(f"/admin/forms/{form.id}/fields", json={"label": "Name", "options": ["x"]})
    assert response.json()["field"]["options"] is None


def test_field_dependency_rules(admin_client, make_form):
    form, fields = make_form(fields=[{"label": "A"}, {"label": "B"}])
    other, other_fields = make_form(public_url="other", fields=[{"label": "Z"}])
    a, b = fields

    ok = admin_client.patch(f"/admin/fields/{b.id}", json={"depends_on_field_id": a.id, "show_when_value": "yes"})
    assert ok.status_code == 200

    cycle = admin_client.patch(f"/admin/fields/{a.id}", json={"depends_on_field_id": b.id, "show_when_value": "x"})
    assert cycle.status_code == 422

    foreign = admin_client.post(f"/admin/forms/{form.id}/fields", json={
        "label": "C", "depends_on_field_id": other_fields[0].id, "show_when_value": "x",
    })
    assert foreign.status_code == 422

    half = admin_client.patch(f"/admin/fields/{a.id}", json={"show_when_value": "x"})
    assert half.status_code == 422


def test_delete_field_releases_dependents_and_keeps_answers(admin_client, db, make_form):
    form, fields = make_form(fields=[{"label": "A"}, {"label": "B"}])
    a, b = fields
    b.depends_on_field_id = a.id
    b.show_when_value = "yes"
    db.commit()
    add_submission(db, form, [(a, "yes"), (b, "42")])

    assert admin_client.delete(f"/admin/fields/{a.id}").status_code == 400
    assert admin_client.delete(f"/admin/fields/{a.id}?confirm=true").status_code == 200

    db.expire_all()
    remaining = db.query(Field).one()
    assert remaining.depends_on_field_id is None
    assert remaining.show_when_value is None

    detail = admin_client.get("/admin/submissions").json()["submissions"][0]
    labels = {v["label"]: v["value"] for v in detail["values"]}
    assert labels == {"A": "yes", "B": "42"}


def test_move_field_up_swaps_with_previous(admin_client, make_form):
    form, fields = make_form(fields=[{"label": f"F{i}"} for i in range(1, 6)])

    response = admin_client.post(f"/admin/fields/{fields[1].id}/move", json={"direction": "up"})
    assert response.status_code == 200
    assert [f["label"] for f in response.json()] == ["F2", "F1", "F3", "F4", "F5"]

    reloaded = admin_client.get(f"/admin/forms/{form.id}/fields").json()
    assert [f["label"] for f in reloaded] == ["F2", "F1", "F3", "F4", "F5"]
    assert [f["order"] for f in reloaded] == [1, 2, 3, 4, 5]


def test_move_past_either_end_is_a_no_op(admin_client, make_form):
    form, fields = make_form(fields=[{"label": "F1"}, {"label": "F2"}])
    assert [f["label"] for f in admin_client.post(
        f"/admin/fields/{fields[0].id}/move", json={"direction": "up"}).json()] == ["F1", "F2"]
    assert [f["label"] for f in admin_client.post(
        f"/admin/fields/{fields[1].id}/move", json={"direction": "down"}).json()] == ["F1", "F2"]
    assert admin_client.post(f"/admin/fields/{fields[0].id}/move", json={"direction": "left"}).status_code == 422


def test_move_repairs_duplicate_orders(admin_client, make_form):
    form, fields = make_form(fields=[{"label": "F1", "order": 1}, {"label": "F2", "order": 1}, {"label": "F3", "order": 2}])
    response = admin_client.post(f"/admin/fields/{fields[1].id}/move", json={"direction": "up"})
    assert [f["label"] for f in response.json()] == ["F2", "F1", "F3"]
    assert [f["order"] for f in response.json()] == [1, 2, 3]


# ─────────────────────────────────────────
# SUBMISSIONS
# ─────────────────────────────────────────

def test_list_search_and_sort(admin_client, db, make_form):
    alpha, alpha_fields = make_form(name="Alpha", public_url="alpha", fields=[{"label": "City"}])
    beta, beta_fields = make_form(name="Beta", public_url="beta", fields=[{"label": "City"}])
    first = add_submission(db, beta, [(beta_fields[0], "Sfax")])
    second = add_submission(db, alpha, [(alpha_fields[0], "Tunis")])

    data = admin_client.get("/admin/submissions").json()
    assert data["total"] == 2

    by_name = admin_client.get("/admin/submissions?sort=form_name&direction=asc").json()["submissions"]
    assert [s["form_name"] for s in by_name] == ["Alpha", "Beta"]

    found = admin_client.get("/admin/submissions?search=SFAX").json()["submissions"]
    assert [s["id"] for s in found] == [first.id]

    by_form = admin_client.get(f"/admin/submissions?form_id={alpha.id}").json()["submissions"]
    assert [s["id"] for s in by_form] == [second.id]


def test_submission_detail_and_delete(admin_client, db, make_form):
    form, fields = make_form(fields=[{"label": "Tags", "type": FieldType.CHECKBOX, "options": ["A", "B"]}])
    submission = add_submission(db, form, [(fields[0], "A, B")])

    detail = admin_client.get(f"/admin/submissions/{submission.id}").json()
    assert detail["values"][0]["answer"] == {"kind": "choices", "value": ["A", "B"]}

    assert admin_client.delete(f"/admin/submissions/{submission.id}").status_code == 400
    assert admin_client.delete(f"/admin/submissions/{submission.id}?confirm=true").status_code == 200
    assert admin_client.get(f"/admin/submissions/{submission.id}").status_code == 404
    assert db.query(SubmissionValue).count() == 0


# ─────────────────────────────────────────
# DASHBOARD & MAP
# ─────────────────────────────────────────

def test_dashboard_counts(admin_client, db, make_form):
    active, fields = make_form(fields=[{"label": "Name"}])
    make_form(name="Draft", status=FormStatus.DRAFT, public_url="draft")
    add_submission(db, active, [(fields[0], "Ali")])
    add_submission(db, active, [(fields[0], "Sami")])

    data = admin_client.get("/admin").json()
    assert data["degraded"] is False
    assert data["active_forms"] == 1
    assert data["total_submissions"] == 2
    counts = {f["name"]: f["submission_count"] for f in data["forms"]}
    assert counts == {"Survey": 2, "Draft": 0}


def test_dashboard_degrades_when_backend_is_down(admin_client, monkeypatch):
    from formbuilder.errors import BackendUnavailable
    from formbuilder.routes import dashboard

    def unavailable(*args, **kwargs):
        raise BackendUnavailable()

    monkeypatch.setattr(dashboard, "select_rows", unavailable)
    data = admin_client.get("/admin").json()
    assert data == {"forms": [], "active_forms": 0, "total_submissions": 0, "degraded": True}

    assert admin_client.get("/admin/map").json() == {"pins": [], "degraded": True}


def test_map_pins_skip_unparseable_locations(admin_client, db, make_form):
    form, fields = make_form(fields=[{"label": "Home", "type": FieldType.LOCATION}, {"label": "Name"}])
    good = add_submission(db, form, [(fields[0], '{"lat":36.8,"lng":10.2,"address":"Tunis"}'), (fields[1], "Ali")])
    add_submission(db, form, [(fields[0], "garbage")])

    pins = admin_client.get("/admin/map").json()["pins"]
    assert len(pins) == 1
    assert pins[0]["submission_id"] == good.id
    assert (pins[0]["lat"], pins[0]["lng"], pins[0]["address"]) == (36.8, 10.2, "Tunis")
    assert pins[0]["form_name"] == "Survey"


def test_stored_non_finite_values_do_not_break_listing_or_map(admin_client, db, make_form):
    form, fields = make_form(fields=[
        {"label": "Budget", "type": FieldType.NUMBER},
        {"label": "Home", "type": FieldType.LOCATION},
    ])
    submission = add_submission(db, form, [(fields[0], "Infinity"), (fields[1], '{"lat":NaN,"lng":10.2}')])

    listing = admin_client.get("/admin/submissions")
    assert listing.status_code == 200
    values = {v["label"]: v["answer"]["value"] for v in listing.json()["submissions"][0]["values"]}
    assert values == {"Budget": None, "Home": None}

    assert admin_client.get(f"/admin/submissions/{submission.id}").status_code == 200

    response = admin_client.get("/admin/map")
    assert response.status_code == 200
    assert response.json()["pins"] == []
