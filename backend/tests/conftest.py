from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from formbuilder.database import Base, enable_sqlite_foreign_keys, get_db
from formbuilder.main import app
from formbuilder.models import Field, FieldType, Form, FormStatus
from formbuilder.routes import public
from formbuilder.tasks.create_admin import create_admin

ADMIN_EMAIL = "admin@formbuilder.io"
ADMIN_PASSWORD = "s3cret-pass"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def client(db, monkeypatch):
    def override_get_db():
        yield db

    # never reach the real geocoder from tests
    monkeypatch.setattr(public, "reverse_geocode", lambda lat, lng: None)
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin(db):
    return create_admin(db, ADMIN_EMAIL, ADMIN_PASSWORD, "Admin")


@pytest.fixture
def admin_client(client, admin):
    response = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return client


@pytest.fixture
def make_form(db):
    """Insert a form with fields given as dicts of Field columns"""
    def _make(name="Survey", status=FormStatus.ACTIVE, public_url="survey", fields=()):
        form = Form(name=name, status=status, public_url=public_url)
        db.add(form)
        db.flush()
        created = []
        for order, spec in enumerate(fields, start=1):
            values = {"type": FieldType.TEXT, "required": False, "order": order}
            values.update(spec)
            field = Field(form_id=form.id, **values)
            db.add(field)
            created.append(field)
        db.commit()
        db.refresh(form)
        return form, created
    return _make


def plain_field(id, type=FieldType.TEXT, required=False, enabled=True, depends_on=None, show_when=None,
                label=None, options=None):
    """Unsaved stand-in for a Field row, for the pure services"""
    return SimpleNamespace(
        id=id,
        label=label or f"Field {id}",
        type=type,
        required=required,
        enabled=enabled,
        placeholder=None,
        options=options,
        depends_on_field_id=depends_on,
        show_when_value=show_when,
    )
