import io
from datetime import datetime, timedelta, timezone

import pytest
from PIL import Image

from app import create_app
from extensions import db
from utils.session_store import InMemorySessionStore

ADMIN_EMAIL = "admin@complaints.org"
ADMIN_PASSWORD = "correct-horse-battery"


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_png_bytes(size=(8, 8), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def complaint_form(**overrides):
    data = {
        "location": "Building A - Floor 2",
        "name": "Jamie Rivera",
        "phone": "5551234567",
        "description": "The hallway light has been flickering for a week.",
    }
    data.update(overrides)
    return data


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_store(clock):
    return InMemorySessionStore(lifetime=timedelta(hours=24), secret="testing-secret-key", clock=clock)


@pytest.fixture
def app_factory(tmp_path):
    created = []

    def factory(**kwargs):
        overrides = {
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
            "UPLOAD_FOLDER": str(tmp_path / "uploads"),
            "LOG_DIR": str(tmp_path / "logs"),
        }
        overrides.update(kwargs.pop("config_overrides", {}))
        application = create_app("testing", config_overrides=overrides, **kwargs)
        created.append(application)
        return application

    yield factory

    for application in created:
        with application.app_context():
            db.session.remove()
            db.drop_all()
            db.engine.dispose()
        for handler in list(application.logger.handlers):
            application.logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def app(app_factory, session_store):
    return app_factory(session_store=session_store)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def storage(app):
    return app.extensions["storage"]


@pytest.fixture
def admin(app, storage):
    with app.app_context():
        created = storage.create_admin(ADMIN_EMAIL, ADMIN_PASSWORD)
        return {"id": created.id, "email": created.email}


@pytest.fixture
def admin_client(client, admin):
    response = client.post("/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return client


@pytest.fixture
def upload_dir(app):
    return app.config["UPLOAD_FOLDER"]
