import pytest
from fastapi.testclient import TestClient

from telehealth.auth import jwt_handler
from telehealth.auth.dependencies import get_db
from telehealth.main import app

ROUTE_MODULES = (
    'telehealth.routes.auth_routes',
    'telehealth.routes.availability_routes',
    'telehealth.routes.appointment_routes',
    'telehealth.routes.payment_routes',
    'telehealth.routes.video_routes',
)


@pytest.fixture
def database_ready(monkeypatch: pytest.MonkeyPatch) -> None:
    for module in ROUTE_MODULES:
        monkeypatch.setattr(f'{module}.ensure_database_ready', lambda: None)


@pytest.fixture
def client(db, database_ready):
    app.dependency_overrides[get_db] = lambda: db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _auth_headers(user) -> dict:
        token = jwt_handler.create_access_token(user.id)
        return {'Authorization': f'Bearer {token}'}

    return _auth_headers
