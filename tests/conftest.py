import pytest
from fastapi.testclient import TestClient

from detecporc.auth import scrypt_hex
from detecporc.config import Settings
from detecporc.database import JsonDocumentStore
from detecporc.main import create_app
from detecporc.moderation import ModerationQueue
from detecporc.repository import PointRepository

ADMIN_USER = "admin"
ADMIN_PASSWORD = "dp26#test"
ADMIN_SALT = "test-salt"


@pytest.fixture(scope="session")
def admin_hash() -> str:
    return scrypt_hex(ADMIN_PASSWORD, ADMIN_SALT)


@pytest.fixture
def settings(tmp_path, admin_hash) -> Settings:
    return Settings(
        data_dir=tmp_path,
        seed_default_points=False,
        admin_username=ADMIN_USER,
        admin_salt=ADMIN_SALT,
        admin_hash=admin_hash,
        session_secret="test-secret",
    )


@pytest.fixture
def repository(tmp_path) -> PointRepository:
    return PointRepository(JsonDocumentStore(tmp_path / "points.json"))


@pytest.fixture
def queue(tmp_path, repository) -> ModerationQueue:
    return ModerationQueue(JsonDocumentStore(tmp_path / "pending.json"), repository)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def admin_client(client):
    response = client.post("/api/login", json={"username": ADMIN_USER, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return client


def draft(**overrides):
    data = {
        "name": "Boucherie Porc d'Or",
        "lat": 6.4969,
        "lng": 2.6036,
        "address": "Quartier Zogbo, Porto-Novo",
        "phone": "+229 90 00 11 22",
        "hours": "Lun-Sam 07:00-19:00",
        "comment": "Porc frais chaque matin.",
    }
    data.update(overrides)
    return data
