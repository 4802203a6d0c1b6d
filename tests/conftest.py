# tests/conftest.py
import itertools

import pytest
from werkzeug.security import generate_password_hash

from app import create_app


@pytest.fixture(scope="function")
def app(tmp_path):
    app = create_app("testing", {"DATABASE_PATH": str(tmp_path / "cleanscan_test.db")})
    yield app
    app.extensions["cleanscan"]["db"].close_all_connections()


@pytest.fixture(scope="function")
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def managers(app):
    return app.extensions["cleanscan"]


@pytest.fixture
def db_manager(managers):
    return managers["db"]


# —— Factories ——
@pytest.fixture
def make_location(db_manager):
    def _make_location(building_name="Main Building"):
        return db_manager.insert("locations", {"building_name": building_name})
    return _make_location


@pytest.fixture
def make_room(db_manager, make_location):
    def _make_room(room_number="101", location_id=None, building_name="Main Building"):
        if location_id is None:
            location_id = make_location(building_name)["id"]
        return db_manager.insert("rooms", {"room_number": room_number, "location_id": location_id})
    return _make_room


@pytest.fixture
def make_user(db_manager):
    counter = itertools.count(1)

    def _make_user(role="staff", email=None, password="secret123", username=None,
                   name=None, assigned_room_id=None):
        n = next(counter)
        return db_manager.insert("users", {
            "email": email or f"{role}{n}@example.com",
            "username": username,
            "name": name or f"{role.title()} {n}",
            "password_hash": generate_password_hash(password),
            "role": role,
            "assigned_room_id": assigned_room_id,
        })
    return _make_user


@pytest.fixture
def login(client):
    def _login(user):
        with client.session_transaction() as sess:
            sess["user_id"] = user["id"]
    return _login
