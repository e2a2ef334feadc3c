"""Shared pytest fixtures: an isolated database per test, seeded data, API client."""

import os

# Settings are read at import time; make sure tests never need etc/app.conf
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production-0123456789abcdef")
# PBKDF2 at production strength would make every test take seconds
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "1000")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from database import Database  # noqa: E402
from main import create_app  # noqa: E402
from models.course import Course, Task  # noqa: E402
from services import access, users  # noqa: E402
from services.records import NewUser  # noqa: E402

PASSWORD = "Secret123"


@pytest.fixture()
def db(tmp_path):
    """A fresh SQLite file database with every table created."""
    database = Database(f"sqlite:///{tmp_path / 'lms.db'}")
    database.create_all()
    yield database
    database.close()


@pytest.fixture()
def make_user(db):
    """Factory registering users through the credential store."""

    def _make(username="alice", email=None, password=PASSWORD, full_name="", admin=False):
        user = users.create_user(
            db,
            NewUser(
                username=username,
                email=email or f"{username}@example.com",
                password=password,
                full_name=full_name,
            ),
        )
        if admin:
            access.promote_to_admin(db, user.id)
            user = users.get_user_by_id(db, user.id)
        return user

    return _make


@pytest.fixture()
def catalog(db):
    """
    Three courses: XSS with three tasks stored out of order, SQL injection
    with one task, CSRF with none.  Returns the ids by name.
    """
    with db.transaction() as session:
        xss = Course(vulnerability_type="XSS", description="Cross-site scripting")
        sqli = Course(vulnerability_type="SQL Injection", description="Injecting SQL")
        csrf = Course(vulnerability_type="CSRF", description="Request forgery")
        session.add_all([xss, sqli, csrf])
        session.flush()

        tasks = {
            "reflected": Task(course_id=xss.id, title="Reflected", description="", difficulty="easy", order=2),
            "stored": Task(course_id=xss.id, title="Stored", description="", difficulty="hard", order=3),
            "intro": Task(course_id=xss.id, title="Intro", description="", difficulty="easy", order=1),
            "union": Task(course_id=sqli.id, title="Union based", description="", difficulty="medium", order=1),
        }
        session.add_all(tasks.values())
        session.flush()

        ids = {
            "xss": xss.id,
            "sqli": sqli.id,
            "csrf": csrf.id,
            "tasks": {name: task.id for name, task in tasks.items()},
        }
    return ids


@pytest.fixture()
def outbox():
    """(username, code) pairs handed to the OTP delivery channel."""
    return []


@pytest.fixture()
def client(db, outbox):
    app = create_app(db, otp_sender=lambda user, code: outbox.append((user.username, code)))
    return TestClient(app)


@pytest.fixture()
def login(client):
    """Log in through the API and return the Authorization header."""

    def _login(username="alice", password=PASSWORD):
        resp = client.post("/auth/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['accessToken']}"}

    return _login
