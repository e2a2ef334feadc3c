"""HTTP flows: registration, login with and without OTP, admin, courses."""

from services import access, courses, otp, users

from conftest import PASSWORD


def _register(client, username="alice", email=None, password=PASSWORD, **extra):
    return client.post(
        "/auth/register",
        json={"username": username, "email": email or f"{username}@example.com", "password": password, **extra},
    )


# -- registration / login -------------------------------------------------


def test_register_returns_self_profile(client):
    resp = _register(client, fullName="Alice Liddell")

    assert resp.status_code == 201
    body = resp.json()
    assert body["username"] == "alice"
    assert body["fullName"] == "Alice Liddell"
    assert body["is2faEnabled"] is False
    assert "isAdmin" not in body
    assert "passwordHash" not in body


def test_register_duplicate_is_conflict(client):
    assert _register(client, email="a@x.com").status_code == 201

    resp = _register(client, email="b@x.com")
    assert resp.status_code == 409
    assert resp.json()["error"]["category"] == "conflict"


def test_register_rejects_weak_password_and_missing_fields(client):
    weak = _register(client, password="short")
    assert weak.status_code == 400
    assert weak.json()["error"]["code"] == "VALIDATION_ERROR"

    missing = client.post("/auth/register", json={"username": "alice"})
    assert missing.status_code == 400


def test_login_issues_token_and_records_last_login(client, db, make_user, login):
    alice = make_user()

    headers = login()

    me = client.get("/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["id"] == alice.id
    assert users.get_user_by_id(db, alice.id).last_login is not None


def test_bad_credentials_are_indistinguishable(client, make_user):
    make_user()
    wrong = client.post("/auth/login", json={"username": "alice", "password": "Wrong123"})
    unknown = client.post("/auth/login", json={"username": "nobody", "password": PASSWORD})

    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json()


def test_last_login_failure_does_not_block_login(client, make_user, monkeypatch):
    from core.errors import InternalError

    make_user()

    def broken(*args, **kwargs):
        raise InternalError()

    monkeypatch.setattr(courses, "update_user_last_login", broken)
    resp = client.post("/auth/login", json={"username": "alice", "password": PASSWORD})
    assert resp.status_code == 200
    assert resp.json()["accessToken"]


def test_requests_without_token_are_rejected(client):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer junk"}).status_code == 401


def test_update_profile(client, db, make_user, login):
    alice = make_user(full_name="Alice")
    headers = login()

    resp = client.put("/auth/profile", headers=headers, json={"fullName": "Alice L.", "email": ""})
    assert resp.status_code == 200
    assert resp.json()["fullName"] == "Alice L."
    assert resp.json()["email"] == alice.email


# -- two-factor ------------------------------------------------------------


def test_two_factor_flow(client, db, make_user, login, outbox):
    alice = make_user()
    headers = login()

    assert client.post("/auth/2fa/setup", headers=headers).status_code == 200
    (_, setup_code), = outbox
    bad = client.post("/auth/2fa/enable", headers=headers, json={"code": "not-it"})
    assert bad.status_code == 401
    assert client.post("/auth/2fa/enable", headers=headers, json={"code": setup_code}).status_code == 200
    assert users.get_user_by_id(db, alice.id).is_2fa_enabled is True

    # password alone now only yields a challenge
    resp = client.post("/auth/login", json={"username": "alice", "password": PASSWORD})
    assert resp.status_code == 200
    assert resp.json()["otpRequired"] is True
    assert resp.json()["accessToken"] is None
    login_code = outbox[-1][1]

    wrong = client.post("/auth/verify-otp", json={"username": "alice", "code": "000000x"})
    assert wrong.status_code == 401

    ok = client.post("/auth/verify-otp", json={"username": "alice", "code": login_code})
    assert ok.status_code == 200
    assert ok.json()["tokenType"] == "bearer"

    # the code was consumed
    replay = client.post("/auth/verify-otp", json={"username": "alice", "code": login_code})
    assert replay.status_code == 401
    assert otp.verify_otp_code(db, alice.id, login_code) is False


def test_verify_otp_for_unknown_user(client):
    resp = client.post("/auth/verify-otp", json={"username": "ghost", "code": "123456"})
    assert resp.status_code == 401


# -- admin -----------------------------------------------------------------


def test_admin_endpoints_require_admin(client, make_user, login):
    make_user()
    headers = login()
    assert client.get("/admin/users", headers=headers).status_code == 403


def test_admin_manages_users(client, db, make_user, login):
    root = make_user("root", admin=True)
    carol = make_user("carol", full_name="Carol Danvers")
    headers = login("root")

    listing = client.get("/admin/users", headers=headers).json()["users"]
    assert [u["username"] for u in listing] == ["root", "carol"]
    assert listing[0]["isAdmin"] is True
    assert "isActive" in listing[1]

    found = client.get("/admin/users", headers=headers, params={"q": "Danvers"}).json()["users"]
    assert [u["username"] for u in found] == ["carol"]

    admins = client.get("/admin/users", headers=headers, params={"is_admin": "true"}).json()["users"]
    assert [u["username"] for u in admins] == ["root"]

    assert client.put(f"/admin/users/{carol.id}/promote", headers=headers).status_code == 200
    assert access.is_admin(db, carol.id) is True
    assert client.put(f"/admin/users/{carol.id}/demote", headers=headers).status_code == 200
    assert access.is_admin(db, carol.id) is False

    assert client.put(f"/admin/users/{root.id}/demote", headers=headers).status_code == 400
    assert client.put("/admin/users/9999/promote", headers=headers).status_code == 404


def test_disabled_account_is_locked_out(client, make_user, login):
    make_user("root", admin=True)
    carol = make_user("carol")
    admin_headers = login("root")
    carol_headers = login("carol")

    resp = client.put(f"/admin/users/{carol.id}/status", headers=admin_headers, json={"isActive": False})
    assert resp.status_code == 200

    assert client.get("/auth/me", headers=carol_headers).status_code == 403
    relogin = client.post("/auth/login", json={"username": "carol", "password": PASSWORD})
    assert relogin.status_code == 403


def test_admin_cannot_disable_self(client, make_user, login):
    root = make_user("root", admin=True)
    headers = login("root")
    resp = client.put(f"/admin/users/{root.id}/status", headers=headers, json={"isActive": False})
    assert resp.status_code == 400


# -- courses ---------------------------------------------------------------


def test_course_endpoints(client, make_user, login, catalog):
    make_user()
    headers = login()

    listing = client.get("/courses", headers=headers).json()["courses"]
    counts = {c["vulnerabilityType"]: c["tasksCount"] for c in listing}
    assert counts == {"XSS": 3, "SQL Injection": 1, "CSRF": 0}

    detail = client.get(f"/courses/{catalog['xss']}", headers=headers).json()
    assert [t["order"] for t in detail["tasks"]] == [1, 2, 3]
    assert detail["tasksCount"] == 3

    missing = client.get("/courses/9999", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "COURSE_NOT_FOUND"


def test_progress_endpoints(client, make_user, login, catalog):
    alice = make_user()
    headers = login()
    intro = catalog["tasks"]["intro"]

    assert client.get("/progress", headers=headers).json() == {"userId": alice.id, "completed": {}}

    for _ in range(2):
        resp = client.post(f"/tasks/{intro}/complete", headers=headers)
        assert resp.status_code == 200
    assert resp.json()["completed"] == {str(intro): True}

    missing = client.post("/tasks/9999/complete", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "TASK_NOT_FOUND"


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
