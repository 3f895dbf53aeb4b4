from conftest import ADMIN_EMAIL, ADMIN_PASSWORD


def _cookie_value(client, app):
    cookie = client.get_cookie(app.config["ADMIN_SESSION_COOKIE"])
    return cookie.value if cookie else None


def test_login_sets_http_only_session_cookie(client, admin):
    response = client.post("/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})

    assert response.status_code == 200
    assert response.get_json() == {"message": "Login successful", "admin": {"id": admin["id"], "email": ADMIN_EMAIL}}
    set_cookie = response.headers["Set-Cookie"]
    assert "HttpOnly" in set_cookie
    assert "Max-Age=86400" in set_cookie
    assert "Secure" not in set_cookie


def test_login_accepts_form_encoded_body_and_mixed_case_email(client, admin):
    response = client.post("/admin/login", data={"email": "  Admin@Complaints.org ", "password": ADMIN_PASSWORD})

    assert response.status_code == 200


def test_me_returns_bound_admin_id(admin_client, admin):
    response = admin_client.get("/admin/me")

    assert response.status_code == 200
    assert response.get_json() == {"adminId": admin["id"]}


def test_me_without_session_is_unauthorized(client):
    assert client.get("/admin/me").status_code == 401


def test_wrong_password_and_unknown_email_fail_identically(client, admin):
    wrong_password = client.post("/admin/login", json={"email": ADMIN_EMAIL, "password": "nope"})
    unknown_email = client.post("/admin/login", json={"email": "ghost@complaints.org", "password": "nope"})

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.get_json() == unknown_email.get_json() == {"message": "Invalid credentials"}
    assert "Set-Cookie" not in wrong_password.headers


def test_login_requires_both_fields(client):
    response = client.post("/admin/login", json={"email": ADMIN_EMAIL})

    assert response.status_code == 400
    assert response.get_json()["message"] == "Email and password are required"


def test_logout_invalidates_old_cookie(app, admin_client):
    token = _cookie_value(admin_client, app)
    assert token

    response = admin_client.post("/admin/logout")
    assert response.status_code == 200
    assert response.get_json() == {"message": "Logout successful"}

    admin_client.set_cookie(app.config["ADMIN_SESSION_COOKIE"], token)
    assert admin_client.get("/admin/me").status_code == 401
    assert admin_client.get("/complaints").status_code == 401
    assert admin_client.delete("/complaints/1").status_code == 401


def test_logout_without_session_is_harmless(client):
    assert client.post("/admin/logout").status_code == 200


def test_session_expires_after_24_hours(admin_client, clock):
    clock.advance(hours=23, minutes=59)
    assert admin_client.get("/admin/me").status_code == 200

    clock.advance(minutes=1)
    assert admin_client.get("/admin/me").status_code == 401


def test_relogin_replaces_previous_session(client, admin, session_store):
    credentials = {"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    client.post("/admin/login", json=credentials)
    client.post("/admin/login", json=credentials)

    assert len(session_store) == 1


def test_forged_cookie_is_unauthorized(app, client, admin):
    client.set_cookie(app.config["ADMIN_SESSION_COOKIE"], "forged-token")

    assert client.get("/admin/me").status_code == 401


def test_setup_creates_admin_with_hashed_password(app, client, storage):
    response = client.post("/admin/setup", json={"email": "owner@complaints.org", "password": "s3cret-pass"})

    assert response.status_code == 201
    body = response.get_json()
    assert body["message"] == "Admin created successfully"
    assert body["admin"]["email"] == "owner@complaints.org"
    with app.app_context():
        stored = storage.get_admin_by_email("owner@complaints.org")
        assert stored.password != "s3cret-pass"
        assert stored.password.startswith("pbkdf2:sha256")

    login = client.post("/admin/login", json={"email": "owner@complaints.org", "password": "s3cret-pass"})
    assert login.status_code == 200


def test_setup_twice_with_same_email_is_rejected(client):
    payload = {"email": "owner@complaints.org", "password": "s3cret-pass"}
    assert client.post("/admin/setup", json=payload).status_code == 201

    response = client.post("/admin/setup", json=payload)

    assert response.status_code == 400
    assert response.get_json() == {"message": "Admin already exists"}


def test_setup_requires_credentials(client):
    response = client.post("/admin/setup", json={"email": "owner@complaints.org"})

    assert response.status_code == 400
    assert response.get_json()["message"] == "Email and password are required"


def test_setup_rejects_malformed_email(client):
    response = client.post("/admin/setup", json={"email": "not-an-email", "password": "s3cret-pass"})

    assert response.status_code == 400
    assert response.get_json()["errors"][0]["field"] == "email"


def test_abandoned_expired_session_is_dropped_on_next_login(app, client, admin, session_store, clock):
    credentials = {"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    client.post("/admin/login", json=credentials)
    clock.advance(hours=25)

    other_client = app.test_client()
    assert other_client.post("/admin/login", json=credentials).status_code == 200

    assert len(session_store) == 1
