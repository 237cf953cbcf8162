def register(client, email="new@example.com", password="secret123", display_name="Newbie"):
    return client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "display_name": display_name},
    )


def test_register_logs_in(client):
    response = register(client)

    assert response.status_code == 201
    participant = response.get_json()["participant"]
    assert participant["email"] == "new@example.com"
    assert participant["username"].startswith("new_")

    me = client.get("/api/auth/me").get_json()
    assert me["id"] == participant["id"]
    assert me["pools"] == []


def test_register_rejects_taken_email(client):
    register(client)

    response = register(client.application.test_client())

    assert response.status_code == 400
    assert "email" in response.get_json()["details"]


def test_register_validates_fields(client):
    response = register(client, email="not-an-email", password="123")

    details = response.get_json()["details"]
    assert response.status_code == 400
    assert "email" in details
    assert "password" in details


def test_login_by_email_or_username(app, make_participant):
    make_participant("alice@example.com")

    for identifier in ("alice@example.com", "alice"):
        response = app.test_client().post(
            "/api/auth/login", json={"login": identifier, "password": "secret123"}
        )
        assert response.status_code == 200


def test_bad_credentials(client, make_participant):
    make_participant("alice@example.com")

    response = client.post(
        "/api/auth/login", json={"login": "alice@example.com", "password": "wrong"}
    )

    assert response.status_code == 401
    assert response.get_json()["message"] == "Invalid credentials"


def test_logout(login, make_participant):
    make_participant("alice@example.com")
    client = login("alice@example.com")

    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/auth/me").status_code == 401


def test_me_requires_login(client):
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.get_json()["error"] == "unauthorized"


def test_csrf_token(client):
    assert "csrf_token" in client.get("/api/auth/csrf-token").get_json()


def test_unknown_route_is_json(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"
