from forkcheck.models import InspectionReport, User
from tests.conftest import PHOTO


def test_signup_and_login(client):
    response = client.post(
        "/api/users", json={"username": " alice ", "password": "secret123", "role": "operator"}
    )
    assert response.status_code == 201
    body = response.json()
    assert body["username"] == "alice"
    assert body["role"] == "operator"
    assert "password" not in body and "password_hash" not in body

    login = client.post("/api/auth/login", json={"username": "alice", "password": "secret123"})
    assert login.status_code == 200
    session = login.json()
    assert session["id"] == body["id"]
    assert session["token_type"] == "bearer"

    me = client.get("/api/users/me", headers={"Authorization": f"Bearer {session['access_token']}"})
    assert me.status_code == 200
    assert me.json()["username"] == "alice"


def test_signup_duplicate_username(client, operator):
    response = client.post(
        "/api/users", json={"username": "driver", "password": "secret123", "role": "operator"}
    )
    assert response.status_code == 409
    assert response.json() == {"message": "Username already exists."}


def test_signup_short_password(client):
    response = client.post(
        "/api/users", json={"username": "bob", "password": "123", "role": "operator"}
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Password must be at least 6 characters long."


def test_signup_unknown_role(client):
    response = client.post(
        "/api/users", json={"username": "bob", "password": "secret123", "role": "admin"}
    )
    assert response.status_code == 400


def test_login_failures_share_one_message(client, operator):
    wrong_password = client.post("/api/auth/login", json={"username": "driver", "password": "nope"})
    unknown_user = client.post("/api/auth/login", json={"username": "ghost", "password": "nope"})

    assert wrong_password.status_code == 401
    assert unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json() == {"message": "Invalid username or password."}


def test_username_lookup(client, operator):
    assert client.get("/api/users", params={"username": "driver"}).json()[0]["id"] == operator.id
    assert client.get("/api/users", params={"username": "nobody"}).json() == []

    missing = client.get("/api/users")
    assert missing.status_code == 400
    assert missing.json()["message"] == "Username query parameter is required."


def test_protected_routes_need_a_token(client):
    assert client.get("/api/users/me").status_code == 401
    bad = client.get("/api/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401


def test_token_of_deleted_user_is_rejected(client, db_session, operator, operator_headers):
    db_session.delete(operator)
    db_session.commit()

    assert client.get("/api/users/me", headers=operator_headers).status_code == 401


def test_only_supervisors_delete_users(client, operator, operator_headers, supervisor_headers):
    forbidden = client.delete(f"/api/users/{operator.id}", headers=operator_headers)
    assert forbidden.status_code == 403

    assert client.delete(f"/api/users/{operator.id}", headers=supervisor_headers).status_code == 204
    assert client.delete(f"/api/users/{operator.id}", headers=supervisor_headers).status_code == 404


def test_deleting_user_removes_their_reports(
    client, db_session, fleet, operator, operator_headers, supervisor_headers
):
    created = client.post(
        "/api/inspection-reports",
        json={
            "unit_code": "FL001",
            "items": [{"checklist_item_id": fleet["items"][0]["id"], "is_safe": True, "photo_url": PHOTO}],
        },
        headers=operator_headers,
    )
    assert created.status_code == 201

    client.delete(f"/api/users/{operator.id}", headers=supervisor_headers)

    db_session.expire_all()
    assert db_session.get(User, operator.id) is None
    assert db_session.query(InspectionReport).count() == 0
