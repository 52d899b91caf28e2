from datetime import timedelta

from schoolmaster.auth import create_access_token
from schoolmaster.core.enums import RoleName


def test_login_returns_bearer_token(client, student, test_password):
    response = client.post("/api/auth/login", data={"username": student.email, "password": test_password})

    assert response.status_code == 200
    body = response.json()
    assert body["tokenType"] == "bearer"
    assert body["accessToken"]
    assert body["user"]["email"] == student.email
    assert body["user"]["balance"] == 300.0


def test_login_with_wrong_password(client, student):
    response = client.post("/api/auth/login", data={"username": student.email, "password": "nope"})

    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "INVALID_CREDENTIALS"


def test_inactive_account_cannot_log_in(client, make_user, test_password):
    user = make_user(RoleName.STUDENT, is_active=False)

    response = client.post("/api/auth/login", data={"username": user.email, "password": test_password})

    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "ACCOUNT_INACTIVE"


def test_me_requires_token(client):
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["detail"] == "Not authenticated"


def test_me_rejects_expired_token(client, student):
    token = create_access_token({"sub": student.email}, expires_delta=timedelta(minutes=-1))

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Could not validate credentials"


def test_me_returns_profile(client, tutor, auth_headers):
    response = client.get("/api/auth/me", headers=auth_headers(tutor))

    assert response.status_code == 200
    assert response.json()["role"] == "tutor"
    assert response.json()["hourlyRate"] == 100.0


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["checks"] == {"database": True}
