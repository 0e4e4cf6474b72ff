def test_register_login_me(client):
    register_payload = {
        "name": "Office Staff",
        "email": "Staff@Example.com",
        "password": "password123",
        "role": "staff",
    }

    register_response = client.post("/api/v1/auth/register", json=register_payload)
    assert register_response.status_code == 201
    data = register_response.json()
    assert data["email"] == "staff@example.com"
    assert data["role"] == "staff"
    assert data["is_active"] is True
    assert "hashed_password" not in data

    login_response = client.post(
        "/api/v1/auth/login",
        json={"email": "staff@example.com", "password": "password123", "role": "staff"},
    )
    assert login_response.status_code == 200
    login_data = login_response.json()
    assert login_data["token_type"] == "bearer"
    assert login_data["user"]["id"] == data["id"]

    token = login_data["access_token"]
    me_response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me_response.status_code == 200
    assert me_response.json()["email"] == "staff@example.com"


def test_duplicate_registration_is_rejected(client):
    payload = {"name": "Admin", "email": "admin@example.com", "password": "password123", "role": "admin"}
    assert client.post("/api/v1/auth/register", json=payload).status_code == 201

    duplicate = client.post("/api/v1/auth/register", json=payload)
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "Email already registered"


def test_login_failures(client):
    payload = {"name": "Teacher", "email": "teacher@example.com", "password": "password123", "role": "teacher"}
    client.post("/api/v1/auth/register", json=payload)

    wrong_password = client.post(
        "/api/v1/auth/login",
        json={"email": "teacher@example.com", "password": "not-the-password"},
    )
    assert wrong_password.status_code == 401

    wrong_role = client.post(
        "/api/v1/auth/login",
        json={"email": "teacher@example.com", "password": "password123", "role": "admin"},
    )
    assert wrong_role.status_code == 403


def test_invalid_token_is_rejected(client):
    response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
