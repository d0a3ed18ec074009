import pytest
from fastapi.testclient import TestClient

from jobtrack.auth import hash_password
from jobtrack.models import Position, User
from jobtrack.tests.factories import create_project


def _add_user(db, username, position):
    user = User(
        username=username,
        email=f"{username}@jobtrack.local",
        first_name=username.title(),
        last_name="Tester",
        password_hash=hash_password("password123"),
        position_id=position.id,
        is_active=True,
    )
    db.add(user)
    db.flush()
    return user


@pytest.fixture()
def users(client):
    test_client, TestingSessionLocal = client
    with TestingSessionLocal() as db:
        manager = Position(name="Project Manager", can_manage_projects=True)
        viewer = Position(name="Viewer")
        db.add_all([manager, viewer])
        db.flush()
        _add_user(db, "manager", manager)
        _add_user(db, "viewer", viewer)
        create_project(db)
        db.commit()
    return test_client, TestingSessionLocal


def _login(client: TestClient, username: str):
    response = client.post("/api/auth/login", json={"username": username, "password": "password123"})
    assert response.status_code == 200
    return response.json()["access_token"]


@pytest.mark.real_auth
def test_login_updates_last_login_and_me_reports_permissions(users):
    test_client, TestingSessionLocal = users
    token = _login(test_client, "manager")

    me = test_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert me.status_code == 200
    data = me.json()["data"]
    assert data["position_name"] == "Project Manager"
    assert data["permissions"] == {"MANAGE_PROJECTS": True, "MANAGE_INVENTORY": False, "MANAGE_USERS": False}
    with TestingSessionLocal() as db:
        assert db.query(User).filter(User.username == "manager").one().last_login_at is not None


@pytest.mark.real_auth
def test_bad_password_is_unauthorized(users):
    test_client, _ = users

    response = test_client.post("/api/auth/login", json={"username": "viewer", "password": "wrong"})

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid username or password"}


@pytest.mark.real_auth
def test_requests_without_token_are_unauthorized(users):
    test_client, _ = users

    response = test_client.get("/api/project-detail/jo/JO-2024-001")

    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.real_auth
def test_viewer_can_read_but_not_mutate(users):
    test_client, _ = users
    headers = {"Authorization": f"Bearer {_login(test_client, 'viewer')}"}

    read = test_client.get("/api/project-detail/jo/JO-2024-001", headers=headers)
    write = test_client.post(
        "/api/project-detail/project-days",
        json={"project_id": read.json()["data"]["project"]["id"], "project_date": "2024-10-01"},
        headers=headers,
    )

    assert read.status_code == 200
    assert write.status_code == 403
    assert write.json() == {"success": False, "message": "Missing permission 'MANAGE_PROJECTS'"}


@pytest.mark.real_auth
def test_manager_can_mutate_projects_but_not_inventory(users):
    test_client, _ = users
    headers = {"Authorization": f"Bearer {_login(test_client, 'manager')}"}

    day = test_client.post(
        "/api/project-detail/project-days",
        json={"project_id": 1, "project_date": "2024-10-01"},
        headers=headers,
    )
    item = test_client.post("/api/inventory", json={"type": "material", "name": "Cable"}, headers=headers)

    assert day.status_code == 201
    assert item.status_code == 403


@pytest.mark.real_auth
def test_positions_are_listed(users):
    test_client, _ = users
    headers = {"Authorization": f"Bearer {_login(test_client, 'viewer')}"}

    response = test_client.get("/api/positions", headers=headers)

    assert response.status_code == 200
    assert [position["name"] for position in response.json()["data"]] == ["Project Manager", "Viewer"]
    assert test_client.get("/api/positions/999", headers=headers).status_code == 404
