import pytest

from jobtrack.auth import hash_password
from jobtrack.models import Position, User


def _add_user(db, username, position=None, first_name=None):
    user = User(
        username=username,
        email=f"{username}@jobtrack.local",
        first_name=first_name or username.title(),
        last_name="Tester",
        password_hash=hash_password("password123"),
        position_id=position.id if position else None,
        is_active=True,
    )
    db.add(user)
    db.flush()
    return user


@pytest.fixture()
def staff(client):
    test_client, TestingSessionLocal = client
    with TestingSessionLocal() as db:
        warehouse = Position(name="Warehouse Staff", can_manage_inventory=True)
        viewer = Position(name="Viewer")
        db.add_all([warehouse, viewer])
        db.flush()
        ids = {
            "ana": _add_user(db, "ana", warehouse).id,
            "ben": _add_user(db, "ben", viewer).id,
            "carla": _add_user(db, "carla", viewer).id,
            "viewer_position": viewer.id,
            "warehouse_position": warehouse.id,
        }
        db.commit()
    return test_client, TestingSessionLocal, ids


def _auth_headers(test_client, username):
    response = test_client.post("/api/auth/login", json={"username": username, "password": "password123"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_list_users_searches_name_email_and_position_and_paginates(staff):
    test_client, _, _ = staff

    by_position = test_client.get("/api/users", params={"search": "warehouse"}).json()["data"]
    first_page = test_client.get("/api/users", params={"page": 1, "limit": 2}).json()["data"]

    assert [user["username"] for user in by_position["users"]] == ["ana"]
    assert by_position["users"][0]["permissions"]["MANAGE_INVENTORY"] is True
    assert first_page["pagination"] == {"page": 1, "limit": 2, "total": 4, "total_pages": 2}
    assert len(first_page["users"]) == 2


@pytest.mark.real_auth
def test_users_without_manage_users_only_see_their_own_profile(staff):
    test_client, _, ids = staff
    headers = _auth_headers(test_client, "ben")

    own = test_client.get(f"/api/users/{ids['ben']}", headers=headers)
    other = test_client.get(f"/api/users/{ids['carla']}", headers=headers)
    listing = test_client.get("/api/users", headers=headers)

    assert own.status_code == 200
    assert own.json()["data"]["position_name"] == "Viewer"
    assert other.status_code == 403
    assert other.json()["message"] == "You can only view your own profile"
    assert listing.status_code == 403


@pytest.mark.real_auth
def test_profile_edits_are_limited_for_regular_users(staff):
    test_client, TestingSessionLocal, ids = staff
    headers = _auth_headers(test_client, "ben")

    renamed = test_client.put(f"/api/users/{ids['ben']}", json={"first_name": "Benjamin"}, headers=headers)
    promoted = test_client.put(
        f"/api/users/{ids['ben']}",
        json={"position_id": ids["warehouse_position"]},
        headers=headers,
    )
    other = test_client.put(f"/api/users/{ids['carla']}", json={"first_name": "Carl"}, headers=headers)

    assert renamed.status_code == 200
    assert renamed.json()["data"]["full_name"] == "Benjamin Tester"
    assert promoted.status_code == 403
    assert promoted.json()["message"] == "Only user managers can change positions"
    assert other.status_code == 403
    with TestingSessionLocal() as db:
        assert db.get(User, ids["ben"]).position_id == ids["viewer_position"]
        assert db.get(User, ids["carla"]).first_name == "Carla"


def test_manager_changes_position_and_email_must_stay_unique(staff):
    test_client, TestingSessionLocal, ids = staff

    moved = test_client.put(f"/api/users/{ids['ben']}", json={"position_id": ids["warehouse_position"]})
    duplicate = test_client.put(f"/api/users/{ids['ben']}", json={"email": "ana@jobtrack.local"})
    missing_position = test_client.put(f"/api/users/{ids['ben']}", json={"position_id": 999})

    assert moved.status_code == 200
    assert moved.json()["data"]["position_name"] == "Warehouse Staff"
    assert duplicate.status_code == 400
    assert duplicate.json()["message"] == "Email already in use"
    assert missing_position.status_code == 404
    with TestingSessionLocal() as db:
        assert db.get(User, ids["ben"]).email == "ben@jobtrack.local"


def test_deactivate_blocks_login_and_activate_restores_it(staff):
    test_client, _, ids = staff

    deactivated = test_client.put(f"/api/users/{ids['carla']}/deactivate")
    rejected = test_client.post("/api/auth/login", json={"username": "carla", "password": "password123"})
    activated = test_client.put(f"/api/users/{ids['carla']}/activate")

    assert deactivated.json()["data"]["is_active"] is False
    assert rejected.status_code == 401
    assert activated.json()["data"]["is_active"] is True
    _auth_headers(test_client, "carla")


def test_delete_is_a_soft_deactivation_and_self_is_protected(staff):
    test_client, TestingSessionLocal, ids = staff

    deleted = test_client.delete(f"/api/users/{ids['ana']}")
    self_delete = test_client.delete("/api/users/1")
    self_deactivate = test_client.put("/api/users/1/deactivate")

    assert deleted.status_code == 200
    assert deleted.json()["message"] == "User deactivated successfully"
    assert self_delete.status_code == 400
    assert self_deactivate.json()["message"] == "You cannot deactivate your own account"
    with TestingSessionLocal() as db:
        assert db.get(User, ids["ana"]).is_active is False
        assert db.get(User, 1).is_active is True


def test_unknown_user_is_not_found(staff):
    test_client, _, _ = staff

    assert test_client.get("/api/users/404").status_code == 404
    assert test_client.put("/api/users/404/activate").status_code == 404
