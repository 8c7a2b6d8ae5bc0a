"""HTTP tests for the staff endpoints."""

from __future__ import annotations

import json
from typing import Any

from fastapi import FastAPI, status
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from staff_registry.api.v1.dependencies import get_issuer_dep
from staff_registry.models import StaffUser
from staff_registry.services.credentials import CredentialIssuer

API = "/api/v1/staff"


class OfflineIssuer(CredentialIssuer):
    """Issuer whose credential lookups fail with a database error."""

    @staticmethod
    def get_by_global_id(db: Session, global_staff_id: int) -> StaffUser | None:
        raise OperationalError("SELECT staff_users", {}, Exception("database went away"))


def _create_form(client: TestClient, **overrides: Any) -> Any:
    payload = {
        "staffType": "Teachers",
        "className": "grade_teachers",
        "customFields": [{"name": "subject", "type": "text", "required": True}],
        **overrides,
    }
    return client.post(f"{API}/create-form", json=payload)


def _add_staff(client: TestClient, name: str, files: Any = None, **extra: str) -> Any:
    data = {
        "staffType": "Teachers",
        "class": "grade_teachers",
        "name": name,
        "gender": "Female",
        "role": "Teacher",
        "staff_enrollment_type": "Permanent",
        "staff_work_time": "Full time",
        "subject": "Math",
        **extra,
    }
    return client.post(f"{API}/add-staff", data=data, files=files)


def test_create_form_and_list_classes(client: TestClient) -> None:
    r = _create_form(client)
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"message": "Form created successfully"}

    r = client.get(f"{API}/classes", params={"staffType": "Teachers"})
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == ["grade_teachers"]

    r = client.get(f"{API}/columns/Teachers/grade_teachers")
    assert r.status_code == status.HTTP_200_OK
    names = [column["column_name"] for column in r.json()]
    assert names[-1] == "subject"


def test_classes_requires_staff_type(client: TestClient) -> None:
    r = client.get(f"{API}/classes")
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json()["error"] == "Staff type is required"


def test_duplicate_form_is_conflict(client: TestClient) -> None:
    assert _create_form(client).status_code == status.HTTP_200_OK

    r = _create_form(client, className="second")
    assert r.status_code == status.HTTP_409_CONFLICT
    assert r.json()["error"] == "A form already exists for this staff type"
    assert client.get(f"{API}/classes", params={"staffType": "Teachers"}).json() == ["grade_teachers"]


def test_invalid_form_name_is_bad_request(client: TestClient) -> None:
    r = _create_form(client, className="grade-teachers")
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert "details" in r.json()


def test_malformed_body_is_bad_request(client: TestClient) -> None:
    r = client.post(f"{API}/create-form", json={"staffType": "Teachers"})
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json()["error"] == "Invalid input"


def test_unknown_table_columns_not_found(client: TestClient) -> None:
    r = client.get(f"{API}/columns/Teachers/missing")
    assert r.status_code == status.HTTP_404_NOT_FOUND
    assert r.json()["error"] == "Target table does not exist"


def test_add_staff_round_trip(client: TestClient) -> None:
    _create_form(client)

    r = _add_staff(client, "Amina")
    assert r.status_code == status.HTTP_200_OK
    body = r.json()
    assert body["message"] == "Staff added successfully"
    assert body["userCredentials"]["globalStaffId"] == body["globalStaffId"]

    r = client.get(f"{API}/data/Teachers/grade_teachers")
    assert r.status_code == status.HTTP_200_OK
    rows = r.json()["data"]
    assert len(rows) == 1
    assert rows[0]["name"] == "Amina"
    assert rows[0]["staff_id"] == 1
    assert rows[0]["global_staff_id"] == body["globalStaffId"]
    assert rows[0]["username"] == body["userCredentials"]["username"]


def test_add_staff_orders_by_name(client: TestClient) -> None:
    _create_form(client)
    for name in ("Zed", "Amina", "Mo"):
        assert _add_staff(client, name).status_code == status.HTTP_200_OK

    rows = client.get(f"{API}/data/Teachers/grade_teachers").json()["data"]
    assert [(row["staff_id"], row["name"]) for row in rows] == [(1, "Amina"), (2, "Mo"), (3, "Zed")]


def test_add_staff_stores_files(client: TestClient, upload_dir: Any) -> None:
    _create_form(
        client,
        customFields=[
            {"name": "subject", "type": "text", "required": True},
            {"name": "cv", "type": "upload"},
        ],
    )
    files = [
        ("image_staff", ("portrait.png", b"png-bytes", "image/png")),
        ("custom_uploads", ("cv-upload.pdf", b"pdf-bytes", "application/pdf")),
    ]

    r = _add_staff(client, "Amina", files=files, uploadFields=json.dumps(["cv"]))
    assert r.status_code == status.HTTP_200_OK

    row = client.get(f"{API}/data/Teachers/grade_teachers").json()["data"][0]
    assert row["image_staff"].startswith("image_staff-")
    assert row["cv"].startswith("custom_uploads-")

    r = client.get(f"{API}/uploads/{row['image_staff']}")
    assert r.status_code == status.HTTP_200_OK
    assert r.content == b"png-bytes"

    r = client.request(
        "DELETE",
        f"{API}/delete-staff",
        json={"globalStaffId": row["global_staff_id"], "staffType": "Teachers", "className": "grade_teachers"},
    )
    assert r.status_code == status.HTTP_200_OK
    assert list(upload_dir.iterdir()) == []


def test_failed_add_staff_removes_uploads(client: TestClient, upload_dir: Any) -> None:
    _create_form(client)
    files = [("image_staff", ("portrait.png", b"png-bytes", "image/png"))]

    r = _add_staff(client, "Amina", files=files, subject="")
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json()["error"] == "Missing required fields: subject"
    assert list(upload_dir.iterdir()) == []


def test_credential_database_error_keeps_record_and_uploads(
    app: FastAPI, client: TestClient, upload_dir: Any
) -> None:
    _create_form(client)
    files = [("image_staff", ("portrait.png", b"png-bytes", "image/png"))]

    app.dependency_overrides[get_issuer_dep] = lambda: OfflineIssuer()
    try:
        r = _add_staff(client, "Amina", files=files)
    finally:
        app.dependency_overrides.pop(get_issuer_dep, None)

    assert r.status_code == status.HTTP_200_OK
    assert r.json()["userCredentials"] is None

    rows = client.get(f"{API}/data/Teachers/grade_teachers").json()["data"]
    assert [row["name"] for row in rows] == ["Amina"]
    assert rows[0]["username"] is None
    assert (upload_dir / rows[0]["image_staff"]).is_file()


def test_missing_upload_is_not_found(client: TestClient) -> None:
    r = client.get(f"{API}/uploads/nothing.png")
    assert r.status_code == status.HTTP_404_NOT_FOUND


def test_upload_excel(client: TestClient) -> None:
    _create_form(client)
    row = {
        "gender": "Male",
        "role": "Teacher",
        "staff_enrollment_type": "Contract",
        "staff_work_time": "Part time",
        "subject": "History",
    }
    r = client.post(
        f"{API}/upload-excel",
        json={
            "staffType": "Teachers",
            "className": "grade_teachers",
            "data": [{**row, "name": "Zed"}, {**row, "name": "Amina"}],
        },
    )
    assert r.status_code == status.HTTP_200_OK
    body = r.json()
    assert body["message"] == "Excel data uploaded successfully"
    assert sorted(user["name"] for user in body["createdUsers"]) == ["Amina", "Zed"]
    assert body["failedUsers"] == []


def test_upload_excel_rejects_unknown_columns(client: TestClient) -> None:
    _create_form(client)
    r = client.post(
        f"{API}/upload-excel",
        json={
            "staffType": "Teachers",
            "className": "grade_teachers",
            "data": [{"name": "Zed", "shoe_size": 44}],
        },
    )
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json()["error"] == "Invalid columns: shoe_size"
    assert client.get(f"{API}/data/Teachers/grade_teachers").json()["data"] == []


def test_delete_form_is_idempotent(client: TestClient) -> None:
    _create_form(client)
    ref = {"staffType": "Teachers", "className": "grade_teachers"}

    for _ in range(2):
        r = client.request("DELETE", f"{API}/delete-form", json=ref)
        assert r.status_code == status.HTTP_200_OK
    assert client.get(f"{API}/classes", params={"staffType": "Teachers"}).json() == []


def test_login_profile_and_password_reset(client: TestClient) -> None:
    _create_form(client)
    created = _add_staff(client, "Amina").json()
    credentials = created["userCredentials"]

    r = client.post(
        f"{API}/login",
        json={"username": credentials["username"], "password": "not-it"},
    )
    assert r.status_code == status.HTTP_401_UNAUTHORIZED

    r = client.post(
        f"{API}/login",
        json={"username": credentials["username"], "password": credentials["password"]},
    )
    assert r.status_code == status.HTTP_200_OK
    login = r.json()
    assert login["user"]["role"] == "teacher"
    assert login["profile"]["name"] == "Amina"

    r = client.get(f"{API}/profile/{credentials['username']}")
    assert r.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}

    headers = {"Authorization": f"Bearer {login['token']}"}
    r = client.get(f"{API}/profile/{credentials['username']}", headers=headers)
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["user"]["className"] == "grade_teachers"

    r = client.get(f"{API}/profile/nobody", headers=headers)
    assert r.status_code == status.HTTP_404_NOT_FOUND

    r = client.get(f"{API}/users", headers=headers)
    assert r.status_code == status.HTTP_200_OK
    users = r.json()
    assert users[0]["username"] == credentials["username"]
    assert "password" not in users[0]

    r = client.post(f"{API}/users/{created['globalStaffId']}/reset-password", headers=headers)
    assert r.status_code == status.HTTP_200_OK
    new_password = r.json()["newPassword"]

    r = client.post(
        f"{API}/login",
        json={"username": credentials["username"], "password": new_password},
    )
    assert r.status_code == status.HTTP_200_OK

def test_account_routes_require_a_token(client: TestClient) -> None:
    _create_form(client)
    created = _add_staff(client, "Amina").json()
    credentials = created["userCredentials"]
    reset_url = f"{API}/users/{created['globalStaffId']}/reset-password"

    r = client.get(f"{API}/users")
    assert r.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}

    r = client.post(reset_url)
    assert r.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}

    r = client.post(reset_url, headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == status.HTTP_401_UNAUTHORIZED

    # The original password still works after the rejected resets.
    r = client.post(
        f"{API}/login",
        json={"username": credentials["username"], "password": credentials["password"]},
    )
    assert r.status_code == status.HTTP_200_OK



def test_staff_lookup(client: TestClient) -> None:
    _create_form(client)
    created = _add_staff(client, "Amina").json()

    r = client.get(f"{API}/staff/{created['globalStaffId']}")
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["staff"]["staffType"] == "Teachers"

    r = client.get(f"{API}/staff/9999")
    assert r.status_code == status.HTTP_404_NOT_FOUND
