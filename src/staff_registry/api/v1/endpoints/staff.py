"""Staff form provisioning, registration and login endpoints."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import FileResponse
from starlette.datastructures import UploadFile

from staff_registry.api.v1.dependencies import IssuerDep, SessionDep, get_current_staff
from staff_registry.core.errors import RecordNotFoundError, ValidationError
from staff_registry.core.security import create_access_token
from staff_registry.core.settings import settings
from staff_registry.schemas.staff import (
    AddStaffResponse,
    ColumnInfo,
    CreateFormRequest,
    DeleteStaffRequest,
    FormRef,
    LoginRequest,
    MessageResponse,
    PasswordResetResponse,
    StaffUserInfo,
    UploadRowsRequest,
    UploadRowsResponse,
)
from staff_registry.services import provisioner, record_writer
from staff_registry.services.uploads import (
    StoredUpload,
    remove_upload,
    store_upload,
    store_uploads,
    upload_path,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/staff", tags=["staff"])

# Multipart keys that carry routing information rather than column values.
_FORM_CONTROL_KEYS = frozenset({"staffType", "class", "className", "uploadFields"})
_FILE_KEYS = frozenset({"image_staff", "custom_uploads"})


@router.get("/classes", summary="List the form tables of a staff type")
async def list_classes(
    db: SessionDep,
    staff_type: str | None = Query(None, alias="staffType"),
) -> list[str]:
    if not staff_type:
        raise ValidationError("Staff type is required")
    return provisioner.list_tables(db, staff_type)


@router.get(
    "/columns/{staff_type}/{class_name}",
    summary="Describe the columns of a form table",
    response_model=list[ColumnInfo],
)
async def get_columns(staff_type: str, class_name: str, db: SessionDep) -> list[ColumnInfo]:
    return provisioner.describe_columns(db, staff_type, class_name)


@router.post("/create-form", summary="Provision a staff form", response_model=MessageResponse)
async def create_form(payload: CreateFormRequest, db: SessionDep) -> MessageResponse:
    """Create the namespace and the single form table of a staff type."""
    provisioner.create_table(db, payload.staff_type, payload.class_name, payload.custom_fields)
    return MessageResponse(message="Form created successfully")


@router.delete("/delete-form", summary="Drop a staff form", response_model=MessageResponse)
async def delete_form(payload: FormRef, db: SessionDep) -> MessageResponse:
    provisioner.drop_table(db, payload.staff_type, payload.class_name)
    return MessageResponse(message="Form deleted successfully")


def _parse_upload_fields(raw: Any) -> list[str]:
    if raw in (None, ""):
        return []
    try:
        parsed = json.loads(str(raw))
    except json.JSONDecodeError as err:
        raise ValidationError("uploadFields must be a JSON array", detail=str(err)) from err
    if not isinstance(parsed, list):
        raise ValidationError("uploadFields must be a JSON array")
    return [str(item) for item in parsed]


def _parse_form_value(value: str) -> Any:
    # Multi-choice inputs arrive JSON-encoded.
    try:
        parsed = json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return value
    return parsed if isinstance(parsed, list) else value


@router.post(
    "/add-staff",
    summary="Register one staff member",
    response_model=AddStaffResponse,
)
async def add_staff(request: Request, db: SessionDep, issuer: IssuerDep) -> AddStaffResponse:
    """Insert a staff record from a multipart form and mint its login.

    Files are written to disk before the database transaction starts. The
    writer removes them again if the record is not committed.
    """
    form = await request.form()
    staff_type = form.get("staffType")
    class_name = form.get("class") or form.get("className")
    if not isinstance(staff_type, str) or not isinstance(class_name, str) or not staff_type or not class_name:
        raise ValidationError("Staff type and class name are required")
    upload_fields = _parse_upload_fields(form.get("uploadFields"))

    images = [item for item in form.getlist("image_staff") if isinstance(item, UploadFile)]
    custom = [item for item in form.getlist("custom_uploads") if isinstance(item, UploadFile)]
    if len(images) > 1:
        raise ValidationError("Only one staff image may be uploaded")
    if len(custom) > settings.max_custom_uploads:
        raise ValidationError(
            f"At most {settings.max_custom_uploads} custom uploads are allowed"
        )

    fields: dict[str, Any] = {}
    for key, value in form.multi_items():
        if key in _FORM_CONTROL_KEYS or key in _FILE_KEYS or isinstance(value, UploadFile):
            continue
        fields[key] = _parse_form_value(value)

    stored: list[StoredUpload] = []
    image_name: str | None = None
    try:
        if images:
            image = store_upload(images[0], "image_staff")
            stored.append(image)
            image_name = image.stored_name
        custom_stored = store_uploads(custom, "custom_uploads")
    except Exception:
        for item in stored:
            remove_upload(item.stored_name)
        raise

    logger.info("Adding staff to %s: %s", staff_type, class_name)
    outcome = record_writer.insert_record(
        db,
        staff_type,
        class_name,
        fields,
        image_staff=image_name,
        uploads=custom_stored,
        upload_fields=upload_fields,
        issuer=issuer,
    )

    return AddStaffResponse(
        message="Staff added successfully",
        global_staff_id=outcome.global_staff_id,
        user_credentials=outcome.credentials,
    )


@router.post(
    "/upload-excel",
    summary="Bulk insert pre-parsed spreadsheet rows",
    response_model=UploadRowsResponse,
)
async def upload_excel(payload: UploadRowsRequest, db: SessionDep, issuer: IssuerDep) -> UploadRowsResponse:
    """Validate every row, insert them all in one transaction, then mint logins."""
    outcome = record_writer.insert_batch(
        db, payload.staff_type, payload.class_name, payload.data, issuer=issuer
    )
    return UploadRowsResponse(
        message="Excel data uploaded successfully",
        created_users=outcome.created_users,
        failed_users=outcome.failed_users,
    )


@router.get("/data/{staff_type}/{class_name}", summary="List the records of a form table")
async def get_data(staff_type: str, class_name: str, db: SessionDep) -> dict[str, Any]:
    rows = record_writer.fetch_rows(db, staff_type, class_name)
    logger.info("Fetched %d staff for %s: %s", len(rows), staff_type, class_name)
    return {"data": rows}


@router.delete("/delete-staff", summary="Delete one staff member")
async def delete_staff(payload: DeleteStaffRequest, db: SessionDep, issuer: IssuerDep) -> dict[str, Any]:
    deleted = record_writer.delete_record(
        db, payload.staff_type, payload.class_name, payload.global_staff_id, issuer=issuer
    )
    return {
        "message": "Staff member deleted successfully",
        "deletedStaff": {
            "name": deleted.get("name"),
            "globalStaffId": deleted.get("global_staff_id"),
        },
    }


@router.get("/staff/{global_staff_id}", summary="Find a staff member by global id")
async def get_staff(global_staff_id: int, db: SessionDep) -> dict[str, Any]:
    return {"staff": record_writer.find_record(db, global_staff_id)}


@router.post("/login", summary="Authenticate with staff credentials")
async def login(payload: LoginRequest, db: SessionDep, issuer: IssuerDep) -> dict[str, Any]:
    user = issuer.verify(db, payload.username, payload.password)
    profile = record_writer.get_record(db, user.staff_type, user.class_name, user.global_staff_id)
    if profile is None:
        raise RecordNotFoundError("Staff profile not found")

    summary = issuer.describe(user)
    token = create_access_token(
        user.username,
        {
            "id": user.global_staff_id,
            "role": summary["role"],
            "staffType": user.staff_type,
            "className": user.class_name,
        },
    )
    return {
        "message": "Login successful",
        "token": token,
        "user": summary,
        "profile": profile,
    }


@router.get(
    "/profile/{username}",
    summary="Fetch a staff profile by username",
    dependencies=[Depends(get_current_staff)],
)
async def get_profile(username: str, db: SessionDep, issuer: IssuerDep) -> dict[str, Any]:
    user = issuer.get_by_username(db, username)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    profile = record_writer.get_record(db, user.staff_type, user.class_name, user.global_staff_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff profile not found")
    summary = issuer.describe(user)
    return {
        "user": {
            "username": summary["username"],
            "staffType": summary["staffType"],
            "className": summary["className"],
        },
        "profile": profile,
    }


@router.get(
    "/users",
    summary="List staff login accounts",
    response_model=list[StaffUserInfo],
    dependencies=[Depends(get_current_staff)],
)
async def list_users(db: SessionDep, issuer: IssuerDep) -> list[StaffUserInfo]:
    return [StaffUserInfo.model_validate(user) for user in issuer.list_users(db)]


@router.post(
    "/users/{global_staff_id}/reset-password",
    summary="Generate a new password for a staff account",
    response_model=PasswordResetResponse,
    dependencies=[Depends(get_current_staff)],
)
async def reset_password(global_staff_id: int, db: SessionDep, issuer: IssuerDep) -> PasswordResetResponse:
    user, password = issuer.reset_password(db, global_staff_id)
    return PasswordResetResponse(
        username=user.username,
        new_password=password,
        global_staff_id=user.global_staff_id,
    )


@router.get("/uploads/{filename}", summary="Serve a stored upload")
async def get_upload(filename: str) -> FileResponse:
    path = upload_path(filename)
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileResponse(path)
