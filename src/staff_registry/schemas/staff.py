"""Staff registry Pydantic schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FieldDescriptor(BaseModel):
    """A caller-defined custom column of a staff form."""

    name: str = Field(..., description="Column name")
    type: str = Field(..., description="Semantic field type, e.g. text, number, date")
    required: bool = Field(False, description="Whether the column is NOT NULL")
    options: list[str] = Field(default_factory=list, description="Choices for select fields")


class CreateFormRequest(BaseModel):
    """Request to provision the form table of a staff classification."""

    staff_type: str = Field(..., alias="staffType")
    class_name: str = Field(..., alias="className")
    custom_fields: list[FieldDescriptor] = Field(default_factory=list, alias="customFields")

    model_config = ConfigDict(populate_by_name=True)


class FormRef(BaseModel):
    """Identifies one form table."""

    staff_type: str = Field(..., alias="staffType")
    class_name: str = Field(..., alias="className")

    model_config = ConfigDict(populate_by_name=True)


class UploadRowsRequest(BaseModel):
    """Pre-parsed spreadsheet rows to insert into a form table."""

    staff_type: str = Field(..., alias="staffType")
    class_name: str = Field(..., alias="className")
    data: list[dict[str, Any]] = Field(..., min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class DeleteStaffRequest(BaseModel):
    """Request to delete one staff record."""

    global_staff_id: int = Field(..., alias="globalStaffId")
    staff_type: str = Field(..., alias="staffType")
    class_name: str = Field(..., alias="className")

    model_config = ConfigDict(populate_by_name=True)


class ColumnInfo(BaseModel):
    """Column metadata reported to form renderers."""

    column_name: str
    data_type: str
    is_nullable: str
    required: bool
    options: list[str] | None = None


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


class IssuedCredential(BaseModel):
    """Login credential minted for a new staff record."""

    username: str
    password: str
    global_staff_id: int = Field(..., serialization_alias="globalStaffId")


class AddStaffResponse(BaseModel):
    """Result of a single staff insertion."""

    message: str
    global_staff_id: int = Field(..., serialization_alias="globalStaffId")
    user_credentials: IssuedCredential | None = Field(None, serialization_alias="userCredentials")


class CreatedUser(BaseModel):
    """Credential created during a bulk upload."""

    name: str
    username: str
    password: str
    global_staff_id: int = Field(..., serialization_alias="globalStaffId")


class FailedUser(BaseModel):
    """Bulk upload row whose credential could not be issued."""

    name: str
    global_staff_id: int = Field(..., serialization_alias="globalStaffId")
    error: str


class UploadRowsResponse(BaseModel):
    """Result of a bulk upload."""

    message: str
    created_users: list[CreatedUser] = Field(default_factory=list, serialization_alias="createdUsers")
    failed_users: list[FailedUser] = Field(default_factory=list, serialization_alias="failedUsers")


class LoginRequest(BaseModel):
    """Staff username/password login."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class StaffUserInfo(BaseModel):
    """Public view of a staff credential."""

    global_staff_id: int = Field(..., serialization_alias="id")
    username: str
    staff_type: str = Field(..., serialization_alias="staffType")
    class_name: str = Field(..., serialization_alias="className")

    model_config = ConfigDict(from_attributes=True)


class PasswordResetResponse(BaseModel):
    """Freshly generated password for an existing credential."""

    username: str
    new_password: str = Field(..., serialization_alias="newPassword")
    global_staff_id: int = Field(..., serialization_alias="globalStaffId")
