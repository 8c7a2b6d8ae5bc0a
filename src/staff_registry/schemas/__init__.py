"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .staff import (
    AddStaffResponse,
    ColumnInfo,
    CreatedUser,
    CreateFormRequest,
    DeleteStaffRequest,
    FailedUser,
    FieldDescriptor,
    FormRef,
    IssuedCredential,
    LoginRequest,
    MessageResponse,
    PasswordResetResponse,
    StaffUserInfo,
    UploadRowsRequest,
    UploadRowsResponse,
)

__all__ = [
    "AddStaffResponse", "ColumnInfo", "CreatedUser", "CreateFormRequest",
    "DeleteStaffRequest", "FailedUser", "FieldDescriptor", "FormRef",
    "IssuedCredential", "LoginRequest", "MessageResponse", "PasswordResetResponse",
    "StaffUserInfo", "UploadRowsRequest", "UploadRowsResponse",
]
