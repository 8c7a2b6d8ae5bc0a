"""Translation of semantic form field types into table columns.

Pure functions only: nothing here touches the database. The provisioner
uses these helpers to build the ``Table`` it creates, and the record writer
uses ``coerce_value`` to turn submitted form values into column values.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Final

from sqlalchemy import BigInteger, Boolean, Column, Date, Integer, String, Text, false
from sqlalchemy.types import TypeEngine

from staff_registry.core.errors import (
    InvalidNameError,
    UnsupportedFieldTypeError,
    ValidationError,
)
from staff_registry.schemas.staff import FieldDescriptor

TABLE_NAME_PATTERN: Final = re.compile(r"^[A-Za-z0-9_]+$")
COLUMN_NAME_PATTERN: Final = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
MAX_IDENTIFIER_LENGTH: Final = 63

# Columns assigned by the service, never by callers.
IDENTITY_COLUMNS: Final[frozenset[str]] = frozenset({"id", "global_staff_id", "staff_id"})

FIXED_COLUMN_NAMES: Final[tuple[str, ...]] = (
    "id",
    "global_staff_id",
    "staff_id",
    "image_staff",
    "name",
    "gender",
    "role",
    "staff_enrollment_type",
    "staff_work_time",
)

FIXED_OPTIONS: Final[dict[str, list[str]]] = {
    "gender": ["Male", "Female"],
    "role": [
        "Teacher", "Director", "Coordinator", "Supervisor", "Deputy director",
        "Purchaser", "Cashier", "Accountant", "Guard", "Cleaner", "Department Head",
        "Counselor", "Instructor", "Librarian", "Nurse", "Technician", "Assistant",
        "Manager", "Trainer", "Advisor", "Inspector",
    ],
    "staff_enrollment_type": ["Permanent", "Contract"],
    "staff_work_time": ["Full time", "Part time"],
}

# Words PostgreSQL refuses as bare column names.
RESERVED_KEYWORDS: Final[frozenset[str]] = frozenset({
    "all", "analyse", "analyze", "and", "any", "array", "as", "asc", "asymmetric",
    "authorization", "binary", "both", "case", "cast", "check", "collate", "column",
    "concurrently", "constraint", "create", "cross", "current_catalog", "current_date",
    "current_role", "current_schema", "current_time", "current_timestamp", "current_user",
    "default", "deferrable", "desc", "distinct", "do", "else", "end", "except", "false",
    "fetch", "for", "foreign", "from", "grant", "group", "having", "in", "initially",
    "intersect", "into", "join", "lateral", "leading", "left", "like", "limit", "localtime",
    "localtimestamp", "natural", "not", "null", "offset", "on", "only", "or", "order",
    "placing", "primary", "references", "returning", "select", "session_user", "some",
    "symmetric", "table", "then", "to", "trailing", "true", "union", "unique", "user",
    "using", "variadic", "verbose", "when", "where", "window", "with",
})

STRING_TYPES: Final[frozenset[str]] = frozenset({"text", "select"})
SUPPORTED_FIELD_TYPES: Final[frozenset[str]] = frozenset(
    {"text", "textarea", "select", "number", "date", "checkbox", "upload"}
)

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


def validate_table_name(name: str | None) -> str:
    """Return ``name`` unchanged if it is a safe table identifier."""
    if not name or not TABLE_NAME_PATTERN.match(name) or len(name) > MAX_IDENTIFIER_LENGTH:
        raise InvalidNameError(
            "Form name must contain only alphanumeric characters and underscores",
            detail=f"Rejected form name: {name!r}",
        )
    return name


def validate_column_name(name: str) -> str:
    """Return ``name`` unchanged if it can be used as a custom column."""
    if not COLUMN_NAME_PATTERN.match(name) or len(name) > MAX_IDENTIFIER_LENGTH:
        raise InvalidNameError(
            f'Invalid field name: "{name}"',
            detail=(
                "Field names must start with a letter or underscore and contain only "
                "letters, numbers, and underscores."
            ),
        )
    if name.lower() in RESERVED_KEYWORDS:
        raise InvalidNameError(
            f'Field name "{name}" is a reserved keyword',
            detail="Please choose a different name.",
        )
    return name


def storage_type_for(descriptor: FieldDescriptor) -> TypeEngine[Any]:
    """Map a descriptor's semantic type onto a column type."""
    field_type = descriptor.type
    if field_type not in SUPPORTED_FIELD_TYPES:
        raise UnsupportedFieldTypeError(f"Unsupported field type: {field_type}")
    if field_type in STRING_TYPES or field_type == "upload":
        return String(255)
    if field_type == "textarea":
        return Text()
    if field_type == "number":
        # Phone numbers overflow a 32-bit integer.
        return BigInteger() if descriptor.name == "phone" else Integer()
    if field_type == "date":
        return Date()
    return Boolean()


def custom_column(descriptor: FieldDescriptor) -> Column[Any]:
    """Build the column for one caller-defined field."""
    column_type = storage_type_for(descriptor)
    kwargs: dict[str, Any] = {"nullable": not descriptor.required}
    if descriptor.type == "checkbox" and not descriptor.required:
        kwargs["server_default"] = false()
    return Column(descriptor.name, column_type, **kwargs)


def fixed_columns() -> list[Column[Any]]:
    """Build fresh copies of the columns every form table starts with."""
    return [
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("global_staff_id", Integer, nullable=False),
        Column("staff_id", Integer, nullable=False),
        Column("image_staff", String(255), nullable=True),
        Column("name", String(100), nullable=False),
        Column("gender", String(50), nullable=False),
        Column("role", String(100), nullable=False),
        Column("staff_enrollment_type", String(50), nullable=False),
        Column("staff_work_time", String(50), nullable=False),
    ]


def normalize_descriptors(descriptors: list[FieldDescriptor]) -> list[FieldDescriptor]:
    """Validate custom descriptors, dropping any that shadow a fixed column."""
    seen: set[str] = set()
    result: list[FieldDescriptor] = []
    for descriptor in descriptors:
        if descriptor.name in FIXED_COLUMN_NAMES:
            continue
        validate_column_name(descriptor.name)
        if descriptor.type not in SUPPORTED_FIELD_TYPES:
            raise UnsupportedFieldTypeError(f"Unsupported field type: {descriptor.type}")
        if descriptor.name in seen:
            raise ValidationError(f'Duplicate field name: "{descriptor.name}"')
        seen.add(descriptor.name)
        result.append(descriptor)
    return result


def semantic_type_for(column_name: str, column_type: TypeEngine[Any]) -> str:
    """Infer the semantic type of a column that has no registry entry."""
    if column_name == "image_staff":
        return "upload"
    if isinstance(column_type, Boolean):
        return "boolean"
    if isinstance(column_type, Integer):
        return "integer"
    if isinstance(column_type, Date):
        return "date"
    return "text"


def coerce_value(column_name: str, column_type: TypeEngine[Any], value: Any) -> Any:
    """Convert a submitted value into something the column accepts.

    Empty strings become NULL; booleans, integers and dates are parsed from
    their string forms.

    Raises:
        ValidationError: If the value cannot be interpreted for the column type.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return None

    if isinstance(column_type, Boolean):
        if isinstance(value, bool):
            return value
        lowered = str(value).lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValidationError(f'Invalid boolean value for "{column_name}"', detail=repr(value))

    if isinstance(column_type, Integer):
        if isinstance(value, bool):
            raise ValidationError(f'Invalid number for "{column_name}"', detail=repr(value))
        try:
            return int(value)
        except (TypeError, ValueError) as err:
            raise ValidationError(
                f'Invalid number for "{column_name}"', detail=repr(value)
            ) from err

    if isinstance(column_type, Date):
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value)[:10])
        except ValueError as err:
            raise ValidationError(
                f'Invalid date for "{column_name}"', detail=repr(value)
            ) from err

    if isinstance(value, list):
        # Multi-value inputs are stored comma separated.
        return ",".join(str(item) for item in value)
    return value if isinstance(value, str) else str(value)
