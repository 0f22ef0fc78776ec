from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

EDITABLE_FIELDS: tuple[str, ...] = (
    "company_sig_date",
    "company_signature_name",
    "document_name",
    "document_status",
    "document_type",
    "employee_number",
    "employee_sig_date",
    "employee_signature_name",
)

DEFAULT_FOCUS_FIELD = "company_sig_date"


def _as_text(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def wire_name(field: str) -> str:
    """Return the JSON key used by the documents API for ``field``."""

    return to_camel(field)


class Record(BaseModel):
    """A document record as exchanged with the documents API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str
    company_sig_date: str = ""
    company_signature_name: str = ""
    document_name: str = ""
    document_status: str = ""
    document_type: str = ""
    employee_number: str = ""
    employee_sig_date: str = ""
    employee_signature_name: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return _as_text(value)

    def fields(self) -> dict[str, str]:
        """Editable fields keyed by python name."""

        return {name: getattr(self, name) for name in EDITABLE_FIELDS}

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


class RecordFields(BaseModel):
    """Partial set of editable fields submitted by the grid."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    company_sig_date: str | None = None
    company_signature_name: str | None = None
    document_name: str | None = None
    document_status: str | None = None
    document_type: str | None = None
    employee_number: str | None = None
    employee_sig_date: str | None = None
    employee_signature_name: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return _as_text(value)

    def changes(self) -> dict[str, str]:
        """Only the fields that were explicitly supplied, keyed by python name."""

        return {name: value for name, value in self.model_dump(exclude_unset=True).items() if value is not None}


def blank_fields() -> dict[str, str]:
    return {name: "" for name in EDITABLE_FIELDS}


def coerce_fields(fields: Any) -> dict[str, str]:
    """Validate a mapping of field edits (camelCase or snake_case keys)."""

    if fields is None:
        return {}
    if isinstance(fields, RecordFields):
        return fields.changes()
    return RecordFields.model_validate(dict(fields)).changes()


def to_wire_fields(fields: dict[str, str]) -> dict[str, str]:
    return {wire_name(name): value for name, value in fields.items()}
