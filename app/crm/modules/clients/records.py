"""
Typed client records.

Gateways speak plain dict rows; everything above the repository works with
these frozen dataclasses instead.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Mapping


CLIENT_STATUSES = ("active", "inactive", "pending")
DEFAULT_STATUS = "active"

STATUS_LABELS = {
    "active": "Active",
    "pending": "Pending",
    "inactive": "Inactive",
}

REQUIRED_TEXT_FIELDS = ("name", "email", "phone", "company")


class ClientValidationError(ValueError):
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


@dataclass(frozen=True)
class ClientFields:
    """Every mutable column of a client. Create and update always send the full set."""

    name: str
    email: str
    phone: str
    company: str
    status: str = DEFAULT_STATUS
    notes: str | None = None

    def as_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Client:
    id: str
    name: str
    email: str
    phone: str
    company: str
    status: str
    notes: str | None
    created_at: datetime

    @property
    def fields(self) -> ClientFields:
        return ClientFields(
            name=self.name,
            email=self.email,
            phone=self.phone,
            company=self.company,
            status=self.status,
            notes=self.notes,
        )

    @property
    def initials(self) -> str:
        return self.name[:2].upper()


def validate_client_payload(payload: Mapping[str, Any]) -> list[str]:
    """Validate client create/update payload. Returns list of errors."""
    errors = []
    for key in REQUIRED_TEXT_FIELDS:
        if not (payload.get(key) or "").strip():
            errors.append(f"{key.capitalize()} is required.")
    status = (payload.get("status") or "").strip()
    if status and status not in CLIENT_STATUSES:
        errors.append(f"Invalid status. Must be one of: {', '.join(CLIENT_STATUSES)}")
    return errors


def fields_from_payload(payload: Mapping[str, Any]) -> ClientFields:
    errors = validate_client_payload(payload)
    if errors:
        raise ClientValidationError(errors)
    return ClientFields(
        name=payload["name"].strip(),
        email=payload["email"].strip(),
        phone=payload["phone"].strip(),
        company=payload["company"].strip(),
        status=(payload.get("status") or "").strip() or DEFAULT_STATUS,
        notes=(payload.get("notes") or "").strip() or None,
    )


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    raise ValueError(f"created_at is not a timestamp: {value!r}")


def _require_str(row: Mapping[str, Any], key: str) -> str:
    value = row.get(key)
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {type(value).__name__}")
    return value


def parse_client_row(row: Mapping[str, Any]) -> Client:
    """
    Map one untyped gateway row to a Client.
    Raises ValueError when the row does not have the declared shape.
    """
    if not isinstance(row, Mapping):
        raise ValueError(f"client row must be a mapping, got {type(row).__name__}")
    status = _require_str(row, "status")
    if status not in CLIENT_STATUSES:
        raise ValueError(f"unknown client status: {status!r}")
    notes = row.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValueError("notes must be a string or null")
    return Client(
        id=_require_str(row, "id"),
        name=_require_str(row, "name"),
        email=_require_str(row, "email"),
        phone=_require_str(row, "phone"),
        company=_require_str(row, "company"),
        status=status,
        notes=notes,
        created_at=_parse_timestamp(row.get("created_at")),
    )
