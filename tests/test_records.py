"""Tests for client payload validation and row parsing."""
from datetime import datetime

import pytest

from app.crm.modules.clients.records import (
    ClientValidationError,
    fields_from_payload,
    parse_client_row,
    validate_client_payload,
)


def _payload(**overrides):
    p = {
        "name": " Ana Souza ",
        "email": "ana@example.com",
        "phone": "(11) 99999-0000",
        "company": "Tech Solutions",
        "status": "pending",
        "notes": "",
    }
    p.update(overrides)
    return p


def test_valid_payload_is_trimmed():
    fields = fields_from_payload(_payload())
    assert fields.name == "Ana Souza"
    assert fields.status == "pending"
    assert fields.notes is None


def test_status_defaults_to_active():
    assert fields_from_payload(_payload(status="")).status == "active"
    assert fields_from_payload(_payload(status=None)).status == "active"


def test_unknown_status_rejected():
    errors = validate_client_payload(_payload(status="archived"))
    assert any("Invalid status" in e for e in errors)
    with pytest.raises(ClientValidationError):
        fields_from_payload(_payload(status="archived"))


def test_required_fields_reported_together():
    with pytest.raises(ClientValidationError) as exc:
        fields_from_payload(_payload(name="", phone="  "))
    assert exc.value.errors == ["Name is required.", "Phone is required."]


def test_parse_row_accepts_iso_timestamps():
    c = parse_client_row(
        {
            "id": "abc",
            "name": "Ana",
            "email": "ana@example.com",
            "phone": "1",
            "company": "X",
            "status": "active",
            "notes": None,
            "created_at": "2026-03-01T10:00:00Z",
        }
    )
    assert c.created_at.year == 2026
    assert c.initials == "AN"


@pytest.mark.parametrize(
    "row",
    [
        None,
        {"id": "a"},
        {"id": "a", "name": "A", "email": "e", "phone": "p", "company": "c", "status": "gone", "created_at": datetime(2026, 1, 1)},
        {"id": "a", "name": "A", "email": "e", "phone": "p", "company": "c", "status": "active", "notes": 3, "created_at": datetime(2026, 1, 1)},
        {"id": "a", "name": "A", "email": "e", "phone": "p", "company": "c", "status": "active", "created_at": None},
    ],
)
def test_parse_row_rejects_bad_shapes(row):
    with pytest.raises(ValueError):
        parse_client_row(row)
