from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from app.crm.audit import record_event
from app.crm.modules.clients.models import ClientRecord

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.crm.models import User


logger = logging.getLogger(__name__)

MUTABLE_COLUMNS = ("name", "email", "phone", "company", "status", "notes")


class GatewayError(RuntimeError):
    pass


class ClientGateway:
    """
    Row-level CRUD over the `clients` table.

    Rows cross this boundary as plain dicts; visibility scoping is the
    gateway's job, never the caller's.
    """

    def select_all(self) -> list[dict[str, Any]]:
        raise NotImplementedError

    def insert(self, row: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def update(self, client_id: str, row: dict[str, Any]) -> int:
        raise NotImplementedError

    def delete(self, client_id: str) -> int:
        raise NotImplementedError


def _record_to_row(c: ClientRecord) -> dict[str, Any]:
    return {
        "id": c.id,
        "name": c.name,
        "email": c.email,
        "phone": c.phone,
        "company": c.company,
        "status": c.status,
        "notes": c.notes,
        "created_at": c.created_at,
    }


def _mutable_values(row: dict[str, Any]) -> dict[str, Any]:
    return {k: row.get(k) for k in MUTABLE_COLUMNS}


class SqlClientGateway(ClientGateway):
    """
    SQLAlchemy implementation scoped to one owner.
    Every mutation commits on its own (audit event in the same transaction);
    any database error is rolled back and surfaced as GatewayError.
    """

    def __init__(self, s: "Session", owner: "User"):
        self.s = s
        self.owner = owner

    def _scoped(self):
        return self.s.query(ClientRecord).filter(ClientRecord.owner_user_id == self.owner.id)

    def _fail(self, op: str, e: Exception) -> GatewayError:
        self.s.rollback()
        logger.error("clients gateway %s failed (owner_user_id=%s): %s", op, self.owner.id, e)
        return GatewayError(f"clients {op} failed")

    def select_all(self) -> list[dict[str, Any]]:
        try:
            records = self._scoped().order_by(ClientRecord.created_at.desc()).all()
        except SQLAlchemyError as e:
            raise self._fail("select", e) from e
        return [_record_to_row(c) for c in records]

    def insert(self, row: dict[str, Any]) -> dict[str, Any]:
        try:
            record = ClientRecord(owner_user_id=self.owner.id, **_mutable_values(row))
            self.s.add(record)
            self.s.flush()
            record_event(
                self.s,
                actor=self.owner,
                action="client.create",
                entity_type="Client",
                entity_id=record.id,
                metadata={"name": record.name, "status": record.status},
            )
            self.s.commit()
        except SQLAlchemyError as e:
            raise self._fail("insert", e) from e
        return _record_to_row(record)

    def update(self, client_id: str, row: dict[str, Any]) -> int:
        values = _mutable_values(row)
        try:
            matched = (
                self._scoped()
                .filter(ClientRecord.id == client_id)
                .update(values, synchronize_session=False)
            )
            if matched:
                record_event(
                    self.s,
                    actor=self.owner,
                    action="client.edit",
                    entity_type="Client",
                    entity_id=client_id,
                    metadata={"name": values["name"], "status": values["status"]},
                )
            self.s.commit()
        except SQLAlchemyError as e:
            raise self._fail("update", e) from e
        return matched

    def delete(self, client_id: str) -> int:
        try:
            matched = (
                self._scoped()
                .filter(ClientRecord.id == client_id)
                .delete(synchronize_session=False)
            )
            if matched:
                record_event(
                    self.s,
                    actor=self.owner,
                    action="client.delete",
                    entity_type="Client",
                    entity_id=client_id,
                )
            self.s.commit()
        except SQLAlchemyError as e:
            raise self._fail("delete", e) from e
        return matched
