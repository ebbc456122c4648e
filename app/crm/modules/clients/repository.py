"""
Client repository: the single owner of the in-memory client list.

The cache is never patched locally. Every successful mutation is followed by
a full refetch, so what callers see is always what the gateway holds.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from app.crm.modules.clients.gateway import ClientGateway, GatewayError
from app.crm.modules.clients.records import Client, ClientFields, parse_client_row

logger = logging.getLogger(__name__)


class ClientRepository:
    def __init__(self, gateway: ClientGateway):
        self._gateway = gateway
        self._clients: tuple[Client, ...] = ()

    @property
    def clients(self) -> tuple[Client, ...]:
        return self._clients

    def list(self) -> tuple[Client, ...]:
        """Fetch all visible clients, newest first, and replace the cache wholesale."""
        rows = self._gateway.select_all()
        try:
            clients = tuple(parse_client_row(row) for row in rows)
        except (ValueError, TypeError) as e:
            logger.error("Malformed client row from gateway: %s", e)
            raise GatewayError("malformed client row") from e
        self._clients = clients
        return clients

    def create(self, fields: ClientFields) -> None:
        self._gateway.insert(fields.as_row())
        self.list()

    def update(self, client_id: str, fields: ClientFields) -> None:
        """Replace every mutable field. An unknown id matches zero rows and is not an error."""
        matched = self._gateway.update(client_id, fields.as_row())
        if not matched:
            logger.info("update matched no client (id=%s)", client_id)
        self.list()

    def delete(self, client_id: str, confirm: Callable[[], bool]) -> bool:
        """
        Delete after `confirm()` agrees. Returns False (and touches nothing)
        when the confirmation is declined. Deleting a missing id is a no-op.
        """
        if not confirm():
            return False
        self._gateway.delete(client_id)
        self.list()
        return True
