from __future__ import annotations

import logging
from collections.abc import Callable

from flask import g

from app.crm.db import db_session
from app.crm.models import User
from app.crm.modules.clients.gateway import ClientGateway, GatewayError, SqlClientGateway
from app.crm.modules.clients.repository import ClientRepository
from app.crm.modules.clients.stats import ClientStats, compute_stats
from app.crm.session_events import SessionSubscription, publish_session, subscribe

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[User], ClientGateway]


class CrmWorkspace:
    """
    Per-request view state: holds the client repository while a session is
    present, drops it when the session goes away.
    """

    def __init__(self, gateway_factory: GatewayFactory):
        self._gateway_factory = gateway_factory
        self.repository: ClientRepository | None = None
        self.load_error: str | None = None
        self._subscription: SessionSubscription | None = None

    def open(self, sender: object) -> "CrmWorkspace":
        self._subscription = subscribe(self.on_session_changed, sender)
        return self

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    @property
    def is_open(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def on_session_changed(self, _sender: object, user: User | None = None) -> None:
        if user is None:
            self.repository = None
            return
        self.repository = ClientRepository(self._gateway_factory(user))
        try:
            self.repository.list()
            self.load_error = None
        except GatewayError as e:
            logger.error("Initial client fetch failed (user_id=%s): %s", user.id, e)
            self.load_error = "Error loading clients."

    @property
    def clients(self):
        return self.repository.clients if self.repository else ()

    @property
    def stats(self) -> ClientStats:
        # Recomputed on every access so it always matches the cached list.
        return compute_stats(self.clients)


def open_workspace(gateway_factory: GatewayFactory) -> CrmWorkspace:
    """Attach a workspace to the current request and announce the current session to it."""
    sender = g._get_current_object()
    ws = CrmWorkspace(gateway_factory).open(sender)
    g.crm_workspace = ws
    publish_session(sender, getattr(g, "current_user", None))
    return ws


def current_workspace() -> CrmWorkspace | None:
    return getattr(g, "crm_workspace", None)


def sql_gateway_for(user: User) -> ClientGateway:
    return SqlClientGateway(db_session(), user)


def ensure_workspace() -> CrmWorkspace:
    ws = current_workspace()
    if ws is None:
        ws = open_workspace(sql_gateway_for)
    return ws


def close_workspace(_exc: BaseException | None) -> None:
    ws: CrmWorkspace | None = getattr(g, "crm_workspace", None)
    if ws is not None:
        ws.close()
        g.crm_workspace = None
