"""Tests for session-change subscriptions and the per-request workspace."""
from datetime import datetime

import pytest

from app.crm.models import User
from app.crm.modules.clients.gateway import ClientGateway, GatewayError
from app.crm.modules.clients.workspace import CrmWorkspace
from app.crm.session_events import publish_session, subscribe


class Sender:
    """Stand-in for the request `g` object."""


class StaticGateway(ClientGateway):
    def __init__(self, rows, fail=False):
        self.rows = rows
        self.fail = fail
        self.selects = 0

    def select_all(self):
        self.selects += 1
        if self.fail:
            raise GatewayError("down")
        return list(self.rows)


def _row(status):
    return {
        "id": f"id-{status}",
        "name": "N",
        "email": "e@example.com",
        "phone": "1",
        "company": "C",
        "status": status,
        "notes": None,
        "created_at": datetime(2026, 1, 1),
    }


def _user():
    return User(id=7, email="ana@example.com", password_hash="x", is_active=True)


def test_subscription_delivers_until_unsubscribed():
    sender = Sender()
    seen = []

    def receiver(_sender, user=None):
        seen.append(user)

    sub = subscribe(receiver, sender)
    user = _user()
    publish_session(sender, user)
    sub.unsubscribe()
    publish_session(sender, None)
    sub.unsubscribe()  # idempotent

    assert seen == [user]
    assert sub.active is False


def test_subscription_context_manager_releases():
    sender = Sender()
    seen = []
    with subscribe(lambda _s, user=None: seen.append(user), sender):
        publish_session(sender, None)
    publish_session(sender, None)
    assert seen == [None]


def test_other_senders_are_not_delivered():
    mine, other = Sender(), Sender()
    seen = []
    with subscribe(lambda _s, user=None: seen.append(user), mine):
        publish_session(other, _user())
    assert seen == []


def test_workspace_fetches_on_present_session_and_drops_on_absent():
    gw = StaticGateway([_row("active"), _row("pending")])
    sender = Sender()
    ws = CrmWorkspace(lambda user: gw).open(sender)

    publish_session(sender, _user())
    assert gw.selects == 1
    assert ws.stats.total == 2

    publish_session(sender, None)
    assert ws.repository is None
    assert ws.clients == ()
    assert ws.stats.total == 0

    ws.close()
    assert not ws.is_open
    publish_session(sender, _user())
    assert ws.repository is None


def test_workspace_initial_fetch_failure_is_reported_not_raised():
    gw = StaticGateway([], fail=True)
    sender = Sender()
    ws = CrmWorkspace(lambda user: gw).open(sender)

    publish_session(sender, _user())

    assert ws.load_error == "Error loading clients."
    assert ws.clients == ()
    ws.close()


@pytest.mark.parametrize("statuses", [[], ["active", "inactive", "pending"]])
def test_workspace_stats_follow_cache(statuses):
    gw = StaticGateway([_row(s) for s in statuses])
    sender = Sender()
    ws = CrmWorkspace(lambda user: gw).open(sender)
    publish_session(sender, _user())
    assert ws.stats.total == len(statuses)
    ws.close()
