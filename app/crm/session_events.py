"""
Session-change notifications.

Receivers get the signed-in User (or None once the session is gone). A
subscription is an explicit handle: whoever subscribes is expected to
unsubscribe, usually on app-context teardown.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from blinker import Namespace

from app.crm.models import User

_signals = Namespace()

session_changed = _signals.signal("session-changed")

SessionReceiver = Callable[..., Any]


class SessionSubscription:
    def __init__(self, receiver: SessionReceiver, sender: Any):
        self._receiver = receiver
        self._sender = sender
        self.active = True
        session_changed.connect(receiver, sender=sender, weak=False)

    def unsubscribe(self) -> None:
        if not self.active:
            return
        session_changed.disconnect(self._receiver, sender=self._sender)
        self.active = False

    def __enter__(self) -> "SessionSubscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unsubscribe()


def subscribe(receiver: SessionReceiver, sender: Any) -> SessionSubscription:
    """
    Deliver session changes published by `sender` to `receiver(sender, user=...)`.
    Inside a request the sender is the request's `g`, which keeps one user's
    sign-in from reaching another request's receivers.
    """
    return SessionSubscription(receiver, sender)


def publish_session(sender: Any, user: User | None) -> None:
    session_changed.send(sender, user=user)
