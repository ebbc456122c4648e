"""Tests for the status aggregator."""
import random
from datetime import datetime

import pytest

from app.crm.modules.clients.records import CLIENT_STATUSES, Client
from app.crm.modules.clients.stats import ClientStats, compute_stats, status_breakdown


def _client(status: str, n: int = 0) -> Client:
    return Client(
        id=f"c{n}",
        name=f"Client {n}",
        email=f"c{n}@example.com",
        phone="555-0100",
        company="Acme",
        status=status,
        notes=None,
        created_at=datetime(2026, 1, 1),
    )


def test_empty_list_is_all_zero():
    assert compute_stats([]) == ClientStats(total=0, active=0, inactive=0, pending=0)


def test_mixed_scenario():
    clients = [_client("active", 1), _client("pending", 2), _client("pending", 3), _client("inactive", 4)]
    stats = compute_stats(clients)
    assert stats.as_dict() == {"total": 4, "active": 1, "pending": 2, "inactive": 1}


@pytest.mark.parametrize("seed", range(5))
def test_total_is_sum_of_buckets_and_order_independent(seed):
    rng = random.Random(seed)
    clients = [_client(rng.choice(CLIENT_STATUSES), i) for i in range(rng.randint(0, 40))]
    stats = compute_stats(clients)
    assert stats.total == stats.active + stats.inactive + stats.pending
    assert stats.total == len(clients)

    shuffled = list(clients)
    rng.shuffle(shuffled)
    assert compute_stats(shuffled) == stats


def test_accepts_any_iterable():
    stats = compute_stats(_client("active", i) for i in range(3))
    assert stats.active == 3


def test_breakdown_uses_dashboard_order():
    stats = ClientStats(total=6, active=3, inactive=1, pending=2)
    assert status_breakdown(stats) == [
        ("active", "Active", 3),
        ("pending", "Pending", 2),
        ("inactive", "Inactive", 1),
    ]
