from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import asdict, dataclass

from app.crm.modules.clients.records import STATUS_LABELS, Client

# Dashboard order for the status breakdown.
BREAKDOWN_ORDER = ("active", "pending", "inactive")


@dataclass(frozen=True)
class ClientStats:
    total: int = 0
    active: int = 0
    inactive: int = 0
    pending: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def compute_stats(clients: Iterable[Client]) -> ClientStats:
    """Counts per status. `total` is the sum of the three buckets by construction."""
    counts = Counter(c.status for c in clients)
    active = counts.get("active", 0)
    inactive = counts.get("inactive", 0)
    pending = counts.get("pending", 0)
    return ClientStats(
        total=active + inactive + pending,
        active=active,
        inactive=inactive,
        pending=pending,
    )


def status_breakdown(stats: ClientStats) -> list[tuple[str, str, int]]:
    return [(status, STATUS_LABELS[status], getattr(stats, status)) for status in BREAKDOWN_ORDER]
