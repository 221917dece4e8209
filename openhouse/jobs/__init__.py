"""Background job modules for periodic gift tasks."""

from openhouse.jobs.reconcile_gifts import reconcile_gifts
from openhouse.jobs.settle_pending_gifts import settle_pending_gifts

__all__ = [
    "reconcile_gifts",
    "settle_pending_gifts",
]
