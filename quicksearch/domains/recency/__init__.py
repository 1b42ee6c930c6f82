"""
Recency Domain - Recently used items per actor.

This domain handles:
- Bounded per-actor recency ledgers with buffered, max-merged writes
- The explicit ledger read cache
- Validation of client-reported usage events
"""

from .cache import LedgerCache
from .contracts import LedgerStore
from .ledger import RecencyLedger, check_actor_id
from .models import AcceptedUsage, UsageUpdate
from .usage import UsageValidator

__all__ = [
    # Contracts
    "LedgerStore",
    # Models
    "UsageUpdate",
    "AcceptedUsage",
    # Implementations
    "LedgerCache",
    "RecencyLedger",
    "UsageValidator",
    "check_actor_id",
]
