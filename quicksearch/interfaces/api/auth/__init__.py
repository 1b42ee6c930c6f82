"""
Authentication - Actor resolution for personalized endpoints.

Flow:
    Admin application: authenticate user -> forward X-Actor-Id
    Backend: parse header -> ActorContext for ledger reads/writes
"""

from .deps import ActorContext, get_current_actor

__all__ = [
    "get_current_actor",
    "ActorContext",
]
