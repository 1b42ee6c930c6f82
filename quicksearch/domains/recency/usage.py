"""
Usage Validation - Checks client-reported usage events before they reach the ledger.

Events are accepted only if the timestamp is an integer inside
``[now - max_age, now + max_skew]`` and the reference points at an enabled
engine with a non-empty item payload.
"""

from __future__ import annotations

import time
from collections.abc import Collection

from quicksearch.config.errors import ValidationSkip
from quicksearch.domains.search.models import ItemRef

from .models import AcceptedUsage, UsageUpdate

__all__ = ["UsageValidator"]

DAY_IN_SECONDS = 24 * 3600


class UsageValidator:
    """Validates usage events against a clock-skew tolerant time window."""

    def __init__(self, max_age_days: int = 30, max_skew_seconds: int = 3600) -> None:
        self.max_age_seconds = max_age_days * DAY_IN_SECONDS
        self.max_skew_seconds = max_skew_seconds

    def validate(
        self,
        update: UsageUpdate,
        enabled_engines: Collection[str],
        now: int | None = None,
    ) -> AcceptedUsage:
        """
        Validate one usage event.

        Raises:
            ValidationSkip: If the event should be dropped
        """
        now = int(time.time()) if now is None else now

        ref = ItemRef.parse(update.serialized_ref)
        if ref is None:
            raise ValidationSkip("unparseable item reference")
        if ref.engine not in enabled_engines:
            raise ValidationSkip(f"engine '{ref.engine}' is not enabled")

        timestamp = update.timestamp
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValidationSkip("timestamp is not an integer")
        if timestamp < now - self.max_age_seconds or timestamp > now + self.max_skew_seconds:
            raise ValidationSkip("timestamp outside the accepted window")

        return AcceptedUsage(
            serialized_ref=update.serialized_ref,
            timestamp=timestamp,
            ref=ref,
        )
