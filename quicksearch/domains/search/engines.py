"""
Search Engines - Concrete sources behind the quick search box.

Engines:
- dashboard: items discovered on administrative pages by the client crawler
- record: structured records, searched by title
- account: user accounts, searched by display name and login

Every engine over-fetches 2x before per-item filtering and never returns
duplicates by its own identity field.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable, Sequence
from typing import Any, TypeVar

from pydantic import ValidationError

from .contracts import AccessPolicy, AccountSource, DashboardItemSource, RecordSource
from .models import DashboardItem, DashboardItemOrigin, DashboardItemTarget, Entity

logger = logging.getLogger(__name__)

__all__ = [
    "ENGINE_ACCOUNTS",
    "ENGINE_DASHBOARD",
    "ENGINE_RECORDS",
    "AccountSearchEngine",
    "AllowAllPolicy",
    "DashboardSearchEngine",
    "RecordSearchEngine",
]

ENGINE_DASHBOARD = "dashboard"
ENGINE_RECORDS = "record"
ENGINE_ACCOUNTS = "account"

T = TypeVar("T")


class AllowAllPolicy:
    """Access policy for callers that were already authorized upstream."""

    def can_access(self, item: Entity) -> bool:
        return True


def _backfill(
    items: list[T],
    candidates: Iterable[T],
    desired: int,
    identity: Callable[[T], Hashable],
) -> list[T]:
    """Append candidates not already present until ``desired`` is reached."""
    seen = {identity(item) for item in items}
    for candidate in candidates:
        if len(items) >= desired:
            break
        key = identity(candidate)
        if key not in seen:
            items.append(candidate)
            seen.add(key)
    return items[:desired]


def _ref_ids(refs: Sequence[Any]) -> list[int]:
    """Extract unique positive integer IDs from ``{"id": ...}`` payloads."""
    ids: list[int] = []
    for ref in refs:
        if not isinstance(ref, dict):
            continue
        value = ref.get("id")
        if isinstance(value, bool):
            continue
        try:
            item_id = int(value)
        except (TypeError, ValueError):
            continue
        if item_id > 0 and item_id not in ids:
            ids.append(item_id)
    return ids


def _in_ref_order(items: list[Entity], ids: list[int]) -> list[Entity]:
    position = {item_id: index for index, item_id in enumerate(ids)}
    return sorted(items, key=lambda item: position.get(item.internal_id, len(ids)))


def _entity_id(item: Entity) -> int:
    return item.internal_id


def _dashboard_id(item: DashboardItem) -> str:
    return item.unique_id


class DashboardSearchEngine:
    """
    Searches crawled dashboard items on the pages the actor can currently see.

    Example:
        >>> engine = DashboardSearchEngine(repo, ["records", "settings"])
        >>> items = await engine.search_items("permalink")
    """

    def __init__(self, source: DashboardItemSource, visible_pages: Iterable[str]) -> None:
        """
        Initialize dashboard engine.

        Args:
            source: Storage with the discovered item index
            visible_pages: Source pages present in the actor's navigation
        """
        self._source = source
        self._visible_pages = list(dict.fromkeys(visible_pages))
        self._page_lookup = set(self._visible_pages)

    async def get_recent_items(
        self,
        refs: Sequence[Any],
        desired_results: int = 20,
    ) -> list[DashboardItem]:
        if desired_results < 1 or not self._visible_pages:
            return []

        keys: list[tuple[str, str]] = []
        for ref in refs:
            if not isinstance(ref, dict) or not ref.get("url") or not ref.get("id"):
                continue
            key = (str(ref["url"]), str(ref["id"]))
            if key[0] in self._page_lookup and key not in keys:
                keys.append(key)

        items: list[DashboardItem] = []
        if keys:
            rows = await self._source.get_dashboard_items(keys)
            by_key = {(row["source_page"], row["relative_id"]): row for row in rows}
            items = self._to_items(by_key[key] for key in keys if key in by_key)
            if len(items) >= desired_results:
                return items[:desired_results]

        rows = await self._source.search_dashboard_items(
            "", self._visible_pages, limit=desired_results
        )
        return _backfill(items, self._to_items(rows), desired_results, _dashboard_id)

    async def search_items(
        self,
        query: str,
        max_results: int = 100,
    ) -> list[DashboardItem]:
        query = query.strip()
        if not query or not self._visible_pages:
            return []

        rows = await self._source.search_dashboard_items(
            query, self._visible_pages, limit=max_results * 2
        )
        visible = (row for row in rows if row["source_page"] in self._page_lookup)
        return _backfill([], self._to_items(visible), max_results, _dashboard_id)

    def _to_items(self, rows: Iterable[dict[str, Any]]) -> list[DashboardItem]:
        items = []
        for row in rows:
            try:
                items.append(
                    DashboardItem(
                        label=row["label"],
                        location=row.get("location") or [],
                        origin=DashboardItemOrigin(
                            source_page=row["source_page"],
                            rendered_on_page=row.get("rendered_on_page"),
                        ),
                        target=DashboardItemTarget.model_validate(row.get("target") or {}),
                        relative_id=row["relative_id"],
                    )
                )
            except ValidationError as e:
                logger.debug("Skipping malformed dashboard item %s: %s", row.get("id"), e)
        return items


class RecordSearchEngine:
    """Searches structured records by title, most recently modified first."""

    def __init__(
        self,
        source: RecordSource,
        url_template: str,
        excluded_types: Iterable[str] = (),
        access_policy: AccessPolicy | None = None,
    ) -> None:
        self._source = source
        self._url_template = url_template
        self._excluded_types = list(excluded_types)
        self._policy = access_policy or AllowAllPolicy()

    async def get_recent_items(
        self,
        refs: Sequence[Any],
        desired_results: int = 20,
    ) -> list[Entity]:
        if desired_results < 1:
            return []

        items: list[Entity] = []
        ids = _ref_ids(refs)
        if ids:
            items = await self._search("", desired_results, ids)
            if len(items) >= desired_results:
                return items[:desired_results]

        recent = await self._search("", desired_results)
        return _backfill(items, recent, desired_results, _entity_id)

    async def search_items(self, query: str, max_results: int = 100) -> list[Entity]:
        query = query.strip()
        if not query:
            return []
        return await self._search(query, max_results)

    async def _search(
        self,
        query: str,
        max_results: int,
        ids: list[int] | None = None,
    ) -> list[Entity]:
        rows = await self._source.search_records(
            query,
            limit=len(ids) if ids else max_results * 2,
            excluded_types=self._excluded_types,
            ids=ids,
        )

        items = []
        for row in rows:
            content_type = row.get("content_type")
            entity = Entity(
                label=row.get("title") or f"(no title) #{row['id']}",
                location=[content_type.replace("_", " ").title()] if content_type else [],
                url=self._url_template.format(id=row["id"], content_type=content_type or ""),
                kind=ENGINE_RECORDS,
                internal_id=row["id"],
                content_type=content_type,
            )
            if self._policy.can_access(entity):
                items.append(entity)

        if ids:
            items = _in_ref_order(items, ids)
        return _backfill([], items, max_results, _entity_id)


class AccountSearchEngine:
    """Searches user accounts by display name and login."""

    def __init__(
        self,
        source: AccountSource,
        url_template: str,
        access_policy: AccessPolicy | None = None,
    ) -> None:
        self._source = source
        self._url_template = url_template
        self._policy = access_policy or AllowAllPolicy()

    async def get_recent_items(
        self,
        refs: Sequence[Any],
        desired_results: int = 20,
    ) -> list[Entity]:
        if desired_results < 1:
            return []

        items: list[Entity] = []
        ids = _ref_ids(refs)
        if ids:
            items = await self._search("", desired_results, ids)
            if len(items) >= desired_results:
                return items[:desired_results]

        general = await self._search("", desired_results)
        return _backfill(items, general, desired_results, _entity_id)

    async def search_items(self, query: str, max_results: int = 100) -> list[Entity]:
        query = query.strip()
        if not query:
            return []
        return await self._search(query, max_results)

    async def _search(
        self,
        query: str,
        max_results: int,
        ids: list[int] | None = None,
    ) -> list[Entity]:
        rows = await self._source.search_accounts(
            query,
            limit=len(ids) if ids else max_results * 2,
            ids=ids,
        )

        items = []
        for row in rows:
            entity = Entity(
                label=self._label(row),
                location=["Account"],
                url=self._url_template.format(id=row["id"]),
                kind=ENGINE_ACCOUNTS,
                internal_id=row["id"],
            )
            if self._policy.can_access(entity):
                items.append(entity)

        if ids:
            items = _in_ref_order(items, ids)
        return _backfill([], items, max_results, _entity_id)

    @staticmethod
    def _label(row: dict[str, Any]) -> str:
        if row.get("display_name") and row.get("login"):
            return f"{row['display_name']} ({row['login']})"
        if row.get("display_name"):
            return row["display_name"]
        if row.get("login"):
            return row["login"]
        return row.get("email") or f"#{row['id']}"
