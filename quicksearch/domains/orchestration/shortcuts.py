"""
Predefined Shortcuts - Static filter links appended to the preload.

The crawler never sees list filters such as "Draft Records", so they are
generated here for the pages that are visible to the actor.
"""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urlencode

from quicksearch.domains.search.models import (
    DashboardItem,
    DashboardItemOrigin,
    DashboardItemTarget,
)

__all__ = ["PREDEFINED_SHORTCUTS", "generate_shortcuts"]

# source page -> [(label, query parameter, value)]
PREDEFINED_SHORTCUTS: dict[str, list[tuple[str, str, str]]] = {
    "records": [
        ("Published Records", "status", "publish"),
        ("Draft Records", "status", "draft"),
        ("Pending Records", "status", "pending"),
        ("Private Records", "status", "private"),
        ("Trashed Records", "status", "trash"),
    ],
    "accounts": [
        ("Administrators", "role", "administrator"),
        ("Editors", "role", "editor"),
        ("Suspended Accounts", "status", "suspended"),
    ],
}


def generate_shortcuts(visible_pages: Iterable[str]) -> list[DashboardItem]:
    """
    Build filter shortcuts for known pages, each page at most once.

    Example:
        >>> [item.label for item in generate_shortcuts(["records"])][:1]
        ['Published Records']
    """
    shortcuts: list[DashboardItem] = []
    for page in dict.fromkeys(visible_pages):
        for label, param, value in PREDEFINED_SHORTCUTS.get(page, []):
            url = f"{page}?{urlencode({param: value})}"
            shortcuts.append(
                DashboardItem(
                    label=label,
                    origin=DashboardItemOrigin(source_page=page),
                    target=DashboardItemTarget(type="filter", url=url),
                    relative_id=f"f:url={url}",
                )
            )
    return shortcuts
