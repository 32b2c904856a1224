"""Search-trend signals read from a search-console query export."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles

LOGGER = logging.getLogger(__name__)


class SearchTrendSource:
    """Return the top search queries, or None when no export is configured.

    The export is a JSON array of rows shaped like the search-console
    `searchanalytics.query` response: `{"keys": ["query"], "clicks": ..,
    "impressions": .., "ctr": .., "position": ..}`.
    """

    def __init__(self, path: Optional[str | Path] = None, row_limit: int = 50) -> None:
        configured = path or os.getenv("SEARCH_TRENDS_PATH")
        self.path = Path(configured) if configured else None
        self.row_limit = row_limit

    async def top_queries(self) -> Optional[List[Dict[str, Any]]]:
        if self.path is None:
            LOGGER.warning("Search trend export not configured, skipping trend signals.")
            return None
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as handle:
                rows = json.loads(await handle.read())
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.error("Search trend export %s unreadable: %s", self.path, exc)
            return None
        if not isinstance(rows, list):
            return []
        rows.sort(key=lambda row: row.get("clicks", 0), reverse=True)
        return [_normalize(row) for row in rows[: self.row_limit]]


def _normalize(row: Dict[str, Any]) -> Dict[str, Any]:
    keys = row.get("keys") or []
    return {
        "query": row.get("query") or (keys[0] if keys else ""),
        "clicks": row.get("clicks", 0),
        "impressions": row.get("impressions", 0),
    }
