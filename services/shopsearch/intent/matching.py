"""
Catalog-name matching for agent responses and raw queries.

Pure functions: no I/O, no logging side effects beyond warnings. Every name
returned is a verbatim catalog entry, so hallucinated labels never leak out.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

logger = logging.getLogger(__name__)


def _dedupe_limit(names: list[str], limit: int) -> list[str]:
    seen: dict[str, None] = {}
    for name in names:
        seen.setdefault(name, None)
    return list(seen)[:limit]


def _json_span(text: str) -> str | None:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def scan_catalog(text: str, catalog: Sequence[str], limit: int) -> list[str]:
    """Catalog entries appearing in `text` (case-insensitive), catalog order."""
    haystack = text.lower()
    hits = [entry for entry in catalog if entry and entry.lower() in haystack]
    return _dedupe_limit(hits, limit)


def substring_match(query: str, catalog: Sequence[str], limit: int) -> list[str]:
    """Entries the query contains, or that contain the query. Catalog order."""
    needle = query.strip().lower()
    if not needle:
        return []
    hits = [
        entry for entry in catalog
        if entry and (entry.lower() in needle or needle in entry.lower())
    ]
    return _dedupe_limit(hits, limit)


def match_catalog_names(
    response_text: str,
    catalog: Sequence[str],
    key: str,
    limit: int,
) -> list[str]:
    """
    Extract catalog names from an agent response.

    1. Take the span from the first '{' to the last '}' and parse it as JSON.
       Each string under `key` is matched case-insensitively and exactly
       against the catalog; the catalog's spelling is returned, agent order.
    2. No span, or the span is not valid JSON: scan the raw response text
       for catalog entries instead (catalog order).

    Result is de-duplicated and truncated to `limit`.
    """
    if not response_text or not catalog:
        return []

    span = _json_span(response_text)
    if span is None:
        return scan_catalog(response_text, catalog, limit)

    try:
        data = json.loads(span)
    except json.JSONDecodeError:
        logger.warning("Agent returned malformed JSON: %r", span[:100])
        return scan_catalog(response_text, catalog, limit)

    values = data.get(key) if isinstance(data, dict) else None
    if not isinstance(values, list):
        return []

    canonical = {entry.lower(): entry for entry in reversed(catalog) if entry}
    matched = [
        canonical[value.strip().lower()]
        for value in values
        if isinstance(value, str) and value.strip().lower() in canonical
    ]
    return _dedupe_limit(matched, limit)
