"""
Search and ordering over catalog snapshots.

Fuzzy matching tolerates small typos ("gmial" finds "gmail") without pulling
in unrelated labels. Exact filters (tag, service type) are applied after the
fuzzy pass and always narrow the result (AND). Ordering is a natural,
numeric-aware collation: "Work2" sorts before "Work10".

All functions are pure and read-only over the models they are given.

Usage:
    from vaultkeeper.catalog.search import SortOrder, search_accounts

    hits = search_accounts(vault.accounts, "work", tag="farm", sort=SortOrder.ASC)
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable, Sequence
from enum import StrEnum

from rapidfuzz import fuzz, utils

from vaultkeeper.catalog.models import Account, Service, ServiceType
from vaultkeeper.config import get_config

_CHUNK_RE = re.compile(r"(\d+)")


class SortOrder(StrEnum):
    NONE = "none"
    ASC = "asc"
    DESC = "desc"

    def next(self) -> SortOrder:
        """Toggle cycle: none → asc → desc → none."""
        return {
            SortOrder.NONE: SortOrder.ASC,
            SortOrder.ASC: SortOrder.DESC,
            SortOrder.DESC: SortOrder.NONE,
        }[self]


class SortKey(StrEnum):
    NAME = "name"
    TYPE = "type"


# ─── Natural sort ────────────────────────────────────────────────────────


def _fold(text: str) -> str:
    """Case- and accent-insensitive form of ``text``."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def natural_key(text: str) -> tuple[tuple[int, int | str], ...]:
    """Sort key that compares embedded digit runs by numeric value.

    Digit chunks sort before text chunks at the same position, so keys never
    compare an int with a str.
    """
    parts: list[tuple[int, int | str]] = []
    for chunk in _CHUNK_RE.split(_fold(text)):
        if not chunk:
            continue
        if chunk.isdecimal():
            parts.append((0, int(chunk)))
        else:
            parts.append((1, chunk))
    return tuple(parts)


def natural_compare(a: str, b: str) -> int:
    """Three-way natural comparison: negative, zero or positive."""
    ka, kb = natural_key(a), natural_key(b)
    return (ka > kb) - (ka < kb)


def _sorted_by(items: list, label_of, order: SortOrder) -> list:
    if order == SortOrder.NONE:
        return items
    return sorted(items, key=lambda x: natural_key(label_of(x)), reverse=order == SortOrder.DESC)


# ─── Fuzzy matching ──────────────────────────────────────────────────────


def fuzzy_score(query: str, text: str) -> float:
    """Normalized edit distance of ``query`` against its best window in ``text``.

    0.0 is an exact (sub)match, 1.0 shares nothing.
    """
    if not query or not text:
        return 1.0
    return 1.0 - fuzz.partial_ratio(query, text, processor=utils.default_process) / 100.0


def _best_score(query: str, texts: Iterable[str]) -> float:
    return min((fuzzy_score(query, t) for t in texts), default=1.0)


def _fuzzy_rank(items: Sequence, query: str, texts_of, threshold: float) -> list:
    """Items scoring within ``threshold``, best first. Ties keep input order."""
    scored = []
    for index, item in enumerate(items):
        score = _best_score(query, texts_of(item))
        if score <= threshold:
            scored.append((score, index, item))
    scored.sort(key=lambda entry: (entry[0], entry[1]))
    return [item for _, _, item in scored]


def _account_texts(account: Account) -> list[str]:
    return [account.label, account.notes, *account.tags]


def _service_texts(service: Service) -> list[str]:
    return [service.label, *service.tags]


# ─── Public search ───────────────────────────────────────────────────────


def all_tags(items: Iterable[Account | Service]) -> list[str]:
    """Distinct tags across ``items`` in first-seen order."""
    seen: dict[str, None] = {}
    for item in items:
        for tag in item.tags:
            seen.setdefault(tag, None)
    return list(seen)


def search_accounts(
    accounts: Sequence[Account],
    query: str = "",
    *,
    tag: str | None = None,
    sort: SortOrder = SortOrder.NONE,
    threshold: float | None = None,
) -> list[Account]:
    """Fuzzy search over label, notes and tags, then tag filter, then sort."""
    if threshold is None:
        threshold = get_config().fuzzy_threshold

    query = query.strip()
    results = list(accounts)
    if query:
        results = _fuzzy_rank(results, query, _account_texts, threshold)
    if tag:
        results = [a for a in results if tag in a.tags]
    return _sorted_by(results, lambda a: a.label, sort)


def search_services(
    services: Sequence[Service],
    query: str = "",
    *,
    type_id: str | None = None,
    tag: str | None = None,
    sort: SortOrder = SortOrder.NONE,
    sort_by: SortKey = SortKey.NAME,
    service_types: Sequence[ServiceType] = (),
    threshold: float | None = None,
) -> list[Service]:
    """Fuzzy search over label and tags, then type/tag filters, then sort.

    Sorting by type uses the type's display name; services whose type no
    longer exists sort as an empty name.
    """
    if threshold is None:
        threshold = get_config().fuzzy_threshold

    query = query.strip()
    results = list(services)
    if query:
        results = _fuzzy_rank(results, query, _service_texts, threshold)
    if type_id:
        results = [s for s in results if s.service_type_id == type_id]
    if tag:
        results = [s for s in results if tag in s.tags]

    if sort_by == SortKey.TYPE:
        names = {st.id: st.name for st in service_types}
        return _sorted_by(results, lambda s: names.get(s.service_type_id, ""), sort)
    return _sorted_by(results, lambda s: s.label, sort)
