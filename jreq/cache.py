"""Lazily populated issue-summary cache, keyed by issue key."""

import threading
from collections.abc import Callable

from jreq.models import IssueSummary

_MISSING = object()


class IssueCache:
    """Memoizes issue lookups for the lifetime of a provider.

    Absent issues are cached too, so a key known to be missing is never
    fetched twice. Entries are never evicted. Loader exceptions are not
    cached. Two threads racing on the same key may both call the loader;
    the first stored value wins.
    """

    def __init__(self) -> None:
        self._entries: dict[str, IssueSummary | None] = {}
        self._lock = threading.Lock()

    def get_or_load(self, key: str, loader: Callable[[str], IssueSummary | None]) -> IssueSummary | None:
        with self._lock:
            cached = self._entries.get(key, _MISSING)
        if cached is not _MISSING:
            return cached  # type: ignore[return-value]

        issue = loader(key)
        with self._lock:
            return self._entries.setdefault(key, issue)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
