"""
In-memory buffer of log elements waiting for their L2/L3 counterpart, ordered for time-based eviction and indexed by session id for matching.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from bisect import bisect_left
from operator import attrgetter
from typing import Any, Dict, Iterator, List, Optional

from engine.correlation.events import PendingEntry

_by_timestamp = attrgetter("timestamp")


class CorrelationStore:
    def __init__(self) -> None:
        self._entries: List[PendingEntry] = []
        self._index: Dict[Any, PendingEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PendingEntry]:
        return iter(list(self._entries))

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._index

    def insert(self, entry: PendingEntry) -> None:
        if entry.session_id in self._index:
            raise ValueError(f"session {entry.session_id!r} already buffered")
        self._entries.append(entry)
        self._index[entry.session_id] = entry

    def find(self, session_id: Any) -> Optional[PendingEntry]:
        return self._index.get(session_id)

    def remove_matching(self, session_id: Any) -> Optional[PendingEntry]:
        entry = self._index.pop(session_id, None)
        if entry is None:
            return None
        for pos, candidate in enumerate(self._entries):
            if candidate is entry:
                del self._entries[pos]
                break
        return entry

    def evict_older_than(self, cutoff: int) -> List[PendingEntry]:
        """Remove every entry with ``timestamp < cutoff``.

        The buffer is left sorted by timestamp (stable for equal timestamps)
        and the evicted prefix is returned in that same ascending order.
        """
        self._entries.sort(key=_by_timestamp)
        boundary = bisect_left(self._entries, cutoff, key=_by_timestamp)
        if not boundary:
            return []
        evicted = self._entries[:boundary]
        del self._entries[:boundary]
        for entry in evicted:
            self._index.pop(entry.session_id, None)
        return evicted

    def drain(self) -> List[PendingEntry]:
        drained = self._entries
        self._entries = []
        self._index = {}
        return drained
