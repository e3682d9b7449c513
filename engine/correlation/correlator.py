"""
Stream-based L2/L3 correlation engine. Network layer (address) and link layer (MAC) log elements sharing a session id are joined inside a sliding time window; elements that never find their counterpart are released once they age out.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from engine.correlation.events import (
    LogRecord,
    PendingEntry,
    TIME_FIELD,
    classify,
    is_correlatable,
    merge_mac_fields,
    parse_timestamp,
)
from engine.correlation.eviction import EvictionPolicy
from engine.correlation.store import CorrelationStore
from engine.enums import LogType

log = logging.getLogger(__name__)


@dataclass
class CorrelationStats:
    aged_out: int = 0
    db_water_mark: int = 0
    db_inserts: int = 0
    discarded_events: int = 0


@dataclass
class UpdateResult:
    non_correlated: List[PendingEntry] = field(default_factory=list)
    correlated: Optional[PendingEntry] = None


@dataclass
class ProcessResult:
    plain: List[LogRecord] = field(default_factory=list)
    correlated: Optional[LogRecord] = None


class _Buckets:
    """Per-source accumulation of plain output, in first-seen order."""

    def __init__(self) -> None:
        self._buckets: Dict[str, Tuple[Optional[LogType], List[Any]]] = {}

    def open(self, source: str, log_type: Optional[LogType]) -> List[Any]:
        if source not in self._buckets:
            self._buckets[source] = (log_type, [])
        return self._buckets[source][1]

    def records(self) -> List[LogRecord]:
        return [
            LogRecord(source=source, log_type=log_type, message=message)
            for source, (log_type, message) in self._buckets.items()
        ]


class MacCorrelator:
    def __init__(
        self,
        ageout_seconds: int = 120,
        absolute_time: bool = False,
        gc_multiplier: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ageout_seconds = int(ageout_seconds)
        self.policy = EvictionPolicy(ageout_seconds, absolute_time, gc_multiplier, clock=clock)
        self.store = CorrelationStore()
        self.last_ts = 0
        self.stats = CorrelationStats()

    @classmethod
    def from_settings(cls, settings: Any) -> MacCorrelator:
        return cls(
            ageout_seconds=settings.correlation_ageout_seconds,
            absolute_time=settings.correlation_absolute_time,
            gc_multiplier=settings.correlation_gc_multiplier,
        )

    def snapshot(self) -> CorrelationStats:
        return replace(self.stats)

    def _collect(self) -> List[PendingEntry]:
        collected = self.policy.run(self.store, self.last_ts)
        if not collected:
            return []
        self.stats.aged_out += len(collected)
        return collected

    def update(self, entry: PendingEntry) -> UpdateResult:
        if len(self.store) > self.stats.db_water_mark:
            self.stats.db_water_mark = len(self.store)
        if entry.timestamp > self.last_ts:
            self.last_ts = entry.timestamp

        collected = self._collect()

        # already past the window: never buffered
        if entry.timestamp < self.last_ts - self.ageout_seconds:
            return UpdateResult(non_correlated=collected + [entry])

        matched = self.store.find(entry.session_id)
        if matched is None:
            self.store.insert(entry)
            self.stats.db_inserts += 1
            return UpdateResult(non_correlated=collected)

        if matched.shape.is_l2 and entry.shape.is_l3:
            entry.element = merge_mac_fields(entry.element, matched.element)
            self.store.remove_matching(matched.session_id)
            return UpdateResult(non_correlated=collected + [matched], correlated=entry)

        if matched.shape.is_l3 and entry.shape.is_l2:
            matched.element = merge_mac_fields(matched.element, entry.element)
            self.store.remove_matching(matched.session_id)
            return UpdateResult(non_correlated=collected + [entry], correlated=matched)

        # same-layer collision: the buffered half keeps waiting
        return UpdateResult(non_correlated=collected + [entry])

    def process(self, record: LogRecord) -> ProcessResult:
        if record.message is None:
            return ProcessResult(plain=[record])

        buckets = _Buckets()
        own = buckets.open(record.source, record.log_type)
        correlated: List[Dict[str, Any]] = []

        for element in record.message:
            ts = parse_timestamp(element[TIME_FIELD]) if is_correlatable(element) else None
            if ts is None:
                self.stats.discarded_events += 1
                own.append(element)
                continue
            result = self.update(PendingEntry(
                timestamp=ts,
                element=element,
                shape=classify(element),
                source=record.source,
                log_type=record.log_type,
            ))
            for item in result.non_correlated:
                buckets.open(item.source, item.log_type).append(item.element)
            if result.correlated is not None:
                correlated.append(result.correlated.element)

        if correlated:
            log.debug("Correlated %d events from %s", len(correlated), record.source)
            return ProcessResult(
                plain=buckets.records(),
                correlated=LogRecord(source=record.source, log_type=record.log_type, message=correlated),
            )
        return ProcessResult(plain=buckets.records())

    def flush(self) -> ProcessResult:
        buckets = _Buckets()
        drained = self.store.drain()
        for entry in drained:
            buckets.open(entry.source, entry.log_type).append(entry.element)
        if drained:
            log.debug("Flushed %d buffered entries", len(drained))
        return ProcessResult(plain=buckets.records())
