"""
Topic router delivering log batches to subscribers: plain events, L2/L3 correlated events and derived pcap bodies, with optional stream correlation in between.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from engine.correlation.correlator import MacCorrelator
from engine.correlation.events import L2Correlation, LogRecord
from engine.enums import Topic
from engine.pcap import pcaptize

log = logging.getLogger(__name__)

Subscriber = Callable[[LogRecord], Any]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CorrelationStatsView(_CamelModel):
    aged_out: int = 0
    db_water_mark: int = 0
    db_inserts: int = 0
    discarded_events: int = 0


class EmitterStats(_CamelModel):
    events_emitted: int = 0
    pcaps_emitted: int = 0
    correlation_emitted: int = 0
    api_transactions: int = 0
    correlation_stats: Optional[CorrelationStatsView] = None


class _Subscribers:
    def __init__(self, allow_dup: bool) -> None:
        self.allow_dup = allow_dup
        self._items: List[Subscriber] = []

    def __bool__(self) -> bool:
        return bool(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def add(self, subscriber: Subscriber) -> bool:
        if not self.allow_dup and subscriber in self._items:
            return False
        self._items.append(subscriber)
        return True

    def remove(self, subscriber: Subscriber) -> bool:
        try:
            self._items.remove(subscriber)
        except ValueError:
            return False
        return True

    def deliver(self, topic: Topic, record: LogRecord) -> None:
        for subscriber in list(self._items):
            try:
                subscriber(record)
            except Exception:
                log.exception("Subscriber %r failed on %s topic (source=%s)", subscriber, topic.value, record.source)


class EventRouter:
    def __init__(self, correlator: Optional[MacCorrelator] = None, allow_dup: bool = False) -> None:
        self.correlator = correlator
        self._topics: Dict[Topic, _Subscribers] = {topic: _Subscribers(allow_dup) for topic in Topic}
        self.events_emitted = 0
        self.pcaps_emitted = 0
        self.correlation_emitted = 0

    @classmethod
    def from_settings(cls, settings: Any) -> EventRouter:
        correlator = MacCorrelator.from_settings(settings) if settings.correlation_enabled else None
        return cls(correlator=correlator, allow_dup=settings.allow_dup)

    @property
    def correlation_enabled(self) -> bool:
        return self.correlator is not None

    def register(self, topic: Topic, subscriber: Subscriber) -> bool:
        added = self._topics[topic].add(subscriber)
        if not added:
            log.info("Subscriber already registered on %s topic and duplicates are not allowed", topic.value)
        return added

    def unregister(self, topic: Topic, subscriber: Subscriber) -> bool:
        return self._topics[topic].remove(subscriber)

    def has_subscribers(self, topic: Topic) -> bool:
        return bool(self._topics[topic])

    def register_event_subscriber(self, subscriber: Subscriber) -> bool:
        return self.register(Topic.event, subscriber)

    def unregister_event_subscriber(self, subscriber: Subscriber) -> bool:
        return self.unregister(Topic.event, subscriber)

    def register_pcap_subscriber(self, subscriber: Subscriber) -> bool:
        return self.register(Topic.pcap, subscriber)

    def unregister_pcap_subscriber(self, subscriber: Subscriber) -> bool:
        return self.unregister(Topic.pcap, subscriber)

    def register_correlation_subscriber(self, subscriber: Subscriber) -> bool:
        return self.register(Topic.correlation, subscriber)

    def unregister_correlation_subscriber(self, subscriber: Subscriber) -> bool:
        return self.unregister(Topic.correlation, subscriber)

    def emit(self, record: LogRecord) -> None:
        if self.has_subscribers(Topic.pcap):
            self._emit_pcap(record)

        plain = [record]
        correlated: Optional[LogRecord] = None
        if self.correlator is not None:
            result = self.correlator.process(record)
            plain, correlated = result.plain, result.correlated
            if correlated is not None and self.has_subscribers(Topic.correlation):
                self._emit_correlation(correlated)

        if self.has_subscribers(Topic.event):
            if correlated is not None:
                self._emit_event(correlated)
            for item in plain:
                self._emit_event(item)

    def flush_correlation(self) -> None:
        if self.correlator is None:
            return
        result = self.correlator.flush()
        if self.has_subscribers(Topic.event):
            for item in result.plain:
                self._emit_event(item)
        log.info("Flushed the L2/L3 correlation buffer (%d sources)", len(result.plain))

    def _emit_event(self, record: LogRecord) -> None:
        if record.message:
            self.events_emitted += len(record.message)
        self._topics[Topic.event].deliver(Topic.event, record)

    def _emit_pcap(self, record: LogRecord) -> None:
        subscribers = self._topics[Topic.pcap]
        if record.message is None:
            subscribers.deliver(Topic.pcap, LogRecord(source=record.source, log_type=record.log_type))
            return
        for element in record.message:
            body = pcaptize(element)
            if body is None:
                continue
            self.pcaps_emitted += 1
            subscribers.deliver(Topic.pcap, LogRecord(source=record.source, log_type=record.log_type, message=body))

    def _emit_correlation(self, record: LogRecord) -> None:
        message = [L2Correlation.from_event(event) for event in record.message or []]
        self.correlation_emitted += len(message)
        self._topics[Topic.correlation].deliver(
            Topic.correlation,
            LogRecord(source=record.source, log_type=record.log_type, message=message),
        )

    def stats(self) -> EmitterStats:
        correlation_stats = None
        if self.correlator is not None:
            correlation_stats = CorrelationStatsView(**asdict(self.correlator.snapshot()))
        return EmitterStats(
            events_emitted=self.events_emitted,
            pcaps_emitted=self.pcaps_emitted,
            correlation_emitted=self.correlation_emitted,
            correlation_stats=correlation_stats,
        )
