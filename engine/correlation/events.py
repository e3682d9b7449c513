"""
Data model for the L2/L3 correlation engine: log batches, buffered entries, structural classification of log elements and the public projection of a correlated event.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from engine.enums import EventShape, LogType

TIME_FIELD = "time_generated"
SESSION_FIELD = "sessionid"
SRC_FIELD = "src"
DST_FIELD = "dst"
MAC_FIELD = "extended-traffic-log-mac"
MAC_STC_FIELD = "extended-traffic-log-mac-stc"

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class LogRecord:
    source: str
    log_type: Optional[LogType] = None
    message: Optional[Any] = None


@dataclass
class PendingEntry:
    timestamp: int
    element: Dict[str, Any]
    shape: EventShape
    source: str
    log_type: Optional[LogType] = None

    @property
    def session_id(self) -> Any:
        return self.element[SESSION_FIELD]


def parse_timestamp(value: Any) -> Optional[int]:
    # leading-digits integer parse; "1712345678.25" -> 1712345678
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if value is None:
        return None
    match = _LEADING_INT_RE.match(str(value))
    if match is None:
        return None
    return int(match.group(1))


def _valid_session_id(value: Any) -> bool:
    return isinstance(value, (str, int)) and not isinstance(value, bool)


def is_correlatable(element: Any) -> bool:
    return (
        isinstance(element, Mapping)
        and TIME_FIELD in element
        and SESSION_FIELD in element
        and _valid_session_id(element[SESSION_FIELD])
    )


def classify(element: Any) -> EventShape:
    if not is_correlatable(element):
        return EventShape.PLAIN
    l2 = MAC_FIELD in element and MAC_STC_FIELD in element
    l3 = SRC_FIELD in element and DST_FIELD in element
    if l2 and l3:
        return EventShape.AMBIGUOUS
    if l2:
        return EventShape.L2
    if l3:
        return EventShape.L3
    return EventShape.PLAIN


def merge_mac_fields(l3_element: Mapping[str, Any], l2_element: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(l3_element)
    merged[MAC_FIELD] = l2_element[MAC_FIELD]
    merged[MAC_STC_FIELD] = l2_element[MAC_STC_FIELD]
    return merged


class L2Correlation(BaseModel):
    """Public view of a correlated event as delivered on the correlation topic."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    time_generated: str
    sessionid: str
    src: str
    dst: str
    mac: str = Field(alias=MAC_FIELD)
    mac_stc: str = Field(alias=MAC_STC_FIELD)

    @classmethod
    def from_event(cls, event: Mapping[str, Any]) -> L2Correlation:
        return cls.model_validate({
            TIME_FIELD: str(event[TIME_FIELD]),
            SESSION_FIELD: str(event[SESSION_FIELD]),
            SRC_FIELD: str(event[SRC_FIELD]),
            DST_FIELD: str(event[DST_FIELD]),
            MAC_FIELD: str(event[MAC_FIELD]),
            MAC_STC_FIELD: str(event[MAC_STC_FIELD]),
        })

    def to_event(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)
