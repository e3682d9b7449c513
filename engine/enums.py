"""
Enumerations for Log Types, Event Shapes, Router Topics and Job States

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class LogType(str, Enum):
    panw_auth = "panw.auth"
    panw_config = "panw.config"
    panw_dpi = "panw.dpi"
    panw_dpi_hipreport = "panw.dpi_hipreport"
    panw_dpi_stats = "panw.dpi_stats"
    panw_gtp = "panw.gtp"
    panw_gtpsum = "panw.gtpsum"
    panw_hipmatch = "panw.hipmatch"
    panw_sctp = "panw.sctp"
    panw_sctpsum = "panw.sctpsum"
    panw_system = "panw.system"
    panw_threat = "panw.threat"
    panw_thsum = "panw.thsum"
    panw_traffic = "panw.traffic"
    panw_trsum = "panw.trsum"
    panw_urlsum = "panw.urlsum"
    panw_userid = "panw.userid"
    tms_analytics = "tms.analytics"
    tms_config = "tms.config"
    tms_system = "tms.system"
    tms_threat = "tms.threat"
    tms_traps = "tms.traps"

    @classmethod
    def parse(cls, value: object) -> Optional[LogType]:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return None


class EventShape(Enum):
    """Structural class of a log element, decided once when it is ingested.

    AMBIGUOUS elements carry both the address and the MAC fields. They satisfy
    both predicates; the correlator tries the L2-first pairing before the
    L3-first one, so for a buffered AMBIGUOUS element the L2 reading wins.
    """

    PLAIN = "plain"
    L2 = "l2"
    L3 = "l3"
    AMBIGUOUS = "ambiguous"

    @property
    def is_l2(self) -> bool:
        return self in (EventShape.L2, EventShape.AMBIGUOUS)

    @property
    def is_l3(self) -> bool:
        return self in (EventShape.L3, EventShape.AMBIGUOUS)


class Topic(str, Enum):
    event = "event"
    pcap = "pcap"
    correlation = "correlation"


class JobStatus(str, Enum):
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"
    JOB_FINISHED = "JOB_FINISHED"
    JOB_FAILED = "JOB_FAILED"
