"""
L2/L3 correlation engine joining network layer and link layer log elements that share a session id, with a time-windowed buffer and watermark-based eviction.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.correlation.events import L2Correlation, LogRecord, PendingEntry, classify
from engine.correlation.correlator import CorrelationStats, MacCorrelator, ProcessResult, UpdateResult
from engine.correlation.eviction import EvictionPolicy
from engine.correlation.store import CorrelationStore

__all__ = [
    "CorrelationStats", "CorrelationStore", "EvictionPolicy", "L2Correlation", "LogRecord",
    "MacCorrelator", "PendingEntry", "ProcessResult", "UpdateResult", "classify",
]
