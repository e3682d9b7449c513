"""
Watermark-based eviction of stale correlation buffer entries, throttled by a garbage collection multiplier.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from engine.correlation.events import PendingEntry
from engine.correlation.store import CorrelationStore

log = logging.getLogger(__name__)


class EvictionPolicy:
    """Decides when a sweep runs and where its cutoff lies.

    A sweep only runs once ``gc_multiplier + 1`` attempts have accumulated, so
    with the default of 0 every attempt sweeps. In relative mode the cutoff
    follows the highest event timestamp seen; in absolute mode it follows the
    wall clock.
    """

    def __init__(
        self,
        ageout_seconds: int = 120,
        absolute_time: bool = False,
        gc_multiplier: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ageout_seconds < 0:
            raise ValueError("ageout_seconds must be >= 0")
        if gc_multiplier < 0:
            raise ValueError("gc_multiplier must be >= 0")
        self.ageout_seconds = int(ageout_seconds)
        self.absolute_time = bool(absolute_time)
        self.gc_multiplier = int(gc_multiplier)
        self._clock = clock
        self.attempts = 0

    def cutoff(self, watermark: int) -> int:
        reference = int(self._clock()) if self.absolute_time else watermark
        return reference - self.ageout_seconds

    def run(self, store: CorrelationStore, watermark: int) -> Optional[List[PendingEntry]]:
        self.attempts += 1
        if self.attempts <= self.gc_multiplier:
            return None
        self.attempts = 0
        cutoff = self.cutoff(watermark)
        evicted = store.evict_older_than(cutoff)
        if not evicted:
            return None
        log.debug("Evicted %d stale entries older than %d", len(evicted), cutoff)
        return evicted
