"""
Constants and configuration for the stream correlation client.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging
import os
import sys
from typing import Dict

from pydantic_settings import BaseSettings


REGION_AMERICAS = "americas"
REGION_EUROPE = "europe"

REGION_ENTRY_POINTS: Dict[str, str] = {
    REGION_AMERICAS: "https://api.us.paloaltonetworks.com",
    REGION_EUROPE: "https://api.eu.paloaltonetworks.com",
}

AFCORR_REGION = os.getenv("AFCORR_REGION", REGION_AMERICAS).lower()
AFCORR_ENTRY_POINT = os.getenv(
    "AFCORR_ENTRY_POINT", REGION_ENTRY_POINTS.get(AFCORR_REGION, REGION_ENTRY_POINTS[REGION_AMERICAS])
).rstrip("/")
AFCORR_REQUEST_TIMEOUT = int(os.getenv("AFCORR_REQUEST_TIMEOUT", "30"))

LOGGING_SERVICE_PATH = "logging-service/v1/queries"

# index prefixes used by the logging service to name its tables
KNOWN_INDEX_PREFIXES = ("panw.", "tms.")

# libpcap framing used for the pcap topic
PCAP_FIELD = "pcap"
PCAP_LINKTYPE_ETHERNET = 1

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class Settings(BaseSettings):
    region: str = AFCORR_REGION
    entry_point: str = AFCORR_ENTRY_POINT
    request_timeout: int = AFCORR_REQUEST_TIMEOUT

    # outbound retry wrapper
    retry_attempts: int = 3
    retry_delay: float = 0.1
    retry_backoff: float = 1.0

    # seconds to sleep between logging service polls
    poll_sleep: float = 0.2

    # allow the same subscriber to be registered more than once on a topic
    allow_dup: bool = False

    # L2/L3 correlation engine
    correlation_enabled: bool = False
    correlation_ageout_seconds: int = 120
    correlation_absolute_time: bool = False
    correlation_gc_multiplier: int = 0

    log_level: str = "INFO"

    model_config = {
        "env_prefix": "AFCORR_",
        "extra": "ignore",
    }


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
        stream=sys.stdout,
    )


settings = Settings()
