"""
Conversion of the base64 capture blob found on some threat log elements into a standalone libpcap file body.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import base64
import binascii
import logging
import struct
from typing import Any, Mapping, Optional

from config import PCAP_FIELD, PCAP_LINKTYPE_ETHERNET

log = logging.getLogger(__name__)

PCAP_MAGIC = 0xA1B2C3D4
PCAP_SNAPLEN = 0xFFFFFFFF

# offsets inside the vendor capture blob
_BLOB_CAPTURE_SIZE = 4
_BLOB_TIMESTAMP = 16
_BLOB_PACKET_SIZE = 30
_BLOB_BODY = 36

_GLOBAL_HEADER = struct.Struct("<IHHiIII")
_RECORD_HEADER = struct.Struct("<IIII")


def pcaptize(element: Any) -> Optional[bytes]:
    if not isinstance(element, Mapping) or not element.get(PCAP_FIELD):
        return None
    try:
        blob = base64.b64decode(element[PCAP_FIELD], validate=True)
    except (binascii.Error, TypeError, ValueError) as exc:
        log.debug("Ignoring undecodable pcap field: %s", exc)
        return None
    if len(blob) < _BLOB_BODY:
        log.debug("Ignoring pcap blob of %d bytes", len(blob))
        return None

    (capture_size,) = struct.unpack_from(">I", blob, _BLOB_CAPTURE_SIZE)
    (timestamp,) = struct.unpack_from(">I", blob, _BLOB_TIMESTAMP)
    (packet_size,) = struct.unpack_from(">H", blob, _BLOB_PACKET_SIZE)
    body_size = min(capture_size, packet_size)
    body = blob[_BLOB_BODY:_BLOB_BODY + body_size]
    if len(body) < body_size:
        log.debug("Truncated pcap blob: %d of %d body bytes", len(body), body_size)
        return None

    return b"".join((
        _GLOBAL_HEADER.pack(PCAP_MAGIC, 2, 4, 0, 0, PCAP_SNAPLEN, PCAP_LINKTYPE_ETHERNET),
        _RECORD_HEADER.pack(timestamp, 0, body_size, packet_size),
        body,
    ))
