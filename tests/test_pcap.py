"""
Test cases for converting capture blobs carried by log elements into libpcap file bodies.
"""

import base64
import struct

from engine.pcap import pcaptize


def make_blob(packet: bytes, capture_size=None, packet_size=None, ts=1_600_000_000) -> str:
    header = bytearray(36)
    struct.pack_into(">I", header, 4, len(packet) if capture_size is None else capture_size)
    struct.pack_into(">I", header, 16, ts)
    struct.pack_into(">H", header, 30, len(packet) if packet_size is None else packet_size)
    return base64.b64encode(bytes(header) + packet).decode()


def test_pcaptize_builds_libpcap_file():
    packet = bytes(range(60))
    body = pcaptize({"pcap": make_blob(packet)})
    assert body is not None
    magic, major, minor, _, _, snaplen, linktype = struct.unpack_from("<IHHiIII", body, 0)
    assert (magic, major, minor, snaplen, linktype) == (0xA1B2C3D4, 2, 4, 0xFFFFFFFF, 1)
    ts, usec, incl, orig = struct.unpack_from("<IIII", body, 24)
    assert (ts, usec, incl, orig) == (1_600_000_000, 0, 60, 60)
    assert body[40:] == packet
    assert len(body) == 100


def test_pcaptize_truncates_to_capture_size():
    packet = bytes(100)
    body = pcaptize({"pcap": make_blob(packet[:40], capture_size=40, packet_size=100)})
    _, _, incl, orig = struct.unpack_from("<IIII", body, 24)
    assert (incl, orig) == (40, 100)
    assert len(body) == 80


def test_pcaptize_rejects_missing_or_invalid_field():
    assert pcaptize({"src": "a"}) is None
    assert pcaptize({"pcap": ""}) is None
    assert pcaptize({"pcap": "!!not base64!!"}) is None
    assert pcaptize({"pcap": base64.b64encode(b"short").decode()}) is None
    assert pcaptize("string element") is None


def test_pcaptize_rejects_blob_shorter_than_declared_body():
    assert pcaptize({"pcap": make_blob(bytes(10), capture_size=50, packet_size=50)}) is None
