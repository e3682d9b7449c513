"""
Test cases for the correlation data model: timestamp parsing, structural classification, MAC merging and the public correlated event projection.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import pytest

from conftest import l2, l3
from engine.correlation.events import (
    L2Correlation,
    MAC_FIELD,
    MAC_STC_FIELD,
    classify,
    is_correlatable,
    merge_mac_fields,
    parse_timestamp,
)
from engine.enums import EventShape


@pytest.mark.parametrize("value,expected", [
    ("1700000000", 1700000000),
    (" 42", 42),
    ("-5", -5),
    ("123abc", 123),
    ("12.9", 12),
    (17, 17),
    ("abc", None),
    ("", None),
    (None, None),
    (True, None),
])
def test_parse_timestamp(value, expected):
    assert parse_timestamp(value) == expected


def test_classify_shapes():
    assert classify(l3()) == EventShape.L3
    assert classify(l2()) == EventShape.L2
    assert classify({**l3(), **l2()}) == EventShape.AMBIGUOUS
    assert classify({"sessionid": "S", "time_generated": "1"}) == EventShape.PLAIN
    assert classify({"src": "a", "dst": "b"}) == EventShape.PLAIN
    assert classify("not a mapping") == EventShape.PLAIN


def test_is_correlatable_requires_hashable_session_id():
    assert is_correlatable(l3(sessionid=7))
    assert not is_correlatable(l3(sessionid=["S"]))
    assert not is_correlatable(l3(sessionid=True))
    assert not is_correlatable({"time_generated": "1"})


def test_merge_mac_fields_keeps_l3_and_copies_macs():
    a = l3(ts="100")
    b = l2(ts="101", mac="m1", mac_stc="m2")
    merged = merge_mac_fields(a, b)
    assert merged["time_generated"] == "100"
    assert merged[MAC_FIELD] == "m1"
    assert merged[MAC_STC_FIELD] == "m2"
    assert MAC_FIELD not in a


def test_l2correlation_projection_uses_hyphenated_keys():
    event = merge_mac_fields(l3(src="a", dst="b", extra="dropped"), l2(mac="m1", mac_stc="m2"))
    view = L2Correlation.from_event(event)
    assert view.src == "a"
    assert view.dst == "b"
    assert view.to_event() == {
        "time_generated": "100",
        "sessionid": "S",
        "src": "a",
        "dst": "b",
        "extended-traffic-log-mac": "m1",
        "extended-traffic-log-mac-stc": "m2",
    }
