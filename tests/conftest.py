import os
import sys

import pytest

# ensure workspace root is on sys.path so our application packages can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from engine.correlation.correlator import MacCorrelator
from engine.router import EventRouter


class FrozenClock:
    """Settable stand-in for time.time used by absolute-time eviction."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def correlator():
    return MacCorrelator(ageout_seconds=120)


@pytest.fixture
def router(correlator):
    return EventRouter(correlator=correlator)


def l3(sessionid="S", ts="100", src="10.0.0.1", dst="10.0.0.2", **extra):
    return {"sessionid": sessionid, "time_generated": ts, "src": src, "dst": dst, **extra}


def l2(sessionid="S", ts="101", mac="00:11:22:33:44:55", mac_stc="66:77:88:99:aa:bb", **extra):
    return {
        "sessionid": sessionid,
        "time_generated": ts,
        "extended-traffic-log-mac": mac,
        "extended-traffic-log-mac-stc": mac_stc,
        **extra,
    }
