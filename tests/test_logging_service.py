"""
Test cases for the Logging Service client: job submission, background polling of result pages, log type resolution, error handling and teardown.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio

import pytest

from config import LOGGING_SERVICE_PATH, settings
from conftest import l2, l3
from connectors.logging_service import EsHit, JobResult, LoggingService, LsQuery, derive_log_type, parse_job
from datasources.exceptions import ApplicationFrameworkError, DataSourceUnavailable, ResponseParseError
from engine.correlation.correlator import MacCorrelator
from engine.enums import JobStatus, LogType, Topic
from engine.router import EventRouter

BASE = "https://api.test"
QUERIES = f"{BASE}/{LOGGING_SERVICE_PATH}"


def job_doc(qid="q1", seq=0, status="FINISHED", sources=None, index="1234_panw.traffic_2019", doc_type="traffic"):
    if sources is None:
        es_result = None
    else:
        es_result = {"hits": {"hits": [{"_index": index, "_type": doc_type, "_source": s} for s in sources]}}
    return {"queryId": qid, "sequenceNo": seq, "queryStatus": status, "result": {"esResult": es_result}}


class FakeApi:
    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    async def request(self, method, url, json_body=None, params=None, headers=None, timeout=30, **kwargs):
        self.calls.append((method, url, json_body, params, headers))
        handler = self.responses[(method, url)]
        if isinstance(handler, list):
            handler = handler.pop(0) if len(handler) > 1 else handler[0]
        if isinstance(handler, Exception):
            raise handler
        return handler


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    monkeypatch.setattr(settings, "retry_delay", 0)
    monkeypatch.setattr(settings, "retry_attempts", 2)


def install(monkeypatch, responses):
    api = FakeApi(responses)
    monkeypatch.setattr("datasources.helpers.request_json", api.request)
    return api


def query_cfg(**kwargs):
    return LsQuery(query="select * from panw.traffic", start_time=1, end_time=2, **kwargs)


def test_ls_query_payload_is_camel_case():
    payload = query_cfg(max_wait_time=1000, log_type=LogType.panw_traffic).payload()
    assert payload == {"query": "select * from panw.traffic", "startTime": 1, "endTime": 2, "maxWaitTime": 1000}


def test_parse_job_rejects_invalid_documents():
    assert parse_job(job_doc()).query_status == JobStatus.FINISHED
    with pytest.raises(ResponseParseError):
        parse_job({"queryId": "q1"})
    with pytest.raises(ResponseParseError):
        parse_job(job_doc(status="PAUSED"))
    with pytest.raises(ResponseParseError):
        parse_job({"queryId": "q1", "sequenceNo": 0, "queryStatus": "RUNNING", "result": {}})


def test_derive_log_type():
    assert derive_log_type(EsHit(_index="99_panw.threat_x", _type="threat", _source={})) == LogType.panw_threat
    assert derive_log_type(EsHit(_index="tms.idx", _type="traps", _source={})) == LogType.tms_traps
    assert derive_log_type(EsHit(_index="other", _type="traffic", _source={})) is None


@pytest.mark.asyncio
async def test_query_polls_until_job_finished(monkeypatch):
    api = install(monkeypatch, {
        ("POST", QUERIES): job_doc(seq=0, status="FINISHED", sources=[{"n": 1}]),
        ("GET", f"{QUERIES}/q1/1"): job_doc(seq=1, status="FINISHED", sources=[{"n": 2}]),
        ("GET", f"{QUERIES}/q1/2"): job_doc(seq=2, status="JOB_FINISHED", sources=[{"n": 3}]),
        ("DELETE", f"{QUERIES}/q1"): None,
    })
    got = []
    svc = LoggingService("token", base_url=BASE, router=EventRouter(), poll_sleep=0)
    job = await svc.query(query_cfg(), subscriber=got.append)
    assert isinstance(job, JobResult)
    await svc._task

    assert [r.message for r in got] == [[{"n": 1}], [{"n": 2}], [{"n": 3}], None]
    assert all(r.source == "q1" for r in got)
    assert got[0].log_type == LogType.panw_traffic
    assert api.calls[-1][0] == "DELETE"
    assert api.calls[0][4]["Authorization"] == "Bearer token"
    assert svc.pending_queries == []
    assert svc.stats().api_transactions == 4


@pytest.mark.asyncio
async def test_query_finished_on_first_page(monkeypatch):
    api = install(monkeypatch, {
        ("POST", QUERIES): job_doc(status="JOB_FINISHED", sources=[{"n": 1}]),
        ("DELETE", f"{QUERIES}/q1"): None,
    })
    got = []
    svc = LoggingService("token", base_url=BASE, router=EventRouter(), poll_sleep=0)
    await svc.query(query_cfg(log_type=LogType.panw_threat), subscriber=got.append)
    assert [(r.log_type, r.message) for r in got] == [(LogType.panw_threat, [{"n": 1}]), (None, None)]
    assert svc._task is None
    assert [c[0] for c in api.calls] == ["POST", "DELETE"]


@pytest.mark.asyncio
async def test_failed_job_is_not_tracked(monkeypatch):
    install(monkeypatch, {("POST", QUERIES): job_doc(status="JOB_FAILED")})
    got = []
    router = EventRouter()
    svc = LoggingService("token", base_url=BASE, router=router, poll_sleep=0)
    job = await svc.query(query_cfg(), subscriber=got.append)
    assert job.query_status == JobStatus.JOB_FAILED
    assert svc.pending_queries == []
    assert not router.has_subscribers(Topic.event)


@pytest.mark.asyncio
async def test_poll_passes_max_wait_time(monkeypatch):
    api = install(monkeypatch, {("GET", f"{QUERIES}/q1/3"): job_doc(seq=3, status="RUNNING")})
    svc = LoggingService("token", base_url=BASE, router=EventRouter())
    page = await svc.poll("q1", 3, max_wait_time=500)
    assert page.query_status == JobStatus.RUNNING
    assert api.calls[0][3] == {"maxWaitTime": 500}


@pytest.mark.asyncio
async def test_poll_error_cancels_job(monkeypatch):
    install(monkeypatch, {
        ("POST", QUERIES): job_doc(status="RUNNING", sources=[]),
        ("GET", f"{QUERIES}/q1/0"): ApplicationFrameworkError(400, {"errorCode": "E", "errorMessage": "gone"}),
    })
    got = []
    svc = LoggingService("token", base_url=BASE, router=EventRouter(), poll_sleep=0)
    await svc.query(query_cfg(log_type=LogType.panw_traffic), subscriber=got.append)
    await svc._task
    assert svc.pending_queries == []
    assert got[-1].source == "q1" and got[-1].message is None


@pytest.mark.asyncio
async def test_transport_errors_are_retried(monkeypatch):
    api = install(monkeypatch, {
        ("GET", f"{QUERIES}/q1/0"): [DataSourceUnavailable("down"), job_doc(status="RUNNING")],
    })
    svc = LoggingService("token", base_url=BASE, router=EventRouter())
    page = await svc.poll("q1", 0)
    assert page.query_id == "q1"
    assert len(api.calls) == 2
    assert svc.api_transactions == 1


@pytest.mark.asyncio
async def test_unknown_log_type_page_is_discarded(monkeypatch):
    install(monkeypatch, {
        ("POST", QUERIES): job_doc(status="JOB_FINISHED", sources=[{"n": 1}], index="custom", doc_type="x"),
        ("DELETE", f"{QUERIES}/q1"): None,
    })
    got = []
    svc = LoggingService("token", base_url=BASE, router=EventRouter(), poll_sleep=0)
    await svc.query(query_cfg(), subscriber=got.append)
    assert [r.message for r in got] == [None]


@pytest.mark.asyncio
async def test_pages_flow_through_correlation_and_aclose_flushes(monkeypatch):
    install(monkeypatch, {
        ("POST", QUERIES): job_doc(status="RUNNING", sources=[l3(sessionid="A", ts="100"), l3(sessionid="B", ts="100")]),
        ("GET", f"{QUERIES}/q1/0"): [
            job_doc(status="RUNNING", sources=[l2(sessionid="A", ts="101")]),
            job_doc(status="RUNNING"),
        ],
    })
    router = EventRouter(correlator=MacCorrelator())
    correlations, events = [], []
    router.register_correlation_subscriber(correlations.append)
    svc = LoggingService("token", base_url=BASE, router=router, poll_sleep=0)
    await svc.query(query_cfg(), subscriber=events.append)
    # one page from the poller is enough; then tear down
    while not correlations:
        await asyncio.sleep(0)
    await svc.aclose()

    assert correlations[0].message[0].sessionid == "A"
    flushed = events[-1]
    assert flushed.source == "q1"
    assert [e["sessionid"] for e in flushed.message] == ["B"]
    assert len(router.correlator.store) == 0
    assert svc.pending_queries == []
