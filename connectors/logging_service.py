"""
Logging Service client: schedules query jobs, polls their result pages in the background and hands every page to the event router.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from config import KNOWN_INDEX_PREFIXES, LOGGING_SERVICE_PATH, settings
from datasources.base import BaseConnector
from datasources.exceptions import DataSourceError, ResponseParseError
from engine.correlation.events import LogRecord
from engine.enums import JobStatus, LogType
from engine.router import EventRouter, Subscriber

log = logging.getLogger(__name__)


class LsQuery(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query: str
    start_time: int
    end_time: int
    max_wait_time: Optional[int] = None
    client: Optional[str] = None
    client_parameters: Optional[Any] = None
    # client side only: tags the emitted batches when the service does not
    log_type: Optional[LogType] = None

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"log_type"})


class EsHit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    index: str = Field(alias="_index")
    doc_type: str = Field(alias="_type")
    source: Any = Field(alias="_source")


class EsHits(BaseModel):
    hits: List[EsHit]


class EsResult(BaseModel):
    hits: EsHits


class JobResultBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    es_result: Optional[EsResult] = Field(alias="esResult")


class JobResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query_id: str
    sequence_no: int
    query_status: JobStatus
    result: JobResultBody


@dataclass
class _Job:
    log_type: Optional[LogType]
    sequence_no: int
    max_wait_time: Optional[int] = None


def parse_job(raw: Any) -> JobResult:
    try:
        return JobResult.model_validate(raw)
    except ValidationError as exc:
        raise ResponseParseError(f"Response is not a valid Logging Service job document: {raw!r}") from exc


def derive_log_type(hit: EsHit) -> Optional[LogType]:
    prefix = next((p for p in KNOWN_INDEX_PREFIXES if p in hit.index), "")
    return LogType.parse(prefix + hit.doc_type)


class LoggingService(BaseConnector):
    class_name = "LoggingService"

    def __init__(
        self,
        access_token: str,
        base_url: Optional[str] = None,
        router: Optional[EventRouter] = None,
        timeout: Optional[int] = None,
        poll_sleep: Optional[float] = None,
    ):
        super().__init__(base_url or settings.entry_point, access_token, router=router, timeout=timeout)
        self.poll_sleep = settings.poll_sleep if poll_sleep is None else poll_sleep
        self._jobs: Dict[str, _Job] = {}
        self._cursor = 0
        self._task: Optional[asyncio.Task] = None

    async def __aenter__(self) -> LoggingService:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @property
    def pending_queries(self) -> List[str]:
        return list(self._jobs)

    async def query(
        self,
        cfg: LsQuery,
        subscriber: Optional[Subscriber] = None,
        auto_poll: bool = True,
    ) -> JobResult:
        job = parse_job(await self._request("POST", LOGGING_SERVICE_PATH, json_body=cfg.payload()))
        if job.query_status == JobStatus.JOB_FAILED:
            log.warning("Query %s failed on submission", job.query_id)
            return job
        if not auto_poll:
            return job

        if subscriber is not None:
            self.router.register_event_subscriber(subscriber)
        first_job = not self._jobs
        sequence_no = job.sequence_no + 1 if job.query_status == JobStatus.FINISHED else 0
        self._jobs[job.query_id] = _Job(cfg.log_type, sequence_no, cfg.max_wait_time)
        self._emit_page(job)

        if job.query_status == JobStatus.JOB_FINISHED:
            await self._cleanup(job.query_id)
        elif first_job:
            self._start_polling()
        return job

    async def poll(self, query_id: str, sequence_no: int, max_wait_time: Optional[int] = None) -> JobResult:
        params = {"maxWaitTime": max_wait_time} if max_wait_time and max_wait_time > 0 else None
        raw = await self._request("GET", f"{LOGGING_SERVICE_PATH}/{query_id}/{sequence_no}", params=params)
        return parse_job(raw)

    async def delete_query(self, query_id: str) -> None:
        await self._request("DELETE", f"{LOGGING_SERVICE_PATH}/{query_id}")

    def cancel_poll(self, query_id: str) -> None:
        if self._jobs.pop(query_id, None) is None:
            return
        log.info("Stopped polling query %s", query_id)
        if not self._jobs and self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()
            self._task = None

    async def aclose(self) -> None:
        """Stop polling and release whatever the correlator still buffers."""
        self._jobs.clear()
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self.router.flush_correlation()

    def _start_polling(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._auto_poll())

    async def _auto_poll(self) -> None:
        while self._jobs:
            self._cursor = (self._cursor + 1) % len(self._jobs)
            query_id = list(self._jobs)[self._cursor]
            job = self._jobs[query_id]
            try:
                page = await self.poll(query_id, job.sequence_no, job.max_wait_time)
                self._emit_page(page)
                if page.query_status == JobStatus.FINISHED:
                    job.sequence_no += 1
                elif page.query_status == JobStatus.JOB_FINISHED:
                    await self._cleanup(query_id)
            except DataSourceError as exc:
                log.warning("Error polling query %s, cancelling it: %s", query_id, exc)
                self.cancel_poll(query_id)
                self.router.emit(LogRecord(source=query_id))
            except Exception:
                log.exception("Unexpected failure polling query %s", query_id)
            if self._jobs:
                await asyncio.sleep(self.poll_sleep)

    async def _cleanup(self, query_id: str) -> None:
        if self._jobs.pop(query_id, None) is None:
            return
        self.router.emit(LogRecord(source=query_id))
        try:
            await self.delete_query(query_id)
        except DataSourceError as exc:
            log.warning("Unable to delete finished query %s: %s", query_id, exc)

    def _emit_page(self, page: JobResult) -> None:
        es_result = page.result.es_result
        job = self._jobs.get(page.query_id)
        if es_result is None or job is None:
            return
        hits = es_result.hits.hits
        log_type = job.log_type
        if log_type is None:
            if not hits:
                log.warning("Discarding empty event set from %s without known log type", page.query_id)
                return
            log_type = derive_log_type(hits[0])
            if log_type is None:
                log.warning(
                    "Discarding event set of unknown log type %s%s",
                    hits[0].index, hits[0].doc_type,
                )
                return
        self.router.emit(LogRecord(source=page.query_id, log_type=log_type, message=[h.source for h in hits]))
