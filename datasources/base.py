"""
Base connector shared by the service clients: bearer headers, retried JSON requests and ownership of the event router that receives fetched log batches.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from config import settings
from datasources import helpers
from datasources.exceptions import DataSourceUnavailable, QueryTimeout
from datasources.retry import retry
from engine.router import EmitterStats, EventRouter


class BaseConnector:
    class_name: str = "BaseConnector"

    def __init__(
        self,
        base_url: str,
        access_token: str,
        router: Optional[EventRouter] = None,
        timeout: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.base_url = str(base_url).rstrip("/")
        self.access_token = access_token
        self.router = router if router is not None else EventRouter.from_settings(settings)
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.headers = headers or {}
        self.api_transactions = 0
        self.last_response: Any = None

    def _headers(self) -> Dict[str, str]:
        return {
            **self.headers,
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        json_body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        self.api_transactions += 1
        send = retry(
            attempts=settings.retry_attempts,
            delay=settings.retry_delay,
            backoff=settings.retry_backoff,
            exceptions=(DataSourceUnavailable, QueryTimeout),
        )(helpers.request_json)
        self.last_response = await send(
            method,
            self._url(path),
            json_body=json_body,
            params=params,
            headers=self._headers(),
            timeout=self.timeout,
            invalid_msg=f"{self.class_name} {method} failed",
            timeout_msg=f"{self.class_name} {method} timed out",
            unavailable_msg=f"{self.class_name} cannot reach",
        )
        return self.last_response

    def stats(self) -> EmitterStats:
        return self.router.stats().model_copy(update={"api_transactions": self.api_transactions})
