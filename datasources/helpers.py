"""
Shared helper functions for the service connectors.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import httpx

from datasources.exceptions import (
    ApplicationFrameworkError,
    DataSourceUnavailable,
    InvalidQuery,
    QueryTimeout,
    ResponseParseError,
)


def _status_error(response: Any, invalid_msg: str) -> InvalidQuery:
    try:
        body = response.json()
    except ValueError:
        return InvalidQuery(f"{invalid_msg} [{response.status_code}]: {response.text}")
    return ApplicationFrameworkError(response.status_code, body)


async def request_json(
    method: str,
    url: str,
    json_body: Optional[Any] = None,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: int = 30,
    invalid_msg: str = "request failed",
    timeout_msg: str = "request timed out",
    unavailable_msg: str = "Cannot reach service at",
) -> Any:
    """Issue one request and decode its JSON body; an empty body yields ``None``."""
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.request(method, url, json=json_body, params=params, headers=headers)
            resp.raise_for_status()
            text = resp.text
    except httpx.HTTPStatusError as e:
        raise _status_error(e.response, invalid_msg) from e
    except httpx.TimeoutException as e:
        raise QueryTimeout(timeout_msg) from e
    except httpx.RequestError as e:
        raise DataSourceUnavailable(f"{unavailable_msg} {url}") from e

    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError as e:
        raise ResponseParseError(f"Invalid JSON from {url}: {e}") from e
