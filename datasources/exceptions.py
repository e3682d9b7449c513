# datasources/exceptions.py

from typing import Any


class DataSourceError(Exception):
    pass


class DataSourceUnavailable(DataSourceError):
    pass


class QueryTimeout(DataSourceError):
    pass


class InvalidQuery(DataSourceError):
    pass


class ResponseParseError(DataSourceError):
    pass


class BackendStartupTimeout(DataSourceError):
    pass


class ApplicationFrameworkError(InvalidQuery):
    """Error document returned by the service itself (non-2xx with errorCode/errorMessage)."""

    def __init__(self, status_code: int, body: Any):
        if isinstance(body, dict) and isinstance(body.get("errorCode"), str) and isinstance(body.get("errorMessage"), str):
            self.error_code = body["errorCode"]
            self.error_message = body["errorMessage"]
        else:
            self.error_code = ""
            self.error_message = f"Unparseable Application Framework error message: {body!r}"
        self.status_code = status_code
        super().__init__(f"[{status_code}] {self.error_code or 'UNKNOWN'}: {self.error_message}")
