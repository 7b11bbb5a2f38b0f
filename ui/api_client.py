"""HTTP client for the transactions REST API."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal
from http.client import HTTPException
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from pydantic import ValidationError as PydanticValidationError

from shared import config
from shared.models import (
    PaginatedTransactions,
    Pagination,
    Transaction,
    TransactionQuery,
    TransactionType,
)


logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Raised for non-2xx answers; `status_code` is 0 when the server was unreachable."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 0,
        code: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details


class TransactionsApiClient:
    def __init__(self, base_url: str | None = None, *, timeout: float | None = None) -> None:
        self.base_url = (base_url or config.server_url()).rstrip("/")
        self.timeout = timeout if timeout is not None else config.http_timeout_seconds()

    def _url(self, path: str = "", params: dict[str, str] | None = None) -> str:
        url = f"{self.base_url}/api/transactions{path}"
        if params:
            url = f"{url}?{urlencode(params)}"
        return url

    def _request(self, method: str, url: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        headers = {"Accept": "application/json"}
        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"

        request = Request(url=url, data=data, headers=headers, method=method)
        try:
            with urlopen(request, timeout=self.timeout) as response:  # noqa: S310 - URL comes from config
                return json.loads(response.read().decode("utf-8"))
        except HTTPError as exc:
            raise self._error_from_http(exc) from exc
        except URLError as exc:
            logger.warning("api_unreachable method=%s url=%s reason=%s", method, url, exc.reason)
            raise ApiError(f"Unable to reach server: {exc.reason}") from exc
        except (OSError, HTTPException) as exc:
            logger.warning("api_connection_failed method=%s url=%s error=%r", method, url, exc)
            raise ApiError(f"Unable to reach server: {exc!r}") from exc
        except json.JSONDecodeError as exc:
            raise ApiError("Server returned an invalid JSON response") from exc

    @staticmethod
    def _error_from_http(exc: HTTPError) -> ApiError:
        raw_body = exc.read().decode("utf-8", errors="replace")
        try:
            payload = json.loads(raw_body) if raw_body else {}
        except json.JSONDecodeError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        return ApiError(
            str(payload.get("message") or f"Request failed with status {exc.code}"),
            status_code=exc.code,
            code=payload.get("code"),
            details=payload.get("details"),
        )

    @staticmethod
    def _parse_transaction(raw: Any) -> Transaction:
        try:
            return Transaction.model_validate(raw)
        except PydanticValidationError as exc:
            raise ApiError("Server returned an invalid transaction") from exc

    def list_transactions(self, query: TransactionQuery) -> PaginatedTransactions:
        payload = self._request("GET", self._url(params=query.to_params()))
        try:
            pagination = Pagination.model_validate(payload.get("pagination"))
        except PydanticValidationError as exc:
            raise ApiError("Server returned invalid pagination") from exc
        items = [self._parse_transaction(item) for item in payload.get("data") or []]
        return PaginatedTransactions(items=items, pagination=pagination)

    def get_transaction(self, transaction_id: str) -> Transaction:
        payload = self._request("GET", self._url(f"/{quote(transaction_id, safe='')}"))
        if not payload.get("data"):
            raise ApiError("Transaction not found", status_code=404)
        return self._parse_transaction(payload["data"])

    def create_transaction(
        self,
        *,
        amount: Decimal,
        type: TransactionType,
        timestamp: datetime | None = None,
    ) -> Transaction:
        body: dict[str, Any] = {"amount": float(amount), "type": type.value}
        if timestamp is not None:
            body["timestamp"] = timestamp.isoformat()
        payload = self._request("POST", self._url(), body)
        if not payload.get("data"):
            raise ApiError("Failed to create transaction")
        return self._parse_transaction(payload["data"])
