"""PostgREST client for the Supabase-hosted transactions table."""

from __future__ import annotations

import json
import logging
from http.client import HTTPException
from dataclasses import dataclass
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen


logger = logging.getLogger(__name__)


class SupabaseRequestError(RuntimeError):
    """Raised when PostgREST is unreachable or answers with an error status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class SupabaseSettings:
    url: str
    service_role_key: str
    anon_key: str | None = None


class SupabaseClient:
    def __init__(self, settings: SupabaseSettings) -> None:
        self.settings = settings

    def healthcheck(self) -> bool:
        return bool(self.settings.url and self.settings.service_role_key)

    def _headers(self, *, use_anon_key: bool, prefer: str) -> dict[str, str]:
        api_key = self.settings.anon_key if use_anon_key else self.settings.service_role_key
        if not api_key:
            raise ValueError("Missing Supabase API key for requested mode")
        return {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
            "Prefer": prefer,
        }

    def _table_url(self, table: str, query: dict[str, str | int] | list[tuple[str, str | int]] | None = None) -> str:
        url = f"{self.settings.url.rstrip('/')}/rest/v1/{table}"
        if query:
            url = f"{url}?{urlencode(query, doseq=True)}"
        return url

    def _send(self, request: Request) -> tuple[Any, dict[str, str]]:
        try:
            with urlopen(request) as response:  # noqa: S310 - URL comes from trusted env config
                raw_body = response.read().decode("utf-8")
                payload = json.loads(raw_body) if raw_body else []
                return payload, dict(response.headers or {})
        except HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")[:500]
            raise SupabaseRequestError(
                f"Supabase request failed with status {exc.code}: {body}",
                status_code=exc.code,
            ) from exc
        except URLError as exc:
            logger.warning("supabase_unreachable url=%s reason=%s", request.full_url, exc.reason)
            raise SupabaseRequestError(f"Supabase request failed: {exc.reason}") from exc
        except (OSError, HTTPException) as exc:
            logger.warning("supabase_connection_failed url=%s error=%r", request.full_url, exc)
            raise SupabaseRequestError(f"Supabase request failed: {exc!r}") from exc
        except json.JSONDecodeError as exc:
            raise SupabaseRequestError("Supabase returned an invalid JSON response") from exc

    def get_rows(
        self,
        *,
        table: str,
        query: dict[str, str | int] | list[tuple[str, str | int]],
        with_count: bool,
        use_anon_key: bool = False,
    ) -> tuple[list[dict[str, Any]], int | None]:
        """Fetch rows from PostgREST and optionally parse exact row count."""

        request = Request(
            url=self._table_url(table, query),
            headers=self._headers(
                use_anon_key=use_anon_key,
                prefer="count=exact" if with_count else "return=representation",
            ),
            method="GET",
        )
        rows, headers = self._send(request)
        total: int | None = None
        if with_count:
            content_range = {key.lower(): value for key, value in headers.items()}.get("content-range")
            if content_range and "/" in content_range:
                _, total_str = content_range.split("/", maxsplit=1)
                if total_str.isdigit():
                    total = int(total_str)
        return rows, total

    def post_rows(
        self,
        *,
        table: str,
        payload: dict[str, Any] | list[dict[str, Any]],
        prefer: str = "return=representation",
        use_anon_key: bool = False,
    ) -> list[dict[str, Any]]:
        """Insert one or many rows and return the stored representation."""

        request = Request(
            url=self._table_url(table),
            data=json.dumps(payload).encode("utf-8"),
            headers={
                **self._headers(use_anon_key=use_anon_key, prefer=prefer),
                "Content-Type": "application/json",
            },
            method="POST",
        )
        rows, _ = self._send(request)
        return rows if isinstance(rows, list) else [rows]
