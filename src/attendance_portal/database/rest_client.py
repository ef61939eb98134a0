from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from ..core.constants import DEFAULT_REST_TIMEOUT

logger = logging.getLogger(__name__)

# Postgres SQLSTATE for unique_violation, reported by PostgREST in the error body
UNIQUE_VIOLATION = "23505"


@dataclass(frozen=True)
class RestConfig:
    url: str
    key: str
    timeout: float = DEFAULT_REST_TIMEOUT


class RestStoreError(Exception):
    """Request to the hosted store failed."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code

    @property
    def is_unique_violation(self) -> bool:
        # PostgREST also answers 409 for foreign key violations (23503)
        if self.code:
            return self.code == UNIQUE_VIOLATION
        return self.status_code == 409


class RestClient:
    """Minimal PostgREST client (the query API behind Supabase).

    Supports what the repositories need: equality filters, ordering,
    single-row insert and update-by-filter. A fresh ``httpx.AsyncClient`` is
    opened per call so the client is safe to use from any event loop.
    """

    def __init__(self, config: RestConfig, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._base = config.url.rstrip("/")
        self._timeout = config.timeout
        self._transport = transport
        self._headers = {
            "apikey": config.key,
            "Authorization": f"Bearer {config.key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        url = f"{self._base}/{table}"
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer

        logger.debug("%s %s params=%s", method, url, dict(params or {}))

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.request(method, url, params=params, json=json, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            body = _safe_json(e.response)
            code = body.get("code") if isinstance(body, dict) else None
            message = body.get("message") if isinstance(body, dict) else None
            raise RestStoreError(
                f"{method} {table} failed (HTTP {e.response.status_code}): {message or e.response.text}",
                status_code=e.response.status_code,
                code=code,
            ) from e
        except httpx.HTTPError as e:
            raise RestStoreError(f"{method} {table} failed: {e}") from e

        if not response.content:
            return []
        try:
            data = response.json()
        except ValueError as e:
            raise RestStoreError(
                f"{method} {table} returned a non-JSON body (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from e
        return data if isinstance(data, list) else [data]

    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str],
        eq: Optional[Mapping[str, Any]] = None,
        order: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        params = {"select": ",".join(columns)}
        for column, value in (eq or {}).items():
            params[column] = f"eq.{value}"
        if order:
            params["order"] = f"{order}.{'desc' if descending else 'asc'}"
        return await self._request("GET", table, params=params)

    async def insert(self, table: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        rows = await self._request("POST", table, json=[dict(row)], prefer="return=representation")
        if not rows:
            raise RestStoreError(f"POST {table} returned no row")
        return rows[0]

    async def update(self, table: str, values: Mapping[str, Any], *, eq: Mapping[str, Any]) -> List[Dict[str, Any]]:
        params = {column: f"eq.{value}" for column, value in eq.items()}
        return await self._request("PATCH", table, params=params, json=dict(values), prefer="return=representation")


def _safe_json(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None
