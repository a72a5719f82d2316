"""PostgREST table store for the hosted backend-as-a-service.

Speaks the PostgREST dialect used by Supabase:
- filters as query params ``column=eq.value``
- ordering as ``order=col.desc,col2.asc``
- ``Prefer: return=representation`` so writes echo the stored rows
"""

from __future__ import annotations

from typing import Any

import requests

from travelmate.domain.errors import StoreUnavailableError
from travelmate.infra.store import (
    EXCLUSION_VIOLATION,
    INVALID_TEXT_REPRESENTATION,
    ExclusionViolationError,
    Filters,
    InvalidFilterValueError,
    Order,
    Row,
)
from travelmate.observability.logging import get_logger

logger = get_logger(__name__)


def _filter_params(filters: Filters) -> dict[str, str]:
    params = {}
    for column, value in filters.items():
        if value is None:
            params[column] = "is.null"
        elif isinstance(value, bool):
            params[column] = f"is.{str(value).lower()}"
        else:
            params[column] = f"eq.{value}"
    return params


def _order_param(order: Order) -> str:
    return ",".join(f"{col}.{'desc' if desc else 'asc'}" for col, desc in order)


class RestStore:
    """Table store backed by a PostgREST endpoint.

    Usage:
        store = RestStore(base_url="https://proj.supabase.co", api_key="...")
        rows = store.query("reservations", {"user_id": "u1"}, [("created_at", True)])
    """

    def __init__(
        self,
        base_url: str | None,
        api_key: str | None,
        *,
        timeout: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the REST store.

        Raises:
            RuntimeError: If base_url or api_key is missing.
        """
        if not base_url or not api_key:
            raise RuntimeError(
                "REST store not configured. Set SUPABASE_URL and SUPABASE_SERVICE_KEY."
            )
        self._base_url = base_url.rstrip("/") + "/rest/v1"
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )

    def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> list[Row]:
        url = f"{self._base_url}/{table}"
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error(
                "store request failed",
                extra={"extra_fields": {"method": method, "table": table, "error": str(e)}},
            )
            raise StoreUnavailableError(f"Store unreachable: {e}") from e

        if response.status_code >= 400:
            code = _error_code(response)
            if code == EXCLUSION_VIOLATION:
                raise ExclusionViolationError(f"{method} {table} rejected by exclusion constraint")
            if code == INVALID_TEXT_REPRESENTATION:
                raise InvalidFilterValueError(f"{method} {table} rejected a malformed value")
            logger.error(
                "store request rejected",
                extra={
                    "extra_fields": {
                        "method": method,
                        "table": table,
                        "status_code": response.status_code,
                        "error_code": code,
                    }
                },
            )
            raise StoreUnavailableError(
                f"Store returned {response.status_code} for {method} {table}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise StoreUnavailableError(f"Malformed store response for {table}") from e

        if not isinstance(body, list) or not all(isinstance(r, dict) for r in body):
            raise StoreUnavailableError(f"Unexpected store response shape for {table}")
        return body

    def query(self, table: str, filters: Filters, order: Order | None = None) -> list[Row]:
        params = {"select": "*", **_filter_params(filters)}
        if order:
            params["order"] = _order_param(order)
        return self._request("GET", table, params=params)

    def insert(self, table: str, row: Row) -> Row:
        rows = self._request("POST", table, json=row, prefer="return=representation")
        if not rows:
            raise StoreUnavailableError(f"Insert into {table} returned no row")
        return rows[0]

    def update(self, table: str, filters: Filters, patch: Row) -> list[Row]:
        if not filters:
            raise ValueError("Refusing to update without filters")
        return self._request(
            "PATCH",
            table,
            params=_filter_params(filters),
            json=patch,
            prefer="return=representation",
        )


def _error_code(response: requests.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("code")
    return None
