"""Read-only async PostgREST client wrapper for Supabase.

This is the single point of Supabase HTTP interaction for the router. The
serving path only issues point reads, so only ``select`` is exposed.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from .errors import (
    SupabaseAuthError,
    SupabaseError,
    SupabaseNotFoundError,
)

# Module-level shared client for connection pooling in app runtimes/tests.
_shared_async_client: httpx.AsyncClient | None = None


def _get_shared_async_client() -> httpx.AsyncClient:
    global _shared_async_client
    if _shared_async_client is None:
        _shared_async_client = httpx.AsyncClient()
    return _shared_async_client


def _reset_shared_async_client_for_tests() -> None:
    """Test helper: clear shared client cache (does not close the instance)."""
    global _shared_async_client
    _shared_async_client = None


def _split_schema_table(table: str, default_schema: str) -> tuple[str, str]:
    # Accept "routing.domain_workspace_mappings" as well as a bare table name.
    # Supabase accesses non-public schemas via the Accept-Profile header.
    if "." in table:
        schema, name = table.split(".", 1)
        return schema.strip(), name.strip()
    return default_schema, table.strip()


def _filters_to_params(
    filters: Mapping[str, tuple[str, str] | str] | None,
) -> dict[str, str]:
    """Render equality-style filters as PostgREST query params (`col=op.value`)."""
    if not filters:
        return {}

    params: dict[str, str] = {}
    for col, clause in filters.items():
        op, val = clause if isinstance(clause, tuple) else ("eq", clause)
        params[col] = f"{op}.{val}"
    return params


class SupabaseClient:
    """Minimal async PostgREST client (service role) with typed results."""

    def __init__(
        self,
        *,
        supabase_url: str,
        service_role_key: str,
        default_schema: str = "public",
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        if not supabase_url:
            raise ValueError("supabase_url is required")
        if not service_role_key:
            raise ValueError("service_role_key is required")

        self._supabase_url = supabase_url.rstrip("/")
        self._service_role_key = service_role_key
        self._default_schema = default_schema or "public"
        self._timeout_seconds = float(timeout_seconds)
        self._client = http_client or _get_shared_async_client()

    @property
    def base_rest_url(self) -> str:
        return f"{self._supabase_url}/rest/v1"

    def _auth_headers(self) -> dict[str, str]:
        # Never log these headers.
        return {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
        }

    def _raise_for_error(self, resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return

        message = resp.text
        code = details = hint = None

        try:
            payload = resp.json()
            if isinstance(payload, dict):
                message = payload.get("message") or message
                code = payload.get("code")
                details = payload.get("details")
                hint = payload.get("hint")
        except ValueError:
            pass

        err_cls: type[SupabaseError]
        if resp.status_code in (401, 403):
            err_cls = SupabaseAuthError
        elif resp.status_code == 404:
            err_cls = SupabaseNotFoundError
        else:
            err_cls = SupabaseError

        # Avoid including secrets in the exception string.
        raise err_cls(
            status_code=resp.status_code,
            message=message,
            code=code,
            details=details,
            hint=hint,
        )

    async def select(
        self,
        table: str,
        filters: Mapping[str, tuple[str, str] | str] | None = None,
        *,
        columns: str = "*",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        schema, table_name = _split_schema_table(table, self._default_schema)
        url = f"{self.base_rest_url}/{table_name}"
        params = _filters_to_params(filters)
        params["select"] = columns
        if limit is not None:
            params["limit"] = str(int(limit))

        headers = {
            **self._auth_headers(),
            "Accept-Profile": schema,
        }

        resp = await self._client.request(
            "GET",
            url,
            params=params,
            headers=headers,
            timeout=self._timeout_seconds,
        )
        self._raise_for_error(resp)
        payload = resp.json()
        if not isinstance(payload, list):
            raise SupabaseError(status_code=500, message="expected list response from select")
        return payload
