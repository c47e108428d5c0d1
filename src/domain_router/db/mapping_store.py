"""Supabase-backed DomainMappingStore implementation.

Implements the DomainMappingStore protocol using the SupabaseClient to read
rows of the domain mapping table via PostgREST. One point read per lookup,
keyed by the exact normalized hostname. The router never writes this table.
"""

from __future__ import annotations

import httpx

from ..errors import StoreUnavailable
from ..models import DomainMapping
from ..observability.logging import get_logger
from ..settings import RouterSettings
from .errors import SupabaseError
from .supabase_client import SupabaseClient

logger = get_logger(__name__)

COLUMNS = "domain,workspace_id,status,created_at,verified_at"


class SupabaseDomainMappingStore:
    """Domain mappings backed by Supabase PostgREST.

    Satisfies the ``DomainMappingStore`` protocol from ``protocols.py``.
    """

    DEFAULT_TABLE = "domain_workspace_mappings"

    def __init__(self, client: SupabaseClient, table: str = DEFAULT_TABLE) -> None:
        self._client = client
        self._table = table

    async def lookup(self, hostname: str) -> DomainMapping | None:
        try:
            rows = await self._client.select(
                self._table,
                filters={"domain": ("eq", hostname)},
                columns=COLUMNS,
                limit=1,
            )
        except httpx.TimeoutException as exc:
            raise StoreUnavailable(hostname, "timeout") from exc
        except httpx.HTTPError as exc:
            raise StoreUnavailable(hostname, type(exc).__name__) from exc
        except SupabaseError as exc:
            raise StoreUnavailable(hostname, f"status={exc.status_code}") from exc
        except ValueError as exc:
            # Undecodable body from a misbehaving proxy in front of PostgREST.
            raise StoreUnavailable(hostname, "invalid_response") from exc

        if not rows:
            logger.info("mapping_missing", host=hostname)
            return None

        mapping = DomainMapping.from_row(rows[0])
        if not mapping.is_active:
            logger.info(
                "mapping_inactive",
                host=hostname,
                status=mapping.status.value if mapping.status else None,
                has_workspace_id=bool(mapping.workspace_id),
            )
            return None
        return mapping


def build_mapping_store(
    settings: RouterSettings,
    http_client: httpx.AsyncClient | None = None,
) -> SupabaseDomainMappingStore:
    """Build the Supabase store described by ``settings``.

    The PostgREST request timeout matches the serving-path lookup bound.
    """
    client = SupabaseClient(
        supabase_url=settings.supabase_url,
        service_role_key=settings.supabase_service_role_key,
        http_client=http_client,
        timeout_seconds=settings.store_timeout_seconds,
    )
    return SupabaseDomainMappingStore(client, table=settings.mapping_table)
