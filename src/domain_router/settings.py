"""Edge router configuration settings.

RouterSettings is the single configuration object accepted by the resolver,
the edge entry points and create_app(). It is a plain dataclass (not
env-coupled) so tests can inject config without touching os.environ.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

WORKSPACE_PATH_STYLES: tuple[str, ...] = ("numeric", "opaque")


@dataclass(frozen=True, slots=True)
class RouterSettings:
    """Configuration for the custom-domain edge router.

    All fields have sensible defaults for local development.
    Non-local environments must supply origin_host and Supabase credentials.
    """

    # ── Environment ────────────────────────────────────────────────
    environment: str = "local"
    """One of: local, dev, staging, production."""

    # ── Shared origin ──────────────────────────────────────────────
    origin_host: str = "origin.localhost"
    """Hostname of the shared application deployment every workspace lives on."""

    origin_scheme: str = "https"

    origin_timeout_seconds: float = 30.0

    platform_host_suffixes: tuple[str, ...] = ("amplifyapp.com",)
    """Hosts that are the platform's own default domain; routed untouched."""

    # ── Resolution ─────────────────────────────────────────────────
    cache_ttl_seconds: float = 300.0
    """TTL for positive and negative cache entries alike."""

    store_timeout_seconds: float = 0.03
    """Upper bound for one lookup store read on the serving path."""

    fallback_workspace_id: str | None = None
    """Workspace used for hosts with no active mapping. None means 404."""

    # ── Transform ──────────────────────────────────────────────────
    carrier_header: str = "x-custom-host"
    """Reserved header carrying the origin host between the two stages."""

    workspace_path_style: str = "numeric"
    """``numeric`` -> /workspace-<n>/...; ``opaque`` -> /<workspace_id>/..."""

    workspace_segment_pattern: str = r"^/workspace-\d+(?=/|$)"
    """Paths matching this already carry an explicit workspace segment."""

    diagnostic_headers: bool = True

    # ── Supabase ───────────────────────────────────────────────────
    supabase_url: str = ""
    """Supabase project URL (e.g. https://xyz.supabase.co)."""

    supabase_service_role_key: str = ""
    """Supabase service-role key for PostgREST calls. Never log this."""

    mapping_table: str = "domain_workspace_mappings"

    @property
    def is_local(self) -> bool:
        return self.environment == "local"

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if self.cache_ttl_seconds <= 0:
            errors.append("cache_ttl_seconds must be positive")
        if self.store_timeout_seconds <= 0:
            errors.append("store_timeout_seconds must be positive")
        if self.origin_timeout_seconds <= 0:
            errors.append("origin_timeout_seconds must be positive")
        if self.workspace_path_style not in WORKSPACE_PATH_STYLES:
            errors.append(
                f"workspace_path_style must be one of {', '.join(WORKSPACE_PATH_STYLES)}"
            )
        if not self.carrier_header or self.carrier_header.lower() == "host":
            errors.append("carrier_header must be a dedicated header name")
        try:
            re.compile(self.workspace_segment_pattern)
        except re.error as exc:
            errors.append(f"workspace_segment_pattern is invalid: {exc}")
        if not self.origin_host:
            errors.append(f"{self.environment}: origin_host is required")
        if not self.is_local:
            if not self.supabase_url:
                errors.append(f"{self.environment}: supabase_url is required")
            if not self.supabase_service_role_key:
                errors.append(
                    f"{self.environment}: supabase_service_role_key is required"
                )
        return errors

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> RouterSettings:
        """Build settings from environment variables.

        This is a convenience factory for production use. Tests should
        construct RouterSettings directly.
        """
        if env is None:
            env = dict(os.environ)
        defaults = cls()

        suffixes_raw = env.get("PLATFORM_HOST_SUFFIXES", "")
        suffixes = (
            tuple(s.strip().lower() for s in suffixes_raw.split(",") if s.strip())
            if suffixes_raw
            else defaults.platform_host_suffixes
        )

        return cls(
            environment=env.get("ENVIRONMENT", "local"),
            origin_host=env.get("ORIGIN_HOST", defaults.origin_host),
            origin_scheme=env.get("ORIGIN_SCHEME", defaults.origin_scheme),
            origin_timeout_seconds=float(
                env.get("ORIGIN_TIMEOUT_SECONDS", defaults.origin_timeout_seconds)
            ),
            platform_host_suffixes=suffixes,
            cache_ttl_seconds=float(env.get("CACHE_TTL_SECONDS", defaults.cache_ttl_seconds)),
            store_timeout_seconds=float(
                env.get("STORE_TIMEOUT_SECONDS", defaults.store_timeout_seconds)
            ),
            fallback_workspace_id=env.get("FALLBACK_WORKSPACE_ID") or None,
            carrier_header=env.get("CARRIER_HEADER", defaults.carrier_header).lower(),
            workspace_path_style=env.get("WORKSPACE_PATH_STYLE", defaults.workspace_path_style),
            workspace_segment_pattern=env.get(
                "WORKSPACE_SEGMENT_PATTERN", defaults.workspace_segment_pattern
            ),
            diagnostic_headers=env.get("DIAGNOSTIC_HEADERS", "true").lower()
            in ("1", "true", "yes"),
            supabase_url=env.get("SUPABASE_URL", ""),
            supabase_service_role_key=env.get("SUPABASE_SERVICE_ROLE_KEY", ""),
            mapping_table=env.get("MAPPING_TABLE", defaults.mapping_table),
        )
