"""Standard HTTP client helpers for external integrations."""

from __future__ import annotations

from typing import Optional

import httpx

USER_AGENT = "BlueprintService/1.0"


def pooled_client(
    base_url: str = "",
    timeout: float = 30.0,
    max_connections: int = 100,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Build a keep-alive async client shared across requests.

    The caller owns the client and must ``aclose()`` it on shutdown.
    """

    limits = httpx.Limits(
        max_connections=max_connections,
        max_keepalive_connections=max_connections,
    )
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout,
        limits=limits,
        headers={"User-Agent": USER_AGENT},
        transport=transport,
    )


__all__ = ["pooled_client"]
