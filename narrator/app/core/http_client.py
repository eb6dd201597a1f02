"""HTTP client construction for connection pooling.

One ``httpx.AsyncClient`` is created in the application lifespan and passed
to the forge client and the text generator, so both reuse the same pool.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx

from narrator.app.core.config import Settings, settings as default_settings


def create_http_client(
    config: Optional[Settings] = None, **kwargs
) -> httpx.AsyncClient:
    """Create a new HTTP client with pool limits and granular timeouts.

    The returned client should be closed when done:
        async with create_http_client() as client:
            ...

    Args:
        config: Settings to read defaults from (module settings if omitted)
        **kwargs: Overrides; ``timeout`` replaces all granular timeouts,
            ``transport`` is passed through (useful for tests)

    Returns:
        A new httpx.AsyncClient instance
    """
    config = config or default_settings

    timeout_override = kwargs.get("timeout")
    if timeout_override is not None:
        timeout = httpx.Timeout(timeout_override)
    else:
        timeout = httpx.Timeout(
            connect=config.httpx_connect_timeout,
            read=config.httpx_read_timeout,
            write=config.httpx_write_timeout,
            pool=config.httpx_pool_timeout,
        )

    limits = httpx.Limits(
        max_connections=kwargs.get("max_connections", config.httpx_max_connections),
        max_keepalive_connections=kwargs.get(
            "max_keepalive_connections", config.httpx_max_keepalive_connections
        ),
        keepalive_expiry=kwargs.get("keepalive_expiry", config.httpx_keepalive_expiry),
    )

    client_kwargs = {"timeout": timeout, "limits": limits}
    if "transport" in kwargs:
        client_kwargs["transport"] = kwargs["transport"]
    return httpx.AsyncClient(**client_kwargs)


@asynccontextmanager
async def init_http_client(
    config: Optional[Settings] = None,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create and yield the shared HTTP client, closing it on exit.

    Used in the FastAPI lifespan:

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            async with init_http_client() as http_client:
                ...
                yield
    """
    client = create_http_client(config)
    try:
        yield client
    finally:
        await client.aclose()
