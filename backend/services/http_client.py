"""Shared HTTP helpers for provider adapters."""

import httpx

from backend.config import settings
from backend.services.errors import ProviderUnavailable


def create_http_client(timeout_s: float | None = None) -> httpx.AsyncClient:
    """Create the async client shared by all providers for one planning request."""
    return httpx.AsyncClient(
        timeout=timeout_s if timeout_s is not None else settings.http_timeout_s,
        headers={"User-Agent": settings.user_agent},
    )


async def fetch_json(client: httpx.AsyncClient, method: str, url: str, **kwargs):
    """Send a request and return the decoded JSON body.

    Transport errors, non-2xx responses and undecodable bodies all mean the
    provider can't be used right now, so they surface as ProviderUnavailable.
    """
    try:
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPError as e:
        raise ProviderUnavailable(f"{method} {url} failed: {e}") from e
    except ValueError as e:
        raise ProviderUnavailable(f"{method} {url} returned invalid JSON") from e
