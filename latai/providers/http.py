"""
HTTP helpers shared by OpenAI-compatible providers.
"""

import logging

import httpx
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


def auth_headers(api_key: str) -> dict[str, str]:
    """Bearer auth headers for OpenAI-compatible APIs."""
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


def list_remote_models(
    base_url: str,
    api_key: str,
    timeout: float = 30.0,
    attempts: int = 3,
) -> list[str]:
    """
    List model IDs from an OpenAI-compatible `/models` endpoint.

    Network failures are retried with exponential backoff; HTTP errors
    (e.g. an invalid key) are raised immediately.

    Args:
        base_url: API root, e.g. https://api.openai.com/v1
        api_key: Bearer token
        timeout: Request timeout in seconds
        attempts: Maximum number of attempts

    Returns:
        Model IDs reported by the API

    Raises:
        ValueError: If the body is not a `{"data": [{"id": ...}]}` listing
    """
    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    for attempt in retrying:
        with attempt:
            response = httpx.get(
                f"{base_url.rstrip('/')}/models",
                headers=auth_headers(api_key),
                timeout=timeout,
            )
            response.raise_for_status()

    data = response.json()
    if not isinstance(data, dict) or not isinstance(data.get("data", []), list):
        raise ValueError(f"unexpected /models payload: {type(data).__name__}")

    ids = []
    for item in data.get("data", []):
        if not isinstance(item, dict) or "id" not in item:
            raise ValueError(f"unexpected /models entry: {item!r}")
        ids.append(item["id"])
    return ids


def verify_models_endpoint(
    provider: str,
    base_url: str,
    api_key: str,
    timeout: float = 30.0,
    attempts: int = 3,
) -> bool:
    """Return True when the key can list models, False otherwise."""
    try:
        models = list_remote_models(base_url, api_key, timeout, attempts)
    except (httpx.HTTPError, ValueError, KeyError) as e:
        logger.warning("%s access verification failed: %s", provider, e)
        return False

    return len(models) > 0
