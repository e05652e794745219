"""Shared HTTP helper for the network translation providers."""

import requests

from ... import log
from ...errors import ProviderFailed

logger = log.get_logger()

DEFAULT_TIMEOUT_SECS = 10.0


def request_json(provider: str, method: str, url: str, timeout: float = DEFAULT_TIMEOUT_SECS, **kwargs):
    """Send a request and decode the JSON body.

    Every failure mode (connection error, timeout, non-2xx status, body that
    is not JSON) is reported as ProviderFailed so the chain can move on.

    Args:
        provider: Provider id, used in the error.
        method: HTTP method.
        url: Endpoint URL.
        timeout: Seconds before giving up.
        **kwargs: Passed through to requests (json, params, headers, data).

    Returns:
        Decoded JSON body.
    """
    try:
        response = requests.request(method, url, timeout=timeout, **kwargs)
    except requests.RequestException as e:
        raise ProviderFailed(provider, f"request failed: {e}") from e

    if not response.ok:
        body = response.text[:200] if response.text else ""
        raise ProviderFailed(provider, f"HTTP {response.status_code}: {body}")

    try:
        return response.json()
    except ValueError as e:
        raise ProviderFailed(provider, "response is not valid JSON") from e
