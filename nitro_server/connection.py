"""Connection probe for stored Nitro credentials."""

import logging
from typing import Optional

import httpx

from .exceptions import UnconfiguredError
from .models import ConnectionStatus, NitroSettings

logger = logging.getLogger(__name__)


def check_connection(
    settings: NitroSettings, transport: Optional[httpx.BaseTransport] = None
) -> ConnectionStatus:
    """
    Check that the endpoint accepts the token by listing products.

    Args:
        settings: Endpoint and token to test
        transport: Optional httpx transport (used by tests)

    Returns:
        SUCCESS on a 2xx answer, FAILURE on any other status or transport error

    Raises:
        UnconfiguredError: If no token is set; nothing is sent in that case
    """
    if not settings.api_token:
        raise UnconfiguredError("Enter the API token before testing the connection")

    url = f"{settings.endpoint}public/v1/products?api_token={settings.api_token}"
    try:
        with httpx.Client(timeout=30.0, transport=transport) as client:
            response = client.get(url, headers={"Accept": "application/json"})
    except httpx.HTTPError as e:
        logger.warning(f"Connection test failed: {e}")
        return ConnectionStatus.FAILURE

    if response.is_success:
        logger.info("Connection test succeeded")
        return ConnectionStatus.SUCCESS

    logger.warning(f"Connection test failed: status={response.status_code}")
    return ConnectionStatus.FAILURE
