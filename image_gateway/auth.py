"""Shared-secret API key gate for mutating routes."""

import hmac
from collections.abc import Iterable
from logging import getLogger
from typing import Optional

from fastapi import Header

from image_gateway.dependencies import AppSettings
from image_gateway.exceptions import InvalidAPIKeyError
from image_gateway.exceptions import MissingAPIKeyError
from image_gateway.exceptions import ServerMisconfiguredError

API_KEY_HEADER = "X-API-Key"

logger = getLogger(__name__)


def check_api_key(api_key: Optional[str], valid_keys: Iterable[str]) -> None:
    """Validate ``api_key`` against the configured keys.

    Raises:
        MissingAPIKeyError: If no key was sent
        ServerMisconfiguredError: If the server has no keys configured
        InvalidAPIKeyError: If the key matches none of the configured keys
    """
    if not api_key:
        raise MissingAPIKeyError(
            f"API key required. Send it in the {API_KEY_HEADER} header."
        )

    valid_keys = list(valid_keys)
    if not valid_keys:
        logger.error("No API keys configured; rejecting authenticated request")
        raise ServerMisconfiguredError("Server is not configured correctly")

    # Constant time across all configured keys.
    matched = False
    for key in valid_keys:
        matched |= hmac.compare_digest(api_key.encode(), key.encode())
    if not matched:
        logger.warning("Rejected request with an invalid API key")
        raise InvalidAPIKeyError("Invalid API key")


def require_api_key(
    settings: AppSettings,
    x_api_key: Optional[str] = Header(default=None),
) -> None:
    check_api_key(x_api_key, settings.valid_api_keys)
