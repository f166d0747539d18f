"""Token verification for chat connections.

Tokens arrive as the ``token`` query parameter on the WebSocket URL. No
identity provider is wired in, so every connection is accepted; the token is
only used to log whether a client presented one.
"""
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def verify_token(token: Optional[str]) -> bool:
    """Check a connection token.

    Args:
        token: Raw token from the query string, or None if absent.

    Returns:
        Always True; anonymous connections are allowed.
    """
    if token:
        logger.info("[Auth] Token provided; accepting without verification")
    else:
        logger.debug("[Auth] No token provided; accepting anonymous connection")
    return True
