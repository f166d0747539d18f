"""Connection authentication.

Services:
    - verify_token: Token check applied to every WebSocket connection.
"""
from .service import verify_token

__all__ = ["verify_token"]
