"""Real-time chat relay over WebSocket."""

__version__ = "0.1.0"
