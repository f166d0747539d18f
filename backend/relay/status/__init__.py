"""Read-only status reporting over the relay state."""
from .router import build_status_report, router
from .schemas import ConversationStatus, StatusReport

__all__ = ["ConversationStatus", "StatusReport", "build_status_report", "router"]
