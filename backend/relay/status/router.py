"""Status endpoint for external health checks.

Endpoints:
    GET /health                - Connection and conversation counters
    GET /health?detailed=true  - Counters plus per-conversation details
"""
import logging

from fastapi import APIRouter, Query, Request

from relay.chat.schemas import utc_now_iso
from relay.chat.service import ChatRelay

from .schemas import ConversationStatus, StatusReport

logger = logging.getLogger(__name__)

router = APIRouter(tags=["status"])


def build_status_report(relay: ChatRelay, detailed: bool = False) -> StatusReport:
    """Project the relay state into a StatusReport.

    Reads counters only; never seeds history or touches connections.
    """
    report = StatusReport(
        active_connections=len(relay.registry),
        active_conversations=len(relay.store),
        timestamp=utc_now_iso(),
    )
    if detailed:
        report.conversations = [
            ConversationStatus(
                id=conversation.id,
                participants=conversation.participant_names(),
                message_count=conversation.message_count,
            )
            for conversation in relay.store.conversations()
        ]
    return report


@router.get("/health")
async def health(
    request: Request,
    detailed: bool = Query(False, description="Include per-conversation details"),
) -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object with live connection and conversation counts.
    """
    report = build_status_report(request.app.state.relay, detailed=detailed)
    return report.model_dump(exclude_none=True)
