"""Pydantic schemas for the status endpoint."""
from typing import List, Optional

from pydantic import BaseModel, Field


class ConversationStatus(BaseModel):
    """Per-conversation view included in the detailed report."""
    id: str
    participants: List[str] = Field(default_factory=list)
    message_count: int = 0


class StatusReport(BaseModel):
    """Response body for GET /health."""
    status: str = "OK"
    active_connections: int
    active_conversations: int
    timestamp: str
    conversations: Optional[List[ConversationStatus]] = None
