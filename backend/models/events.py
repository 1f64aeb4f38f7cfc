"""Notification event models"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .diff import utcnow


class EventType(str, Enum):
    """Notifications fired after engine state changes"""

    EDIT_APPLIED = "edit:applied"
    EDIT_ERROR = "edit:error"
    EDIT_ROLLED_BACK = "edit:rolled_back"
    CHANGESET_CREATED = "changeset:created"
    CHANGESET_APPROVED = "changeset:approved"
    CHANGESET_REJECTED = "changeset:rejected"
    CHANGESET_APPLIED = "changeset:applied"
    CHANGESET_ROLLED_BACK = "changeset:rolled_back"
    IMPACT_WARNING = "impact:warning"


class EngineEvent(BaseModel):
    """SSE-friendly notification payload"""

    type: EventType
    payload: dict[str, Any] = {}
    timestamp: datetime = Field(default_factory=utcnow)
