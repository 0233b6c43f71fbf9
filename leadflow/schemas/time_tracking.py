"""Time tracking schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from leadflow.models.clock_event import ClockEventType


class ClockRequest(BaseModel):
    type: ClockEventType
    location: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=2000)


class ClockEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    event_type: ClockEventType
    timestamp: datetime
    location: Optional[str]
    notes: Optional[str]
