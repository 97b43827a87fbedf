"""
Calendar and Task Models

Events and tasks are plain CRUD records owned by the backend. The engine
only needs them to count resources for the free-tier quota and to place
them in calendar windows.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from planboard.periods.parsing import align, parse_timestamp


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Event(BaseModel):
    """A row of the backend `events` table."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = None
    user_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    category: str = Field(default="Personnel", max_length=100)
    color: str = Field(
        default="#8B5CF6",
        pattern="^#[0-9A-Fa-f]{6}$",
        description="Display colour as #RRGGBB"
    )

    @field_validator('start_time', 'end_time', mode='before')
    @classmethod
    def parse_times(cls, v):
        return parse_timestamp(v)

    @model_validator(mode='after')
    def validate_times(self) -> 'Event':
        if align(self.end_time, self.start_time) < self.start_time:
            raise ValueError("Event end cannot be before start")
        return self

    def is_finished(self, now: datetime) -> bool:
        return align(self.end_time, now) <= now


class Task(BaseModel):
    """A row of the backend `tasks` table."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = None
    user_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    completed: bool = False
    priority: TaskPriority = TaskPriority.MEDIUM
    category: str = Field(default="Personnel", max_length=100)
    due_date: Optional[datetime] = None
    estimated_time: Optional[int] = Field(
        default=None,
        ge=0,
        description="Estimated duration in minutes"
    )

    @field_validator('due_date', mode='before')
    @classmethod
    def parse_due_date(cls, v):
        if v is None or v == "":
            return None
        return parse_timestamp(v)
