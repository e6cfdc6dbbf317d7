"""
Taskboard Core Models Module

Pydantic models for task records, the create/update payloads accepted by the
API, and the response envelopes it returns.

Author: jetgause
Created: 2025-12-10
"""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ==================== ENUMS ====================

class TaskStatus(str, Enum):
    """Task status enumeration"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, value: Optional[str]) -> "TaskStatus":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.PENDING

    def toggled(self) -> "TaskStatus":
        """Completed tasks go back to pending, everything else completes"""
        if self is TaskStatus.COMPLETED:
            return TaskStatus.PENDING
        return TaskStatus.COMPLETED


class TaskPriority(str, Enum):
    """Task priority enumeration"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def from_db(cls, value: Optional[str]) -> "TaskPriority":
        raw = (value or "").strip().lower()
        raw = LEGACY_PRIORITY_LABELS.get(raw, raw)
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


# Labels written by the first version of the web client
LEGACY_PRIORITY_LABELS = {
    "basse": "low",
    "moyenne": "medium",
    "haute": "high",
    "urgente": "urgent",
}


def parse_due_date(value) -> Optional[date]:
    """Best-effort conversion of a stored DateLimite value"""
    if value is None:
        return None
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


# ==================== TASK MODELS ====================

class TaskFields(BaseModel):
    """Mutable task fields as sent by the client.

    Title is optional at this level so that an empty or missing title is
    reported as a taskboard ValidationError rather than a schema error.
    """
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(default="", max_length=255)
    description: str = Field(default="", max_length=5000)
    status: TaskStatus = TaskStatus.PENDING
    due_date: Optional[date] = Field(default=None, alias="dueDate")
    priority: TaskPriority = TaskPriority.MEDIUM

    @field_validator("description", mode="before")
    @classmethod
    def none_description_is_empty(cls, v):
        return "" if v is None else v

    @field_validator("due_date", mode="before")
    @classmethod
    def blank_due_date_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class TaskRecord(BaseModel):
    """A stored task, as returned to its owner"""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    due_date: Optional[date] = Field(default=None, alias="dueDate")
    priority: TaskPriority = TaskPriority.MEDIUM
    owner_key: str = Field(..., alias="ownerKey")

    def fields(self) -> TaskFields:
        """Mutable part of the record, e.g. for read-modify-write updates"""
        return TaskFields(
            title=self.title,
            description=self.description,
            status=self.status,
            due_date=self.due_date,
            priority=self.priority,
        )


# ==================== RESPONSE ENVELOPES ====================

class MessageResponse(BaseModel):
    message: str


class TaskListResponse(BaseModel):
    message: str = "success"
    data: List[TaskRecord] = []


class TaskResponse(BaseModel):
    message: str
    data: TaskRecord


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class SchemaReport(BaseModel):
    """Diagnostic view of the task table"""
    table: str
    columns: List[str] = []
    has_responsable: bool = Field(default=False, alias="hasResponsable")
    has_user_id: bool = Field(default=False, alias="hasUserId")
    has_user_email: bool = Field(default=False, alias="hasUserEmail")
    layout: Optional[str] = None
    policy: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)
