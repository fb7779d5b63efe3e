from datetime import date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

Priority = Literal["low", "medium", "high"]
Reminder = Literal["none", "15 min", "1 hour", "3 hour"]

class TaskCreate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    priority: Priority = "medium"
    reminder: Reminder = "none"

class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    priority: Optional[Priority] = None
    reminder: Optional[Reminder] = None

class TaskMove(BaseModel):
    column_id: int
    index: int = Field(ge=0)

class TaskRead(BaseModel):
    id: int
    column_id: int
    title: str
    description: Optional[str] = None
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    priority: Priority
    reminder: Reminder
    next_reminder_at: Optional[datetime] = None
    sort_order: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class TaskMoveResult(BaseModel):
    moved: bool
    task: TaskRead

class TaskHistoryRead(BaseModel):
    id: int
    task_id: int
    change_description: str
    changed_by: Optional[str] = None
    changed_at: datetime

    class Config:
        from_attributes = True
