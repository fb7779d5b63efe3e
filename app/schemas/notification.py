from datetime import date
from typing import Optional
from pydantic import BaseModel

class AssignmentEmailRequest(BaseModel):
    email: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    due_date: Optional[date] = None

class CalendarEventRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[date] = None
    assignee_email: Optional[str] = None

class ReminderRunResult(BaseModel):
    success: bool
    sent: int
    message: str
