from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from app.schemas.column import ColumnWithTasks

class BoardCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = None

class BoardUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = None

class BoardRead(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    color: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class BoardWithColumns(BoardRead):
    columns: List[ColumnWithTasks]
