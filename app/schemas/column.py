from typing import List, Optional
from pydantic import BaseModel, Field

from app.schemas.task import TaskRead

class ColumnCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)

class ColumnUpdate(BaseModel):
    title: str = Field(min_length=1, max_length=255)

class ColumnRead(BaseModel):
    id: int
    board_id: int
    title: str
    sort_order: int
    user_id: Optional[str] = None

    class Config:
        from_attributes = True

class ColumnWithTasks(ColumnRead):
    tasks: List[TaskRead] = []
