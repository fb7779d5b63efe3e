from pydantic import BaseModel

class SystemStats(BaseModel):
    boards: int
    columns: int
    tasks: int
    scheduled_reminders: int
