from sqlalchemy import Column, Integer, String, Text, ForeignKey
from app.db.base import Base, UTCDateTime, utcnow

class TaskHistory(Base):
    __tablename__ = "task_history"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    change_description = Column(Text, nullable=False)
    changed_by = Column(String, nullable=True)
    changed_at = Column(UTCDateTime, default=utcnow, nullable=False)
