from sqlalchemy import Column, Date, Integer, String, Text, ForeignKey
from sqlalchemy.orm import relationship
from app.db.base import Base, UTCDateTime, utcnow


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    column_id = Column(Integer, ForeignKey("columns.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    assignee = Column(String, nullable=True)  # email
    due_date = Column(Date, nullable=True)
    priority = Column(String(10), nullable=False, default="medium")
    reminder = Column(String(10), nullable=False, default="none")
    next_reminder_at = Column(UTCDateTime, nullable=True, index=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    column = relationship("BoardColumn", back_populates="tasks")
