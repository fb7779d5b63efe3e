from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from app.db.base import Base, UTCDateTime, utcnow

DEFAULT_COLUMN_TITLES = ("To Do", "In Progress", "Review", "Done")

# Reminders only fire for tasks sitting in one of these lanes.
ACTIVE_COLUMN_TITLES = ("To Do", "In Progress")
INACTIVE_COLUMN_TITLES = ("Review", "Done")

class BoardColumn(Base):
    __tablename__ = "columns"

    id = Column(Integer, primary_key=True, index=True)
    board_id = Column(Integer, ForeignKey("boards.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    user_id = Column(String, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    board = relationship("Board", back_populates="columns")
    tasks = relationship("Task", back_populates="column", order_by="Task.sort_order")

    @property
    def is_active(self) -> bool:
        return self.title in ACTIVE_COLUMN_TITLES
