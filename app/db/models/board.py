from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.orm import relationship
from app.db.base import Base, UTCDateTime, utcnow

DEFAULT_BOARD_COLOR = "bg-blue-500"

class Board(Base):
    __tablename__ = "boards"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String, nullable=False, default=DEFAULT_BOARD_COLOR)
    user_id = Column(String, nullable=False, index=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)
    columns = relationship(
        "BoardColumn",
        back_populates="board",
        order_by="BoardColumn.sort_order",
    )
