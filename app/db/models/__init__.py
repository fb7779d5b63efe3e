from app.db.models.board import Board
from app.db.models.column import BoardColumn
from app.db.models.task import Task
from app.db.models.task_history import TaskHistory

__all__ = ["Board", "BoardColumn", "Task", "TaskHistory"]
