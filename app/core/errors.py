class TaskBoardError(Exception):
    """Base error for domain failures; carries the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(TaskBoardError):
    status_code = 400


class Unauthorized(TaskBoardError):
    status_code = 401


class Forbidden(TaskBoardError):
    status_code = 403


class NotFound(TaskBoardError):
    status_code = 404
