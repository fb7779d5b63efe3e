from typing import Optional
from pydantic import BaseModel

EDITOR_ROLES = ("admin", "superadmin")

class CurrentUser(BaseModel):
    id: str
    email: Optional[str] = None
    role: Optional[str] = None

    @property
    def can_edit_tasks(self) -> bool:
        return self.role in EDITOR_ROLES
