from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from kanban_engine.models.role import UserRole


class CardActivity(BaseModel):
    """A recorded change of column and/or status"""
    card_id: str
    board_id: str
    actor_role: UserRole
    action: str = "moved"
    from_column: Optional[str] = None
    to_column: Optional[str] = None
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    at: datetime
