from datetime import date, datetime
from typing import List, Optional
import enum

from pydantic import BaseModel, validator


class CardPriority(str, enum.Enum):
    """Priorities on simple boards"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class CompoundPriority(str, enum.Enum):
    """Priorities on compound (design/video/devs/...) boards"""
    NORMAL = "normal"
    URGENT = "urgent"


def parse_due_date(value):
    """Accept dates, datetimes and ISO strings (including a trailing 'Z')"""
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith('Z'):
            # fromisoformat wants an explicit offset for UTC
            text = text[:-1] + '+00:00'
        if 'T' in text or ' ' in text:
            return datetime.fromisoformat(text).date()
        return date.fromisoformat(text)
    if isinstance(value, datetime):
        return value.date()
    return value


class Card(BaseModel):
    """Card as held by the in-memory board projection"""
    id: str
    board_id: str
    column_id: str
    # Stored sub-status; may be missing or unknown and is kept verbatim
    status: Optional[str] = None
    title: str
    description: Optional[str] = None
    priority: str = CardPriority.MEDIUM.value
    due_date: Optional[date] = None
    tags: List[str] = []
    position: float = 0.0
    archived: bool = False
    archived_at: Optional[datetime] = None
    justification: Optional[str] = None
    justification_at: Optional[datetime] = None
    card_type: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @validator('due_date', pre=True)
    def parse_due(cls, value):
        return parse_due_date(value)

    @validator('priority', pre=True)
    def priority_value(cls, value):
        if isinstance(value, enum.Enum):
            return value.value
        return value

    def is_overdue(self, today: Optional[date] = None) -> bool:
        """True once the due date lies strictly before today"""
        if self.due_date is None or self.archived:
            return False
        today = today or date.today()
        return self.due_date < today

    def content(self) -> dict:
        """Content fields; everything except placement, ordering and lifecycle flags"""
        return self.model_dump(include=CONTENT_FIELDS)


CONTENT_FIELDS = {
    "title",
    "description",
    "priority",
    "due_date",
    "tags",
    "justification",
    "justification_at",
    "card_type",
}
