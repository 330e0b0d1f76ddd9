from datetime import date
from typing import List, Optional

from pydantic import BaseModel, validator

from kanban_engine.models.card import parse_due_date


class CardBase(BaseModel):
    """Base schema for card content"""
    title: str
    description: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[date] = None
    tags: List[str] = []
    card_type: Optional[str] = None

    @validator('due_date', pre=True)
    def parse_due(cls, value):
        return parse_due_date(value)

    @validator('title')
    def title_not_blank(cls, value):
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value


class CardCreate(CardBase):
    """Schema for card creation"""
    created_by: Optional[str] = None


class CardUpdate(BaseModel):
    """Schema for content edits; placement and position are never edited here"""
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[date] = None
    tags: Optional[List[str]] = None

    @validator('due_date', pre=True)
    def parse_due(cls, value):
        return parse_due_date(value)

    @validator('title')
    def title_not_blank(cls, value):
        value = (value or "").strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @validator('tags', pre=True)
    def clear_tags(cls, value):
        # Explicit None clears the tags
        return [] if value is None else value

    def changes(self) -> dict:
        """Only the fields the caller actually set"""
        return self.model_dump(exclude_unset=True)
