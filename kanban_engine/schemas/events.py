from datetime import datetime
from typing import Any, Dict, Optional
from enum import Enum

from pydantic import BaseModel, validator

from kanban_engine.models.card import Card


class BoardEventType(str, Enum):
    """Events published to the presentation layer"""
    CARD_CREATED = "card_created"
    CARD_UPDATED = "card_updated"
    CARD_MOVED = "card_moved"
    CARD_ARCHIVED = "card_archived"
    CARD_UNARCHIVED = "card_unarchived"
    CARD_DELETED = "card_deleted"
    CARD_JUSTIFIED = "card_justified"
    CELEBRATE = "celebrate"
    APPROVAL_REQUESTED = "approval_requested"
    OPERATION_REJECTED = "operation_rejected"
    OPERATION_FAILED = "operation_failed"
    REMOTE_APPLIED = "remote_applied"


class BoardEvent(BaseModel):
    """Message delivered to board subscribers"""
    event: BoardEventType
    data: Dict[str, Any]


class RemoteUpdateType(str, Enum):
    """Kinds of authoritative changes pushed by the persistence or automation side"""
    UPSERT = "upsert"
    DELETE = "delete"


class RemoteCardUpdate(BaseModel):
    """Authoritative card state to apply verbatim"""
    type: RemoteUpdateType = RemoteUpdateType.UPSERT
    card_id: str
    card: Optional[Card] = None
    received_at: Optional[datetime] = None

    @validator('card', always=True)
    def card_matches_id(cls, card, values):
        if card is None:
            if values.get('type') == RemoteUpdateType.UPSERT:
                raise ValueError("upsert requires the card state")
            return card
        if card.id != values.get('card_id'):
            raise ValueError("card.id does not match card_id")
        return card

    @classmethod
    def upsert(cls, card: Card) -> "RemoteCardUpdate":
        return cls(type=RemoteUpdateType.UPSERT, card_id=card.id, card=card)

    @classmethod
    def delete(cls, card_id: str) -> "RemoteCardUpdate":
        return cls(type=RemoteUpdateType.DELETE, card_id=card_id)
