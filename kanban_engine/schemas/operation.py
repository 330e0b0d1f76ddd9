from typing import Optional

from pydantic import BaseModel

from kanban_engine.models.card import Card
from kanban_engine.models.placement import PlacementKey
from kanban_engine.schemas.card import CardCreate


class SideEffects(BaseModel):
    """Presentation-only signals computed alongside a decision"""
    celebrate: bool = False
    automation_handoff: bool = False
    notify_requester: bool = False


class Decision(BaseModel):
    """Outcome of a transition policy check"""
    allowed: bool
    reason: Optional[str] = None
    side_effects: SideEffects = SideEffects()

    @classmethod
    def allow(cls, side_effects: Optional[SideEffects] = None) -> "Decision":
        return cls(allowed=True, side_effects=side_effects or SideEffects())

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(allowed=False, reason=reason)


class MoveRequest(BaseModel):
    """Single atomic move produced by a drag gesture"""
    card_id: str
    source: PlacementKey
    destination: PlacementKey
    destination_index: int


class CreateRequest(BaseModel):
    """Card creation produced by dropping a new card on a bucket"""
    destination: PlacementKey
    fields: CardCreate


class OperationResult(BaseModel):
    """Successful outcome of a store operation"""
    card: Optional[Card] = None
    side_effects: SideEffects = SideEffects()
    # True when nothing changed and no persistence round-trip happened
    noop: bool = False
