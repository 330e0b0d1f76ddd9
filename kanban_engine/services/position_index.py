from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from kanban_engine.core.config import Settings, get_settings
from kanban_engine.models.card import Card


class InsertPlan(BaseModel):
    """Position for an inserted card plus any re-spaced neighbours"""
    position: float
    # card id -> new position; empty unless the bucket had to be re-spaced
    respaced: Dict[str, float] = {}


class PositionIndex:
    """Ordering of cards inside a single placement bucket.

    Positions are floats so an insertion between two neighbours only needs
    the midpoint. When neighbours get too close the whole bucket is
    re-spaced evenly, keeping the relative order of every card.
    """

    @staticmethod
    def order_key(card: Card) -> Tuple[float, str]:
        # Ties broken by id so equal positions always render the same way
        return (card.position, card.id)

    @staticmethod
    def ordered(bucket: Sequence[Card]) -> List[Card]:
        return sorted(bucket, key=PositionIndex.order_key)

    @staticmethod
    def positions_for(bucket: Sequence[Card]) -> List[Tuple[Card, float]]:
        """Cards of a bucket with their positions, ascending"""
        return [(card, card.position) for card in PositionIndex.ordered(bucket)]

    @staticmethod
    def index_of(bucket: Sequence[Card], card_id: str) -> Optional[int]:
        for index, card in enumerate(PositionIndex.ordered(bucket)):
            if card.id == card_id:
                return index
        return None

    @staticmethod
    def tail_position(bucket: Sequence[Card], settings: Optional[Settings] = None) -> float:
        """Position for appending at the end of a bucket"""
        settings = settings or get_settings()
        if not bucket:
            return settings.POSITION_START
        return max(card.position for card in bucket) + settings.POSITION_STEP

    @staticmethod
    def insert_at(
        bucket: Sequence[Card],
        index: int,
        settings: Optional[Settings] = None
    ) -> InsertPlan:
        """Plan an insertion so the new card ends up at ``index``.

        ``bucket`` must not contain the card being inserted. Out of range
        indexes are clamped to the head or the tail.
        """
        settings = settings or get_settings()
        ordered = PositionIndex.ordered(bucket)
        index = max(0, min(index, len(ordered)))

        if not ordered:
            return InsertPlan(position=settings.POSITION_START)
        if index == 0:
            return InsertPlan(position=ordered[0].position - settings.POSITION_STEP)
        if index == len(ordered):
            return InsertPlan(position=ordered[-1].position + settings.POSITION_STEP)

        lower = ordered[index - 1].position
        upper = ordered[index].position
        if upper - lower >= settings.POSITION_MIN_GAP:
            return InsertPlan(position=(lower + upper) / 2)

        return PositionIndex.respace(ordered, index, settings)

    @staticmethod
    def respace(
        ordered: Sequence[Card],
        index: int,
        settings: Optional[Settings] = None
    ) -> InsertPlan:
        """Evenly re-space a bucket, leaving a free slot at ``index``"""
        settings = settings or get_settings()
        respaced = {}
        for offset, card in enumerate(ordered):
            slot = offset if offset < index else offset + 1
            respaced[card.id] = settings.POSITION_START + slot * settings.POSITION_STEP
        position = settings.POSITION_START + index * settings.POSITION_STEP
        return InsertPlan(position=position, respaced=respaced)
