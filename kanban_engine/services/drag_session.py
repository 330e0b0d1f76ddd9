from typing import Dict, List, Mapping, Optional, Sequence, Union
from enum import Enum

from kanban_engine.logs import debug_logger
from kanban_engine.models.card import Card
from kanban_engine.models.placement import PlacementKey
from kanban_engine.schemas.card import CardCreate
from kanban_engine.schemas.operation import CreateRequest, MoveRequest


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    DROPPED = "dropped"
    CANCELLED = "cancelled"


RenderedBuckets = Mapping[PlacementKey, Sequence[Union[Card, str]]]


def _card_ids(items: Sequence[Union[Card, str]]) -> List[str]:
    return [item.id if isinstance(item, Card) else item for item in items]


class DragSession:
    """One drag gesture, from pointer-down to drop or cancel.

    The session works on the buckets as they were rendered when the drag
    started and yields at most one request, which the store consumes once.
    """

    def __init__(self, rendered: RenderedBuckets):
        self.state = DragState.IDLE
        self.rendered: Dict[PlacementKey, List[str]] = {
            key: _card_ids(items) for key, items in rendered.items()
        }
        self.card_id: Optional[str] = None
        self.origin: Optional[PlacementKey] = None
        self.origin_index: Optional[int] = None
        self.fields: Optional[CardCreate] = None
        self.hovered: Optional[PlacementKey] = None
        self._request: Optional[Union[MoveRequest, CreateRequest]] = None

    @classmethod
    def begin(
        cls,
        card: Union[Card, str],
        origin: PlacementKey,
        origin_index: int,
        rendered: RenderedBuckets
    ) -> "DragSession":
        """Start dragging an existing card"""
        session = cls(rendered)
        session.card_id = card.id if isinstance(card, Card) else card
        session.origin = origin
        session.origin_index = origin_index
        session.hovered = origin
        session.state = DragState.DRAGGING
        debug_logger.debug(f"Drag of card {session.card_id} started at {origin}[{origin_index}]")
        return session

    @classmethod
    def begin_new(cls, fields: Union[CardCreate, dict], rendered: RenderedBuckets) -> "DragSession":
        """Start dragging a card that does not exist yet"""
        session = cls(rendered)
        session.fields = fields if isinstance(fields, CardCreate) else CardCreate.model_validate(fields)
        session.state = DragState.DRAGGING
        return session

    @property
    def is_new(self) -> bool:
        return self.fields is not None

    def hover(self, key: Optional[PlacementKey]) -> bool:
        """Track the bucket under the pointer; False when it is not a drop target"""
        if self.state != DragState.DRAGGING:
            return False
        self.hovered = key if key in self.rendered else None
        return self.hovered is not None

    def drop(
        self,
        key: Optional[PlacementKey] = None,
        index: Optional[int] = None,
        before_card_id: Optional[str] = None
    ) -> Optional[Union[MoveRequest, CreateRequest]]:
        """Finish the gesture over ``key`` (or the hovered bucket).

        The insertion point is ``index`` or the slot in front of
        ``before_card_id``; without either the card goes to the end.
        Returns None when the drop cancels the session.
        """
        if self.state != DragState.DRAGGING:
            return None

        target = key if key is not None else self.hovered
        if target is None or target not in self.rendered:
            debug_logger.debug("Drop outside any bucket, drag cancelled")
            self.cancel()
            return None

        others = [card_id for card_id in self.rendered[target] if card_id != self.card_id]
        if before_card_id is not None:
            index = others.index(before_card_id) if before_card_id in others else len(others)
        elif index is None:
            index = len(others)
        index = max(0, min(index, len(others)))

        if self.is_new:
            self._request = CreateRequest(destination=target, fields=self.fields)
        else:
            if target == self.origin and index == self.origin_index:
                debug_logger.debug(f"Card {self.card_id} dropped where it started, drag cancelled")
                self.cancel()
                return None
            self._request = MoveRequest(
                card_id=self.card_id,
                source=self.origin,
                destination=target,
                destination_index=index
            )

        self.state = DragState.DROPPED
        return self._request

    def cancel(self):
        self.state = DragState.CANCELLED
        self._request = None

    def consume(self) -> Optional[Union[MoveRequest, CreateRequest]]:
        """Hand out the drop result once"""
        request, self._request = self._request, None
        return request
