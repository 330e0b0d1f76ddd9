"""Interfaces of the systems the engine talks to but does not implement."""

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from kanban_engine.models.card import Card
from kanban_engine.models.placement import PlacementKey
from kanban_engine.models.role import UserRole
from kanban_engine.schemas.card import CardCreate


@runtime_checkable
class PersistenceGateway(Protocol):
    """Durable storage of cards.

    Every call may be slow. A falsy return value or a raised exception means
    the change was not stored and must be rolled back locally.
    """

    async def persist_move(
        self,
        card_id: str,
        destination: PlacementKey,
        destination_index: int,
        position: float
    ) -> bool:
        ...

    async def persist_create(
        self,
        board_id: str,
        destination: PlacementKey,
        fields: CardCreate,
        position: float
    ) -> Optional[Card]:
        ...

    async def persist_archive(self, card_id: str, archived: bool = True) -> bool:
        ...

    async def persist_delete(self, card_id: str) -> bool:
        ...

    async def persist_update(self, card_id: str, changes: Dict[str, Any]) -> bool:
        ...


@runtime_checkable
class IdentityProvider(Protocol):
    """Source of the acting user's role"""

    def current_role(self) -> UserRole:
        ...
