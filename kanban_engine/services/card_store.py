"""In-memory projection of one board's cards with optimistic writes.

Every mutating operation follows the same protocol: validate and decide
synchronously, snapshot the touched cards, apply the change locally, then
await the persistence gateway. If persistence fails the snapshot is put
back exactly as it was, unless a newer local or remote change to the same
card superseded it.
"""

from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union
import asyncio
import uuid

from pydantic import BaseModel, ValidationError

from kanban_engine.core.config import Settings, get_settings
from kanban_engine.core.exceptions import (
    InvalidCardData,
    InvalidPlacement,
    KanbanError,
    NotFound,
    PermissionDenied,
    PersistenceFailure,
)
from kanban_engine.logs import debug_logger, log_function
from kanban_engine.logs.engine_log import engine_logger
from kanban_engine.models.board import Board
from kanban_engine.models.card import Card, CardPriority, CompoundPriority
from kanban_engine.models.placement import CompoundPlacement, PlacementKey, SimplePlacement
from kanban_engine.models.role import UserRole
from kanban_engine.schemas.card import CardCreate, CardUpdate
from kanban_engine.schemas.events import RemoteCardUpdate, RemoteUpdateType
from kanban_engine.schemas.operation import CreateRequest, MoveRequest, OperationResult
from kanban_engine.services.activity_service import ActivityLog
from kanban_engine.services.collaborators import IdentityProvider, PersistenceGateway
from kanban_engine.services.event_service import BoardEventBroadcaster
from kanban_engine.services.position_index import PositionIndex
from kanban_engine.services.transition_policy import TransitionPolicy


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BoardCardStore:
    """Cards of a single board, grouped by placement key"""

    def __init__(
        self,
        board: Board,
        persistence: PersistenceGateway,
        cards: Optional[List[Card]] = None,
        broadcaster: Optional[BoardEventBroadcaster] = None,
        activity_log: Optional[ActivityLog] = None,
        identity: Optional[IdentityProvider] = None,
        settings: Optional[Settings] = None
    ):
        self.board = board
        self.persistence = persistence
        self.broadcaster = broadcaster or BoardEventBroadcaster()
        self.activity_log = activity_log or ActivityLog()
        self.identity = identity
        self.settings = settings or get_settings()

        self._cards: Dict[str, Card] = {}
        # Bumped on every local or remote change; stale rollbacks compare against it
        self._revisions: Dict[str, int] = {}

        for card in cards or []:
            self._admit(card.model_copy(deep=True))

        engine_logger.info(f"Store: loaded {len(self._cards)} cards for board {board.id}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def keys(self) -> List[PlacementKey]:
        """Every placement bucket of the board, in column then status order"""
        keys = []
        for column in self.board.columns:
            if self.board.is_compound:
                for status_id in self.board.status_ids:
                    keys.append(CompoundPlacement(
                        board_id=self.board.id,
                        column_id=column.id,
                        status_id=status_id
                    ))
            else:
                keys.append(SimplePlacement(board_id=self.board.id, column_id=column.id))
        return keys

    def placement_of(self, card: Card) -> PlacementKey:
        """Bucket a card is displayed in; unknown statuses fall into the default one"""
        if self.board.is_compound:
            return CompoundPlacement(
                board_id=self.board.id,
                column_id=card.column_id,
                status_id=self.board.resolve_status(card.status)
            )
        return SimplePlacement(board_id=self.board.id, column_id=card.column_id)

    def cards_by_placement(self) -> Dict[PlacementKey, Tuple[Card, ...]]:
        """Active cards grouped by placement, each bucket in display order.

        Buckets are tuples of copies; changing them never touches the store.
        """
        grouped: Dict[PlacementKey, List[Card]] = {key: [] for key in self.keys()}
        for card in self._cards.values():
            if card.archived:
                continue
            grouped[self.placement_of(card)].append(card)
        return {
            key: tuple(card.model_copy(deep=True) for card in PositionIndex.ordered(bucket))
            for key, bucket in grouped.items()
        }

    def view(self, actor_role: Optional[UserRole] = None) -> Dict[PlacementKey, Tuple[Card, ...]]:
        """Board snapshot for a role allowed to see the board"""
        TransitionPolicy.require(TransitionPolicy.decide_view(self._resolve_role(actor_role), self.board))
        return self.cards_by_placement()

    def archived_cards(self) -> Tuple[Card, ...]:
        archived = [card for card in self._cards.values() if card.archived]
        archived.sort(key=lambda card: (card.archived_at.isoformat() if card.archived_at else "", card.id))
        return tuple(card.model_copy(deep=True) for card in archived)

    def overdue_cards(self, today: Optional[date] = None) -> Tuple[Card, ...]:
        """Active cards whose due date has passed"""
        overdue = [card for card in self._cards.values() if card.is_overdue(today)]
        overdue.sort(key=lambda card: (card.due_date, card.id))
        return tuple(card.model_copy(deep=True) for card in overdue)

    def get_card(self, card_id: str) -> Card:
        return self._require_card(card_id).model_copy(deep=True)

    def revision(self, card_id: str) -> int:
        return self._revisions.get(card_id, 0)

    def __contains__(self, card_id: str) -> bool:
        return card_id in self._cards

    def __len__(self) -> int:
        return len(self._cards)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @log_function()
    async def move(
        self,
        card_id: str,
        destination: PlacementKey,
        destination_index: int,
        actor_role: Optional[UserRole] = None
    ) -> OperationResult:
        """Move a card to ``destination_index`` of the destination bucket"""
        try:
            actor_role = self._resolve_role(actor_role)
            card = self._require_active(card_id)
            self._validate_key(destination)
            source = self.placement_of(card)
            automated = TransitionPolicy.is_automated(card.card_type, self.settings.AUTOMATED_CARD_TYPES)
            decision = TransitionPolicy.require(
                TransitionPolicy.decide_move(actor_role, self.board, source, destination, automated),
                card_id=card_id
            )
        except KanbanError as e:
            await self._announce_rejection("move", e)
            raise

        destination_bucket = [c for c in self._bucket(destination) if c.id != card_id]
        index = max(0, min(destination_index, len(destination_bucket)))

        if source == destination and index == PositionIndex.index_of(self._bucket(source), card_id):
            debug_logger.debug(f"Move of card {card_id} is a no-op")
            return OperationResult(card=card.model_copy(deep=True), noop=True)

        plan = PositionIndex.insert_at(destination_bucket, index, self.settings)
        touched = [card_id] + [other_id for other_id in plan.respaced if other_id != card_id]
        snapshot = self._snapshot(touched)

        card.column_id = destination.column_id
        if self.board.is_compound:
            # The stored status only changes on an explicit move
            card.status = destination.status_id
        card.position = plan.position
        card.updated_at = _now()
        for other_id, position in plan.respaced.items():
            self._cards[other_id].position = position
        self._touch(touched)

        async def persist():
            if not await self.persistence.persist_move(card_id, destination, index, plan.position):
                return False
            for other_id, position in plan.respaced.items():
                if not await self.persistence.persist_update(other_id, {"position": position}):
                    return False
            return True

        await self._commit("move", card_id, snapshot, persist)
        # A remote update may have replaced the card while persistence ran
        card = self._cards.get(card_id, card)

        self.activity_log.record_move(snapshot[card_id], card, actor_role)
        await self.broadcaster.notify_card_moved(card, source, destination)
        if decision.side_effects.celebrate:
            await self.broadcaster.notify_celebrate(self.board.id, card_id)
        if decision.side_effects.notify_requester:
            await self.broadcaster.notify_approval_requested(
                self.board.id, card_id, destination.status_id, card.created_by
            )
        if decision.side_effects.automation_handoff:
            engine_logger.info(f"Store: card {card_id} handed off to automation")

        debug_logger.info(f"Card {card_id} moved to {destination} at index {index}")
        return OperationResult(card=card.model_copy(deep=True), side_effects=decision.side_effects)

    @log_function()
    async def create(
        self,
        board_id: str,
        destination: PlacementKey,
        fields: Union[CardCreate, Dict[str, Any]],
        actor_role: Optional[UserRole] = None
    ) -> OperationResult:
        """Create a card at the tail of the destination bucket"""
        try:
            actor_role = self._resolve_role(actor_role)
            if board_id != self.board.id:
                raise InvalidPlacement(f"Store holds board {self.board.id}, not {board_id}")
            self._validate_key(destination)
            TransitionPolicy.require(TransitionPolicy.decide_create(actor_role, self.board, destination))
            if not isinstance(fields, CardCreate):
                fields = self._parse(CardCreate, fields)
            fields = fields.model_copy(update={"priority": self._check_priority(fields.priority)})
        except KanbanError as e:
            await self._announce_rejection("create", e)
            raise

        position = PositionIndex.tail_position(self._bucket(destination), self.settings)
        temp_id = f"tmp-{uuid.uuid4().hex}"
        now = _now()
        temp = Card(
            id=temp_id,
            board_id=self.board.id,
            column_id=destination.column_id,
            status=destination.status_id,
            position=position,
            created_at=now,
            updated_at=now,
            **fields.model_dump()
        )
        snapshot = self._snapshot([temp_id])
        self._cards[temp_id] = temp
        self._touch([temp_id])

        persisted = await self._commit(
            "create",
            temp_id,
            snapshot,
            lambda: self.persistence.persist_create(self.board.id, destination, fields, position)
        )

        self._cards.pop(temp_id, None)
        self._revisions.pop(temp_id, None)
        if persisted.id in self._cards:
            # A remote update for the new card already arrived and wins
            card = self._cards[persisted.id]
        else:
            card = self._admit(persisted.model_copy(deep=True))

        await self.broadcaster.notify_card_created(card)
        debug_logger.info(f"Card {card.id} created in {destination}")
        return OperationResult(card=card.model_copy(deep=True))

    @log_function()
    async def archive(self, card_id: str, actor_role: Optional[UserRole] = None) -> OperationResult:
        """Hide a card from the board; it keeps its column, status and position"""
        try:
            actor_role = self._resolve_role(actor_role)
            card = self._require_card(card_id)
            TransitionPolicy.require(TransitionPolicy.decide_archive(actor_role, self.board), card_id=card_id)
        except KanbanError as e:
            await self._announce_rejection("archive", e)
            raise

        if card.archived:
            return OperationResult(card=card.model_copy(deep=True), noop=True)

        snapshot = self._snapshot([card_id])
        card.archived = True
        card.archived_at = _now()
        self._touch([card_id])

        await self._commit("archive", card_id, snapshot, lambda: self.persistence.persist_archive(card_id, True))
        card = self._cards.get(card_id, card)

        await self.broadcaster.notify_card_archived(card)
        debug_logger.info(f"Card {card_id} archived")
        return OperationResult(card=card.model_copy(deep=True))

    @log_function()
    async def unarchive(self, card_id: str, actor_role: Optional[UserRole] = None) -> OperationResult:
        """Bring an archived card back at the tail of its last bucket"""
        try:
            actor_role = self._resolve_role(actor_role)
            card = self._require_card(card_id)
            TransitionPolicy.require(TransitionPolicy.decide_unarchive(actor_role, self.board), card_id=card_id)
        except KanbanError as e:
            await self._announce_rejection("unarchive", e)
            raise

        if not card.archived:
            return OperationResult(card=card.model_copy(deep=True), noop=True)

        snapshot = self._snapshot([card_id])
        card.position = PositionIndex.tail_position(self._bucket(self.placement_of(card)), self.settings)
        card.archived = False
        card.archived_at = None
        self._touch([card_id])

        position = card.position

        async def persist():
            if not await self.persistence.persist_archive(card_id, False):
                return False
            return await self.persistence.persist_update(card_id, {"position": position})

        await self._commit("unarchive", card_id, snapshot, persist)
        card = self._cards.get(card_id, card)

        await self.broadcaster.notify_card_archived(card)
        debug_logger.info(f"Card {card_id} restored")
        return OperationResult(card=card.model_copy(deep=True))

    @log_function()
    async def delete(self, card_id: str, actor_role: Optional[UserRole] = None) -> OperationResult:
        """Remove a card for good"""
        try:
            actor_role = self._resolve_role(actor_role)
            card = self._require_card(card_id)
            TransitionPolicy.require(TransitionPolicy.decide_delete(actor_role, self.board), card_id=card_id)
        except KanbanError as e:
            await self._announce_rejection("delete", e)
            raise

        snapshot = self._snapshot([card_id])
        del self._cards[card_id]
        self._touch([card_id])

        await self._commit("delete", card_id, snapshot, lambda: self.persistence.persist_delete(card_id))

        self.activity_log.forget(card_id)
        await self.broadcaster.notify_card_deleted(self.board.id, card_id)
        debug_logger.info(f"Card {card_id} deleted")
        return OperationResult(card=card.model_copy(deep=True))

    @log_function()
    async def edit(
        self,
        card_id: str,
        changes: Union[CardUpdate, Dict[str, Any]],
        actor_role: Optional[UserRole] = None
    ) -> OperationResult:
        """Change content fields of a card; placement is left alone"""
        try:
            actor_role = self._resolve_role(actor_role)
            card = self._require_card(card_id)
            TransitionPolicy.require(TransitionPolicy.decide_edit(actor_role, self.board), card_id=card_id)
            if not isinstance(changes, CardUpdate):
                changes = self._parse(CardUpdate, changes)
            update_data = changes.changes()
            if "priority" in update_data:
                update_data["priority"] = self._check_priority(update_data["priority"])
        except KanbanError as e:
            await self._announce_rejection("edit", e)
            raise

        update_data = {
            field: value for field, value in update_data.items()
            if getattr(card, field) != value
        }
        if not update_data:
            return OperationResult(card=card.model_copy(deep=True), noop=True)

        debug_logger.debug(f"Updated fields of card {card_id}: {update_data}")
        snapshot = self._snapshot([card_id])
        for field, value in update_data.items():
            setattr(card, field, value)
        card.updated_at = _now()
        self._touch([card_id])

        await self._commit("edit", card_id, snapshot, lambda: self.persistence.persist_update(card_id, update_data))
        card = self._cards.get(card_id, card)

        await self.broadcaster.notify_card_updated(card)
        return OperationResult(card=card.model_copy(deep=True))

    @log_function()
    async def justify(self, card_id: str, text: str, actor_role: Optional[UserRole] = None) -> OperationResult:
        """Store the reason a card is late"""
        try:
            actor_role = self._resolve_role(actor_role)
            card = self._require_card(card_id)
            TransitionPolicy.require(TransitionPolicy.decide_view(actor_role, self.board), card_id=card_id)
            text = (text or "").strip()
            if not text:
                raise InvalidCardData("Justification must not be empty", card_id=card_id)
        except KanbanError as e:
            await self._announce_rejection("justify", e)
            raise

        snapshot = self._snapshot([card_id])
        card.justification = text
        card.justification_at = _now()
        self._touch([card_id])

        changes = {"justification": card.justification, "justification_at": card.justification_at}
        await self._commit("justify", card_id, snapshot, lambda: self.persistence.persist_update(card_id, changes))
        card = self._cards.get(card_id, card)

        await self.broadcaster.notify_card_justified(card)
        return OperationResult(card=card.model_copy(deep=True))

    async def apply_drop(self, session, actor_role: Optional[UserRole] = None) -> OperationResult:
        """Run the request a finished drag session produced, if any"""
        request = session.consume()
        if request is None:
            return OperationResult(noop=True)
        if isinstance(request, MoveRequest):
            return await self.move(request.card_id, request.destination, request.destination_index, actor_role)
        if isinstance(request, CreateRequest):
            return await self.create(self.board.id, request.destination, request.fields, actor_role)
        raise TypeError(f"Unsupported drag request {type(request).__name__}")

    @log_function()
    async def apply_remote_update(self, update: RemoteCardUpdate) -> Optional[Card]:
        """Apply authoritative state verbatim, replacing any optimistic guess"""
        card_id = update.card_id
        if update.type == RemoteUpdateType.DELETE or update.card.board_id != self.board.id:
            # A card that left this board is gone from its projection too
            removed = self._cards.pop(card_id, None)
            self._touch([card_id])
            if removed is not None:
                await self.broadcaster.notify_remote_applied(self.board.id, card_id, deleted=True)
            return None

        if self.board.get_column(update.card.column_id) is None:
            raise NotFound(f"Column {update.card.column_id} not found on board {self.board.id}", card_id=card_id)

        card = update.card.model_copy(deep=True)
        self._cards[card_id] = card
        self._touch([card_id])

        await self.broadcaster.notify_remote_applied(self.board.id, card_id)
        engine_logger.info(f"Store: remote state applied to card {card_id}")
        return card.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _admit(self, card: Card) -> Card:
        if card.board_id != self.board.id:
            raise InvalidPlacement(f"Card belongs to board {card.board_id}", card_id=card.id)
        if self.board.get_column(card.column_id) is None:
            raise NotFound(f"Column {card.column_id} not found on board {self.board.id}", card_id=card.id)
        self._cards[card.id] = card
        self._touch([card.id])
        return card

    def _resolve_role(self, actor_role: Optional[UserRole]) -> UserRole:
        """Explicit role, or the one the identity provider reports"""
        if actor_role is not None:
            return actor_role
        if self.identity is None:
            raise PermissionDenied("No acting role supplied")
        return self.identity.current_role()

    def _require_card(self, card_id: str) -> Card:
        card = self._cards.get(card_id)
        if card is None:
            raise NotFound(f"Card {card_id} not found", card_id=card_id)
        return card

    def _require_active(self, card_id: str) -> Card:
        card = self._require_card(card_id)
        if card.archived:
            raise NotFound(f"Card {card_id} is archived", card_id=card_id)
        return card

    def _validate_key(self, key: PlacementKey):
        expected = CompoundPlacement if self.board.is_compound else SimplePlacement
        if not isinstance(key, expected):
            raise InvalidPlacement(
                f"Board {self.board.id} is {self.board.variant.value}; got a {key.kind} placement"
            )
        if key.board_id != self.board.id:
            raise InvalidPlacement(f"Placement targets board {key.board_id}, not {self.board.id}")
        if self.board.get_column(key.column_id) is None:
            raise NotFound(f"Column {key.column_id} not found on board {self.board.id}")
        if self.board.is_compound and not self.board.has_status(key.status_id):
            raise NotFound(f"Status {key.status_id} not found on board {self.board.id}")

    @staticmethod
    def _parse(schema, data) -> BaseModel:
        try:
            return schema.model_validate(data)
        except ValidationError as e:
            raise InvalidCardData(f"Invalid card fields: {e}") from e

    def _check_priority(self, priority: Optional[str]) -> str:
        if self.board.is_compound:
            allowed, default = CompoundPriority, CompoundPriority.NORMAL
        else:
            allowed, default = CardPriority, CardPriority.MEDIUM
        if priority is None:
            return default.value
        values = [item.value for item in allowed]
        if priority not in values:
            raise InvalidCardData(f"Priority {priority} is not one of {', '.join(values)}")
        return priority

    def _bucket(self, key: PlacementKey) -> List[Card]:
        return [
            card for card in self._cards.values()
            if not card.archived and self.placement_of(card) == key
        ]

    def _snapshot(self, card_ids: List[str]) -> Dict[str, Optional[Card]]:
        return {
            card_id: self._cards[card_id].model_copy(deep=True) if card_id in self._cards else None
            for card_id in card_ids
        }

    def _touch(self, card_ids: List[str]):
        for card_id in card_ids:
            self._revisions[card_id] = self._revisions.get(card_id, 0) + 1

    def _rollback(self, snapshot: Dict[str, Optional[Card]], revisions: Dict[str, int]):
        for card_id, previous in snapshot.items():
            if self._revisions.get(card_id, 0) != revisions[card_id]:
                debug_logger.debug(f"Rollback of card {card_id} skipped: superseded by a newer change")
                continue
            if previous is None:
                self._cards.pop(card_id, None)
            else:
                self._cards[card_id] = previous

    async def _persist(self, call: Callable[[], Awaitable[Any]]) -> Any:
        timeout = self.settings.PERSISTENCE_TIMEOUT_SECONDS
        if timeout and timeout > 0:
            return await asyncio.wait_for(call(), timeout=timeout)
        return await call()

    async def _commit(
        self,
        operation: str,
        card_id: str,
        snapshot: Dict[str, Optional[Card]],
        call: Callable[[], Awaitable[Any]]
    ) -> Any:
        """Await persistence for an optimistic change; undo it on failure"""
        revisions = {touched_id: self._revisions.get(touched_id, 0) for touched_id in snapshot}
        try:
            result = await self._persist(call)
        except asyncio.TimeoutError:
            self._rollback(snapshot, revisions)
            error = PersistenceFailure(f"Persisting {operation} of card {card_id} timed out", card_id=card_id)
            await self._announce_failure(operation, error)
            raise error
        except asyncio.CancelledError:
            self._rollback(snapshot, revisions)
            engine_logger.warning(f"Store: {operation} of card {card_id} cancelled on board {self.board.id}")
            raise
        except Exception as e:
            self._rollback(snapshot, revisions)
            error = PersistenceFailure(f"Persisting {operation} of card {card_id} failed: {e}", card_id=card_id)
            await self._announce_failure(operation, error)
            raise error from e

        if not result:
            self._rollback(snapshot, revisions)
            error = PersistenceFailure(f"Persisting {operation} of card {card_id} was refused", card_id=card_id)
            await self._announce_failure(operation, error)
            raise error
        return result

    async def _announce_rejection(self, operation: str, error: KanbanError):
        engine_logger.warning(f"Store: {operation} rejected on board {self.board.id}: {error.kind}: {error.detail}")
        await self.broadcaster.notify_operation_rejected(self.board.id, operation, error.to_dict())

    async def _announce_failure(self, operation: str, error: KanbanError):
        engine_logger.error(f"Store: {operation} failed on board {self.board.id}: {error.detail}")
        await self.broadcaster.notify_operation_failed(self.board.id, operation, error.to_dict())
