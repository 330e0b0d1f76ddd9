from typing import Any, Callable, Dict, List, Optional
import inspect

from kanban_engine.logs.engine_log import engine_logger
from kanban_engine.models.card import Card
from kanban_engine.schemas.events import BoardEvent, BoardEventType


Subscriber = Callable[[BoardEvent], Any]


class BoardEventBroadcaster:
    """Fan-out of board events to presentation subscribers"""

    required_fields = {
        BoardEventType.CARD_CREATED: ["board_id", "card"],
        BoardEventType.CARD_UPDATED: ["board_id", "card"],
        BoardEventType.CARD_MOVED: ["board_id", "card", "from", "to"],
        BoardEventType.CARD_ARCHIVED: ["board_id", "card"],
        BoardEventType.CARD_UNARCHIVED: ["board_id", "card"],
        BoardEventType.CARD_DELETED: ["board_id", "card_id"],
        BoardEventType.CARD_JUSTIFIED: ["board_id", "card"],
        BoardEventType.CELEBRATE: ["board_id", "card_id"],
        BoardEventType.APPROVAL_REQUESTED: ["board_id", "card_id", "status_id"],
        BoardEventType.OPERATION_REJECTED: ["board_id", "operation", "error"],
        BoardEventType.OPERATION_FAILED: ["board_id", "operation", "error"],
        BoardEventType.REMOTE_APPLIED: ["board_id", "card_id"],
    }

    def __init__(self):
        # {board_id: [subscriber, ...]}
        self.board_subscribers: Dict[str, List[Subscriber]] = {}

    def subscribe(self, board_id: str, subscriber: Subscriber):
        """Register a callable (plain or coroutine) for a board's events"""
        self.board_subscribers.setdefault(board_id, []).append(subscriber)
        engine_logger.info(f"Events: subscriber added to board {board_id}")

    def unsubscribe(self, board_id: str, subscriber: Subscriber):
        if board_id in self.board_subscribers:
            if subscriber in self.board_subscribers[board_id]:
                self.board_subscribers[board_id].remove(subscriber)
            if not self.board_subscribers[board_id]:
                del self.board_subscribers[board_id]
            engine_logger.info(f"Events: subscriber removed from board {board_id}")

    def subscriber_count(self, board_id: str) -> int:
        return len(self.board_subscribers.get(board_id, []))

    async def broadcast_to_board(self, board_id: str, message: BoardEvent):
        """Deliver a message to every subscriber of a board"""
        if board_id not in self.board_subscribers:
            return

        try:
            self._validate_message_data(message)
        except ValueError as e:
            engine_logger.error(f"Events: Invalid message data for event {message.event.value}: {str(e)}")
            return

        engine_logger.info(
            f"Events: Broadcasting '{message.event.value}' to "
            f"{self.subscriber_count(board_id)} subscribers of board {board_id}"
        )

        failed = []
        for subscriber in list(self.board_subscribers[board_id]):
            try:
                result = subscriber(message)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                engine_logger.error(f"Events: Subscriber failed on '{message.event.value}': {str(e)}")
                failed.append(subscriber)

        # A broken subscriber is dropped, like a closed connection
        for subscriber in failed:
            self.unsubscribe(board_id, subscriber)

    def _validate_message_data(self, message: BoardEvent):
        """Validate message data structure based on event type"""
        for field in self.required_fields.get(message.event, []):
            if field not in message.data:
                raise ValueError(f"Missing required field '{field}' for event '{message.event.value}'")

    async def notify(self, board_id: str, event_type: BoardEventType, data: dict, log_details: Optional[str] = None):
        """Universal notification function for board events"""
        message = BoardEvent(event=event_type, data=data)
        await self.broadcast_to_board(board_id, message)

        log_msg = f"Events: Notified {event_type.value} for board {board_id}"
        if log_details:
            log_msg += f", {log_details}"
        engine_logger.info(log_msg)

    async def notify_card_created(self, card: Card):
        data = {"board_id": card.board_id, "card": card.model_dump(mode="json")}
        await self.notify(card.board_id, BoardEventType.CARD_CREATED, data, f"card_id: {card.id}")

    async def notify_card_updated(self, card: Card):
        data = {"board_id": card.board_id, "card": card.model_dump(mode="json")}
        await self.notify(card.board_id, BoardEventType.CARD_UPDATED, data, f"card_id: {card.id}")

    async def notify_card_moved(self, card: Card, source: Any, destination: Any):
        data = {
            "board_id": card.board_id,
            "card": card.model_dump(mode="json"),
            "from": source.model_dump(),
            "to": destination.model_dump(),
        }
        await self.notify(card.board_id, BoardEventType.CARD_MOVED, data, f"card_id: {card.id}, {source} -> {destination}")

    async def notify_card_archived(self, card: Card):
        event_type = BoardEventType.CARD_ARCHIVED if card.archived else BoardEventType.CARD_UNARCHIVED
        data = {"board_id": card.board_id, "card": card.model_dump(mode="json")}
        await self.notify(card.board_id, event_type, data, f"card_id: {card.id}")

    async def notify_card_deleted(self, board_id: str, card_id: str):
        data = {"board_id": board_id, "card_id": card_id}
        await self.notify(board_id, BoardEventType.CARD_DELETED, data, f"card_id: {card_id}")

    async def notify_card_justified(self, card: Card):
        data = {"board_id": card.board_id, "card": card.model_dump(mode="json")}
        await self.notify(card.board_id, BoardEventType.CARD_JUSTIFIED, data, f"card_id: {card.id}")

    async def notify_celebrate(self, board_id: str, card_id: str):
        data = {"board_id": board_id, "card_id": card_id}
        await self.notify(board_id, BoardEventType.CELEBRATE, data)

    async def notify_approval_requested(self, board_id: str, card_id: str, status_id: str, requester: Optional[str] = None):
        data = {"board_id": board_id, "card_id": card_id, "status_id": status_id, "requester": requester}
        await self.notify(board_id, BoardEventType.APPROVAL_REQUESTED, data, f"card_id: {card_id}")

    async def notify_operation_rejected(self, board_id: str, operation: str, error: dict):
        data = {"board_id": board_id, "operation": operation, "error": error}
        await self.notify(board_id, BoardEventType.OPERATION_REJECTED, data, error.get("detail"))

    async def notify_operation_failed(self, board_id: str, operation: str, error: dict):
        data = {"board_id": board_id, "operation": operation, "error": error}
        await self.notify(board_id, BoardEventType.OPERATION_FAILED, data, error.get("detail"))

    async def notify_remote_applied(self, board_id: str, card_id: str, deleted: bool = False):
        data = {"board_id": board_id, "card_id": card_id, "deleted": deleted}
        await self.notify(board_id, BoardEventType.REMOTE_APPLIED, data)
