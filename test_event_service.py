from unittest.mock import AsyncMock, MagicMock

import pytest

from kanban_engine.models.card import Card
from kanban_engine.schemas.events import BoardEvent, BoardEventType
from kanban_engine.services.event_service import BoardEventBroadcaster


@pytest.fixture
def broadcaster():
    return BoardEventBroadcaster()


@pytest.fixture
def card():
    return Card(id="c1", board_id="ops", column_id="todo", title="Card")


class TestSubscriptions:

    def test_subscribe_and_unsubscribe(self, broadcaster):
        subscriber = MagicMock()
        broadcaster.subscribe("ops", subscriber)
        assert broadcaster.subscriber_count("ops") == 1

        broadcaster.unsubscribe("ops", subscriber)
        assert broadcaster.subscriber_count("ops") == 0
        assert "ops" not in broadcaster.board_subscribers

    def test_unsubscribe_unknown_board(self, broadcaster):
        broadcaster.unsubscribe("nowhere", MagicMock())
        assert broadcaster.board_subscribers == {}


class TestBroadcast:

    @pytest.mark.asyncio
    async def test_plain_and_async_subscribers_receive(self, broadcaster, card):
        plain = MagicMock()
        coroutine = AsyncMock()
        broadcaster.subscribe("ops", plain)
        broadcaster.subscribe("ops", coroutine)

        await broadcaster.notify_card_created(card)

        message = plain.call_args.args[0]
        assert isinstance(message, BoardEvent)
        assert message.event == BoardEventType.CARD_CREATED
        assert message.data["card"]["id"] == "c1"
        coroutine.assert_awaited_once_with(message)

    @pytest.mark.asyncio
    async def test_other_boards_not_notified(self, broadcaster, card):
        subscriber = MagicMock()
        broadcaster.subscribe("design", subscriber)
        await broadcaster.notify_card_updated(card)
        subscriber.assert_not_called()

    @pytest.mark.asyncio
    async def test_incomplete_message_not_delivered(self, broadcaster):
        subscriber = MagicMock()
        broadcaster.subscribe("ops", subscriber)

        await broadcaster.notify("ops", BoardEventType.CARD_MOVED, {"board_id": "ops"})

        subscriber.assert_not_called()

    @pytest.mark.asyncio
    async def test_failing_subscriber_dropped(self, broadcaster):
        broken = MagicMock(side_effect=RuntimeError("closed"))
        healthy = MagicMock()
        broadcaster.subscribe("ops", broken)
        broadcaster.subscribe("ops", healthy)

        await broadcaster.notify_celebrate("ops", "c1")

        healthy.assert_called_once()
        assert broadcaster.subscriber_count("ops") == 1

    @pytest.mark.asyncio
    async def test_rejection_carries_error(self, broadcaster):
        subscriber = MagicMock()
        broadcaster.subscribe("ops", subscriber)
        error = {"error": "PermissionDenied", "code": 403, "detail": "no", "card_id": "c1"}

        await broadcaster.notify_operation_rejected("ops", "move", error)

        message = subscriber.call_args.args[0]
        assert message.event == BoardEventType.OPERATION_REJECTED
        assert message.data["operation"] == "move"
        assert message.data["error"]["code"] == 403

    @pytest.mark.asyncio
    async def test_archive_and_restore_events(self, broadcaster, card):
        subscriber = MagicMock()
        broadcaster.subscribe("ops", subscriber)

        card.archived = True
        await broadcaster.notify_card_archived(card)
        card.archived = False
        await broadcaster.notify_card_archived(card)

        events = [call.args[0].event for call in subscriber.call_args_list]
        assert events == [BoardEventType.CARD_ARCHIVED, BoardEventType.CARD_UNARCHIVED]
