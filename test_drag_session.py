import pytest

from kanban_engine.models.placement import SimplePlacement
from kanban_engine.schemas.card import CardCreate
from kanban_engine.schemas.operation import CreateRequest, MoveRequest
from kanban_engine.services.drag_session import DragSession, DragState


TODO = SimplePlacement(board_id="ops", column_id="todo")
DONE = SimplePlacement(board_id="ops", column_id="done")
ARCHIVE = SimplePlacement(board_id="ops", column_id="archive")


@pytest.fixture
def rendered():
    return {TODO: ["a", "b", "c"], DONE: ["d"]}


class TestDragExistingCard:

    def test_drop_on_other_bucket(self, rendered):
        session = DragSession.begin("b", TODO, 1, rendered)
        assert session.state == DragState.DRAGGING

        request = session.drop(DONE, 0)

        assert isinstance(request, MoveRequest)
        assert request.card_id == "b"
        assert request.source == TODO
        assert request.destination == DONE
        assert request.destination_index == 0
        assert session.state == DragState.DROPPED

    def test_drop_without_index_appends(self, rendered):
        session = DragSession.begin("b", TODO, 1, rendered)
        assert session.drop(DONE).destination_index == 1

    def test_before_card_sets_index(self, rendered):
        session = DragSession.begin("a", TODO, 0, rendered)
        # "a" is left out of its own bucket: [b, c]
        assert session.drop(TODO, before_card_id="c").destination_index == 1

    def test_unknown_before_card_appends(self, rendered):
        session = DragSession.begin("a", TODO, 0, rendered)
        assert session.drop(DONE, before_card_id="zzz").destination_index == 1

    def test_drop_at_origin_cancels(self, rendered):
        session = DragSession.begin("b", TODO, 1, rendered)
        assert session.drop(TODO, 1) is None
        assert session.state == DragState.CANCELLED
        assert session.consume() is None

    def test_reorder_in_origin_is_a_move(self, rendered):
        session = DragSession.begin("b", TODO, 1, rendered)
        request = session.drop(TODO, 0)
        assert request.destination == TODO
        assert request.destination_index == 0

    def test_drop_outside_buckets_cancels(self, rendered):
        session = DragSession.begin("b", TODO, 1, rendered)
        assert session.drop(ARCHIVE, 0) is None
        assert session.state == DragState.CANCELLED

    def test_hover_tracks_target(self, rendered):
        session = DragSession.begin("b", TODO, 1, rendered)
        assert session.hover(DONE)
        assert session.drop().destination == DONE

    def test_hover_outside_then_drop_cancels(self, rendered):
        session = DragSession.begin("b", TODO, 1, rendered)
        assert not session.hover(ARCHIVE)
        assert session.drop() is None
        assert session.state == DragState.CANCELLED

    def test_cancelled_session_ignores_drop(self, rendered):
        session = DragSession.begin("b", TODO, 1, rendered)
        session.cancel()
        assert session.drop(DONE, 0) is None
        assert not session.hover(DONE)

    def test_request_consumed_once(self, rendered):
        session = DragSession.begin("b", TODO, 1, rendered)
        request = session.drop(DONE, 0)
        assert session.consume() == request
        assert session.consume() is None

    def test_rendered_cards_accepted(self, make_card):
        cards = [make_card("a", "ops", "todo", 1), make_card("b", "ops", "todo", 2)]
        session = DragSession.begin(cards[0], TODO, 0, {TODO: cards, DONE: []})
        assert session.card_id == "a"
        assert session.rendered[TODO] == ["a", "b"]
        assert session.drop(DONE).destination_index == 0


class TestDragNewCard:

    def test_drop_creates(self, rendered):
        session = DragSession.begin_new({"title": "Briefing"}, rendered)
        request = session.drop(DONE)

        assert isinstance(request, CreateRequest)
        assert request.destination == DONE
        assert isinstance(request.fields, CardCreate)
        assert request.fields.title == "Briefing"

    def test_new_card_dropped_outside_cancels(self, rendered):
        session = DragSession.begin_new(CardCreate(title="Briefing"), rendered)
        assert session.drop(ARCHIVE) is None
        assert session.state == DragState.CANCELLED
