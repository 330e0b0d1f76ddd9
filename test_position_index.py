import pytest

from kanban_engine.services.position_index import PositionIndex


class TestOrdering:
    """Display order inside a bucket"""

    def test_positions_ascending(self, make_card):
        bucket = [
            make_card("c", "ops", "todo", 3000),
            make_card("a", "ops", "todo", 1000),
            make_card("b", "ops", "todo", 2000),
        ]
        result = PositionIndex.positions_for(bucket)
        assert [card.id for card, _ in result] == ["a", "b", "c"]
        assert [position for _, position in result] == [1000, 2000, 3000]

    def test_equal_positions_ordered_by_id(self, make_card):
        """Ties must not flicker between renders"""
        bucket = [make_card("b", "ops", "todo", 5), make_card("a", "ops", "todo", 5)]
        assert [card.id for card in PositionIndex.ordered(bucket)] == ["a", "b"]
        assert [card.id for card in PositionIndex.ordered(list(reversed(bucket)))] == ["a", "b"]

    def test_index_of(self, make_card):
        bucket = [make_card("x", "ops", "todo", 20), make_card("y", "ops", "todo", 10)]
        assert PositionIndex.index_of(bucket, "y") == 0
        assert PositionIndex.index_of(bucket, "x") == 1
        assert PositionIndex.index_of(bucket, "missing") is None


class TestInsertAt:
    """Position planning for insertions"""

    @pytest.fixture
    def bucket(self, make_card):
        return [make_card("a", "ops", "todo", 1024), make_card("b", "ops", "todo", 2048)]

    def test_empty_bucket_uses_start(self, settings):
        plan = PositionIndex.insert_at([], 0, settings)
        assert plan.position == 1024
        assert plan.respaced == {}

    def test_head(self, bucket, settings):
        assert PositionIndex.insert_at(bucket, 0, settings).position == 0

    def test_tail(self, bucket, settings):
        assert PositionIndex.insert_at(bucket, 2, settings).position == 3072

    def test_middle_takes_midpoint(self, bucket, settings):
        plan = PositionIndex.insert_at(bucket, 1, settings)
        assert plan.position == 1536
        assert plan.respaced == {}

    def test_index_is_clamped(self, bucket, settings):
        assert PositionIndex.insert_at(bucket, 10, settings).position == 3072
        assert PositionIndex.insert_at(bucket, -3, settings).position == 0

    def test_crowded_neighbours_trigger_respacing(self, make_card, settings):
        bucket = [
            make_card("a", "ops", "todo", 1.0),
            make_card("b", "ops", "todo", 1.0000000001),
            make_card("c", "ops", "todo", 50.0),
        ]
        plan = PositionIndex.insert_at(bucket, 1, settings)
        assert plan.respaced == {"a": 1024, "b": 3072, "c": 4096}
        assert plan.position == 2048

    def test_respacing_keeps_relative_order(self, make_card, settings):
        bucket = [make_card(card_id, "ops", "todo", 7.0) for card_id in ("d", "c", "b", "a")]
        plan = PositionIndex.insert_at(bucket, 2, settings)
        new_order = sorted(plan.respaced, key=plan.respaced.get)
        assert new_order == ["a", "b", "c", "d"]
        assert plan.respaced["b"] < plan.position < plan.respaced["c"]


class TestTailPosition:

    def test_empty(self, settings):
        assert PositionIndex.tail_position([], settings) == 1024

    def test_after_maximum(self, make_card, settings):
        bucket = [make_card("a", "ops", "todo", 10), make_card("b", "ops", "todo", 4000)]
        assert PositionIndex.tail_position(bucket, settings) == 5024
