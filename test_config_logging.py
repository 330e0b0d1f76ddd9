import pytest
from pydantic import ValidationError

from kanban_engine.core.config import Settings, get_settings
from kanban_engine.core.exceptions import NotFound, PersistenceFailure
from kanban_engine.logs.debug_log import DebugLogger, format_object, log_function
from kanban_engine.models.placement import SimplePlacement


class TestSettings:

    def test_log_level_normalized(self):
        assert Settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    @pytest.mark.parametrize("field", ["POSITION_STEP", "POSITION_MIN_GAP"])
    def test_spacing_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            Settings(**{field: 0})

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()


class TestErrors:

    def test_error_payload(self):
        error = PersistenceFailure("could not save", card_id="c1")
        assert error.to_dict() == {
            "error": "PersistenceFailure",
            "code": 503,
            "detail": "could not save",
            "card_id": "c1",
        }
        assert str(error) == "could not save"


class TestLogFunction:

    @pytest.fixture
    def logger(self):
        return DebugLogger(name="kanban_engine.test", level=10)

    @pytest.mark.asyncio
    async def test_coroutine_result_returned(self, logger):
        @log_function(logger)
        async def add(a, b):
            return a + b

        assert await add(2, 3) == 5
        assert add.__name__ == "add"

    @pytest.mark.asyncio
    async def test_kanban_errors_logged_as_rejections(self, logger, caplog):
        logger.logger.propagate = True

        @log_function(logger)
        async def lookup(card_id):
            raise NotFound(f"Card {card_id} not found")

        with caplog.at_level("WARNING", logger="kanban_engine.test"):
            with pytest.raises(NotFound):
                await lookup("x")

        assert "lookup rejected: NotFound" in caplog.text

    def test_calls_tagged_with_card(self, logger, caplog):
        logger.logger.propagate = True

        @log_function(logger)
        def touch(card_id, board_id=None):
            return None

        with caplog.at_level("DEBUG", logger="kanban_engine.test"):
            touch("c1")

        assert "[card_id=c1]" in caplog.text

    def test_sync_errors_reraised(self, logger):
        @log_function(logger)
        def explode():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            explode()


class TestFormatObject:

    def test_models_rendered_as_json(self):
        rendered = format_object(SimplePlacement(board_id="ops", column_id="todo"))
        assert '"column_id": "todo"' in rendered

    def test_collections_with_objects(self):
        rendered = format_object({"key": SimplePlacement(board_id="ops", column_id="todo")})
        assert "ops/todo" in rendered
