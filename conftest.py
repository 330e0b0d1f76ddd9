from unittest.mock import AsyncMock

import pytest

from kanban_engine.core.config import Settings
from kanban_engine.models.board import Board, BoardKind, Column
from kanban_engine.models.card import Card


@pytest.fixture
def settings():
    return Settings(
        POSITION_START=1024,
        POSITION_STEP=1024,
        POSITION_MIN_GAP=0.000001,
        PERSISTENCE_TIMEOUT_SECONDS=0,
        AUTOMATED_CARD_TYPES=["onboarding"],
    )


@pytest.fixture
def simple_board():
    return Board(
        id="ops",
        name="Operations",
        kind=BoardKind.STANDARD,
        columns=(
            Column(id="todo", board_id="ops", title="To do"),
            Column(id="doing", board_id="ops", title="Doing"),
            Column(id="done", board_id="ops", title="Done"),
        ),
    )


@pytest.fixture
def design_board():
    return Board(
        id="design",
        name="Design",
        slug="design",
        kind=BoardKind.DESIGN,
        columns=(
            Column(id="by-ana", board_id="design", title="BY Ana"),
            Column(id="by-rui", board_id="design", title="BY Rui"),
        ),
    )


@pytest.fixture
def produtora_board():
    return Board(
        id="produtora",
        name="Produtora",
        kind=BoardKind.PRODUTORA,
        columns=(Column(id="by-lia", board_id="produtora", title="BY Lia"),),
    )


@pytest.fixture
def make_card():
    def factory(card_id, board_id, column_id, position, status=None, **extra):
        return Card(
            id=card_id,
            board_id=board_id,
            column_id=column_id,
            status=status,
            title=extra.pop("title", f"Card {card_id}"),
            position=position,
            **extra
        )
    return factory


@pytest.fixture
def gateway():
    """Persistence gateway that accepts every write"""
    mock = AsyncMock()
    mock.persist_move.return_value = True
    mock.persist_archive.return_value = True
    mock.persist_delete.return_value = True
    mock.persist_update.return_value = True

    async def persist_create(board_id, destination, fields, position):
        return Card(
            id="card-created",
            board_id=board_id,
            column_id=destination.column_id,
            status=destination.status_id,
            position=position,
            **fields.model_dump(exclude_none=True)
        )

    mock.persist_create.side_effect = persist_create
    return mock
