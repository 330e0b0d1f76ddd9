from kanban_engine.schemas.card import CardBase, CardCreate, CardUpdate
from kanban_engine.schemas.operation import (
    SideEffects,
    Decision,
    MoveRequest,
    CreateRequest,
    OperationResult,
)
from kanban_engine.schemas.events import (
    BoardEvent,
    BoardEventType,
    RemoteCardUpdate,
    RemoteUpdateType,
)
from kanban_engine.schemas.activity import CardActivity
