from kanban_engine.core.config import Settings, get_settings
from kanban_engine.core.exceptions import (
    KanbanError,
    PermissionDenied,
    NotFound,
    InvalidPlacement,
    PersistenceFailure,
    InvalidCardData,
)
