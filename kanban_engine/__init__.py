from kanban_engine.core import (
    Settings,
    get_settings,
    KanbanError,
    PermissionDenied,
    NotFound,
    InvalidPlacement,
    PersistenceFailure,
    InvalidCardData,
)
from kanban_engine.models import (
    Board,
    BoardKind,
    BoardVariant,
    Card,
    Column,
    CompoundPlacement,
    PlacementKey,
    SimplePlacement,
    UserRole,
    placement_for,
)
from kanban_engine.services import (
    ActivityLog,
    BoardCardStore,
    BoardEventBroadcaster,
    DragSession,
    PositionIndex,
    TransitionPolicy,
)

__version__ = "0.1.0"
