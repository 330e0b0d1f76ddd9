from kanban_engine.models.role import UserRole, FREE_MOVERS, is_admin
from kanban_engine.models.board import (
    Board,
    BoardKind,
    BoardVariant,
    Column,
    StatusDefinition,
    STATUS_SETS,
    APPROVAL_STATUS,
)
from kanban_engine.models.placement import (
    PlacementKey,
    SimplePlacement,
    CompoundPlacement,
    placement_for,
)
from kanban_engine.models.card import Card, CardPriority, CompoundPriority
