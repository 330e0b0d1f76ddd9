from kanban_engine.services.position_index import PositionIndex, InsertPlan
from kanban_engine.services.transition_policy import TransitionPolicy, BoardPolicy, POLICIES
from kanban_engine.services.collaborators import PersistenceGateway, IdentityProvider
from kanban_engine.services.event_service import BoardEventBroadcaster
from kanban_engine.services.activity_service import ActivityLog
from kanban_engine.services.card_store import BoardCardStore
from kanban_engine.services.drag_session import DragSession, DragState
