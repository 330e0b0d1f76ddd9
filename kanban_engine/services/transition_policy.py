"""Who may do what on which board, and what happens visually when they do.

Every board kind has its own ``BoardPolicy`` holding the role sets of the
agency application. ``TransitionPolicy`` picks the policy for a board and
turns a requested operation into a ``Decision``. Nothing here mutates state.
"""

from typing import Dict, FrozenSet, Iterable, Optional

from kanban_engine.core.config import get_settings
from kanban_engine.core.exceptions import PermissionDenied
from kanban_engine.logs import debug_logger
from kanban_engine.models.board import Board, BoardKind
from kanban_engine.models.placement import PlacementKey
from kanban_engine.models.role import FREE_MOVERS, UserRole
from kanban_engine.schemas.operation import Decision, SideEffects


_MANAGEMENT = frozenset({UserRole.CEO, UserRole.GESTOR_PROJETOS, UserRole.GESTOR_ADS})


class BoardPolicy:
    """Role sets of one board kind"""

    kind: BoardKind = BoardKind.STANDARD
    viewers: FrozenSet[UserRole] = frozenset(UserRole)
    creators: FrozenSet[UserRole] = FREE_MOVERS
    movers: FrozenSet[UserRole] = FREE_MOVERS
    archivers: FrozenSet[UserRole] = FREE_MOVERS
    editors: FrozenSet[UserRole] = FREE_MOVERS

    def can_view(self, role: UserRole) -> bool:
        return role in self.viewers

    def can_create(self, role: UserRole) -> bool:
        return role in self.creators

    def can_move(self, role: UserRole) -> bool:
        return role in self.movers

    def can_archive(self, role: UserRole) -> bool:
        return role in self.archivers

    def can_edit(self, role: UserRole) -> bool:
        return role in self.editors

    def is_done(self, board: Board, key: PlacementKey) -> bool:
        if board.is_compound:
            return key.status_id is not None and key.status_id == board.done_status
        column = board.get_column(key.column_id)
        return column is not None and column.represents_done

    def is_approval(self, board: Board, key: PlacementKey) -> bool:
        if not board.is_compound or board.approval_status is None:
            return False
        return key.status_id == board.approval_status


class StandardBoardPolicy(BoardPolicy):
    """Simple boards: only the free movers change anything"""
    kind = BoardKind.STANDARD


def _team_viewers(team_role: UserRole) -> FrozenSet[UserRole]:
    return _MANAGEMENT | {team_role}


def _team_operators(team_role: UserRole) -> FrozenSet[UserRole]:
    return _MANAGEMENT | {team_role, UserRole.SUCESSO_CLIENTE}


class DesignBoardPolicy(BoardPolicy):
    kind = BoardKind.DESIGN
    viewers = _team_viewers(UserRole.DESIGN)
    creators = movers = archivers = editors = _team_operators(UserRole.DESIGN)


class VideoBoardPolicy(BoardPolicy):
    kind = BoardKind.VIDEO
    viewers = _team_viewers(UserRole.EDITOR_VIDEO)
    creators = movers = archivers = editors = _team_operators(UserRole.EDITOR_VIDEO)


class DevsBoardPolicy(BoardPolicy):
    kind = BoardKind.DEVS
    viewers = _team_viewers(UserRole.DEVS)
    creators = movers = archivers = editors = _team_operators(UserRole.DEVS)


class AtrizesBoardPolicy(BoardPolicy):
    kind = BoardKind.ATRIZES
    viewers = _team_viewers(UserRole.ATRIZES_GRAVACAO)
    creators = movers = archivers = editors = _team_operators(UserRole.ATRIZES_GRAVACAO)


class ProdutoraBoardPolicy(BoardPolicy):
    """Production board; video editors work it but cannot archive or edit briefings"""
    kind = BoardKind.PRODUTORA
    viewers = _MANAGEMENT | {UserRole.PRODUTORA, UserRole.EDITOR_VIDEO}
    creators = _MANAGEMENT | {UserRole.PRODUTORA, UserRole.SUCESSO_CLIENTE, UserRole.EDITOR_VIDEO}
    movers = creators
    archivers = _MANAGEMENT | {UserRole.PRODUTORA, UserRole.SUCESSO_CLIENTE}
    editors = archivers


POLICIES: Dict[BoardKind, BoardPolicy] = {
    policy.kind: policy
    for policy in (
        StandardBoardPolicy(),
        DesignBoardPolicy(),
        VideoBoardPolicy(),
        DevsBoardPolicy(),
        AtrizesBoardPolicy(),
        ProdutoraBoardPolicy(),
    )
}


class TransitionPolicy:
    """Decisions for board operations"""

    @staticmethod
    def policy_for(board: Board) -> BoardPolicy:
        return POLICIES[board.kind]

    @staticmethod
    def is_automated(card_type: Optional[str], automated_types: Optional[Iterable[str]] = None) -> bool:
        """Whether a card's lifecycle is driven by an external automation"""
        if card_type is None:
            return False
        if automated_types is None:
            automated_types = get_settings().AUTOMATED_CARD_TYPES
        return card_type in set(automated_types)

    @staticmethod
    def decide_view(role: UserRole, board: Board) -> Decision:
        if TransitionPolicy.policy_for(board).can_view(role):
            return Decision.allow()
        return Decision.deny(f"Role {role.value} cannot view board {board.id}")

    @staticmethod
    def decide_move(
        role: UserRole,
        board: Board,
        source: PlacementKey,
        destination: PlacementKey,
        automated: bool = False
    ) -> Decision:
        policy = TransitionPolicy.policy_for(board)
        if not policy.can_move(role):
            return Decision.deny(f"Role {role.value} cannot move cards on board {board.id}")

        if source == destination:
            return Decision.allow(SideEffects(automation_handoff=automated))

        entering_done = policy.is_done(board, destination) and not policy.is_done(board, source)
        entering_approval = (
            policy.is_approval(board, destination)
            and source.status_id != destination.status_id
        )
        effects = SideEffects(
            celebrate=entering_done and not automated,
            automation_handoff=automated,
            notify_requester=entering_approval,
        )
        debug_logger.debug(f"Move on {board.id} from {source} to {destination}: {effects}")
        return Decision.allow(effects)

    @staticmethod
    def decide_create(role: UserRole, board: Board, destination: Optional[PlacementKey] = None) -> Decision:
        if TransitionPolicy.policy_for(board).can_create(role):
            return Decision.allow()
        return Decision.deny(f"Role {role.value} cannot create cards on board {board.id}")

    @staticmethod
    def decide_archive(role: UserRole, board: Board) -> Decision:
        if TransitionPolicy.policy_for(board).can_archive(role):
            return Decision.allow()
        return Decision.deny(f"Role {role.value} cannot archive cards on board {board.id}")

    @staticmethod
    def decide_unarchive(role: UserRole, board: Board) -> Decision:
        # Restoring puts a card back on the board, so it needs create rights
        if TransitionPolicy.policy_for(board).can_create(role):
            return Decision.allow()
        return Decision.deny(f"Role {role.value} cannot restore cards on board {board.id}")

    @staticmethod
    def decide_delete(role: UserRole, board: Board) -> Decision:
        if TransitionPolicy.policy_for(board).can_archive(role):
            return Decision.allow()
        return Decision.deny(f"Role {role.value} cannot delete cards on board {board.id}")

    @staticmethod
    def decide_edit(role: UserRole, board: Board) -> Decision:
        if TransitionPolicy.policy_for(board).can_edit(role):
            return Decision.allow()
        return Decision.deny(f"Role {role.value} cannot edit cards on board {board.id}")

    @staticmethod
    def require(decision: Decision, card_id: Optional[str] = None) -> Decision:
        """Raise PermissionDenied for a denied decision"""
        if not decision.allowed:
            raise PermissionDenied(decision.reason or "Operation not permitted", card_id=card_id)
        return decision
