from datetime import datetime, timezone
from typing import Dict, List, Optional

from kanban_engine.logs import debug_logger
from kanban_engine.models.card import Card
from kanban_engine.models.role import UserRole
from kanban_engine.schemas.activity import CardActivity


class ActivityLog:
    """History of column and status changes per card"""

    def __init__(self):
        self._entries: Dict[str, List[CardActivity]] = {}

    def record_move(self, before: Card, after: Card, actor_role: UserRole) -> Optional[CardActivity]:
        """Record a confirmed move; returns None when neither column nor status changed"""
        if before.column_id == after.column_id and before.status == after.status:
            return None

        activity = CardActivity(
            card_id=after.id,
            board_id=after.board_id,
            actor_role=actor_role,
            from_column=before.column_id if before.column_id != after.column_id else None,
            to_column=after.column_id if before.column_id != after.column_id else None,
            from_status=before.status if before.status != after.status else None,
            to_status=after.status if before.status != after.status else None,
            at=datetime.now(timezone.utc),
        )
        self._entries.setdefault(after.id, []).append(activity)
        debug_logger.debug(f"Activity recorded for card {after.id}: {activity.model_dump()}")
        return activity

    def for_card(self, card_id: str) -> List[CardActivity]:
        return list(self._entries.get(card_id, []))

    def forget(self, card_id: str):
        self._entries.pop(card_id, None)
