from typing import Optional


class KanbanError(Exception):
    """Base error for rejected or failed board operations.

    Carries an HTTP-like status code so the presentation layer can choose
    its messaging ("no permission" vs "could not save") without parsing text.
    """

    code: int = 500

    def __init__(self, detail: str, card_id: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.card_id = card_id

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {
            "error": self.kind,
            "code": self.code,
            "detail": self.detail,
            "card_id": self.card_id,
        }


class PermissionDenied(KanbanError):
    """The transition policy refused the operation for the actor's role"""
    code = 403


class NotFound(KanbanError):
    """Unknown card, column or status id"""
    code = 404


class InvalidPlacement(KanbanError):
    """Destination key is structurally invalid for the board"""
    code = 400


class PersistenceFailure(KanbanError):
    """The persistence collaborator failed or timed out"""
    code = 503


class InvalidCardData(KanbanError):
    """Card fields that do not fit the board, e.g. a priority of the other variant"""
    code = 422
