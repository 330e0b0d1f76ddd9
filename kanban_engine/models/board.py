from typing import Optional, Tuple
import enum

from pydantic import BaseModel, validator


class BoardVariant(str, enum.Enum):
    """How cards are addressed on a board"""
    SIMPLE = "simple"        # column only
    COMPOUND = "compound"    # column x sub-status


class BoardKind(str, enum.Enum):
    """Board types known to the agency application"""
    STANDARD = "standard"
    DESIGN = "design"
    VIDEO = "video"
    DEVS = "devs"
    PRODUTORA = "produtora"
    ATRIZES = "atrizes"


class StatusDefinition(BaseModel):
    """One entry of a compound board's closed status enumeration"""
    id: str
    label: str
    color: Optional[str] = None

    class Config:
        frozen = True


_REVIEW_FLOW = (
    StatusDefinition(id="a_fazer", label="A FAZER", color="slate"),
    StatusDefinition(id="fazendo", label="FAZENDO", color="blue"),
    StatusDefinition(id="alteracao", label="ALTERAÇÃO", color="orange"),
    StatusDefinition(id="aguardando_aprovacao", label="AGUARDANDO APROVAÇÃO", color="purple"),
    StatusDefinition(id="aprovados", label="APROVADOS", color="green"),
)

# Ordered status sets; the first entry is the default bucket, the last means "done"
STATUS_SETS = {
    BoardKind.DESIGN: (
        StatusDefinition(id="a_fazer", label="A FAZER", color="blue"),
        StatusDefinition(id="fazendo", label="FAZENDO", color="orange"),
        StatusDefinition(id="arrumar", label="ARRUMAR", color="red"),
        StatusDefinition(id="para_aprovacao", label="PARA APROVAÇÃO", color="purple"),
        StatusDefinition(id="aprovado", label="APROVADO", color="green"),
    ),
    BoardKind.VIDEO: _REVIEW_FLOW,
    BoardKind.DEVS: _REVIEW_FLOW,
    BoardKind.ATRIZES: _REVIEW_FLOW,
    BoardKind.PRODUTORA: (
        StatusDefinition(id="a_gravar", label="A GRAVAR", color="blue"),
        StatusDefinition(id="gravando", label="GRAVANDO", color="orange"),
        StatusDefinition(id="problemas", label="PROBLEMAS!", color="red"),
        StatusDefinition(id="pos_producao", label="PÓS PRODUÇÃO", color="purple"),
        StatusDefinition(id="gravado", label="GRAVADO", color="green"),
    ),
}

# Entering this status asks the card's requester for approval
APPROVAL_STATUS = {
    BoardKind.DESIGN: "para_aprovacao",
    BoardKind.VIDEO: "aguardando_aprovacao",
    BoardKind.DEVS: "aguardando_aprovacao",
    BoardKind.ATRIZES: "aguardando_aprovacao",
    BoardKind.PRODUTORA: "gravado",
}

# Column names treated as a "done" stage on simple boards
DONE_COLUMN_NAMES = frozenset({"done", "concluido", "concluído", "finalizado"})


class Column(BaseModel):
    """Column of a board: a workflow stage (simple) or an assignee lane (compound)"""
    id: str
    board_id: str
    title: str
    color: Optional[str] = None   # Semantic colour tag, e.g. "green"
    done: bool = False

    class Config:
        frozen = True

    @property
    def represents_done(self) -> bool:
        if self.done:
            return True
        return (
            self.id.strip().lower() in DONE_COLUMN_NAMES
            or self.title.strip().lower() in DONE_COLUMN_NAMES
        )

    @property
    def assignee_name(self) -> Optional[str]:
        """Name from a "BY <name>" assignee column title"""
        title = self.title.strip()
        if title.upper().startswith("BY "):
            return title[3:].strip() or None
        return None


class Board(BaseModel):
    """Board with its columns; the kind (and so the variant) never changes"""
    id: str
    name: str
    slug: Optional[str] = None
    kind: BoardKind = BoardKind.STANDARD
    columns: Tuple[Column, ...] = ()

    class Config:
        frozen = True

    @validator("columns")
    def columns_belong_to_board(cls, columns, values):
        board_id = values.get("id")
        ids = set()
        for column in columns:
            if board_id is not None and column.board_id != board_id:
                raise ValueError(f"Column {column.id} belongs to board {column.board_id}")
            if column.id in ids:
                raise ValueError(f"Duplicate column id {column.id}")
            ids.add(column.id)
        return columns

    @property
    def variant(self) -> BoardVariant:
        if self.kind == BoardKind.STANDARD:
            return BoardVariant.SIMPLE
        return BoardVariant.COMPOUND

    @property
    def is_compound(self) -> bool:
        return self.variant == BoardVariant.COMPOUND

    @property
    def statuses(self) -> Tuple[StatusDefinition, ...]:
        return STATUS_SETS.get(self.kind, ())

    @property
    def status_ids(self) -> Tuple[str, ...]:
        return tuple(status.id for status in self.statuses)

    @property
    def default_status(self) -> Optional[str]:
        return self.statuses[0].id if self.statuses else None

    @property
    def done_status(self) -> Optional[str]:
        return self.statuses[-1].id if self.statuses else None

    @property
    def approval_status(self) -> Optional[str]:
        return APPROVAL_STATUS.get(self.kind)

    def get_column(self, column_id: str) -> Optional[Column]:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def has_status(self, status_id: Optional[str]) -> bool:
        return status_id is not None and status_id in self.status_ids

    def resolve_status(self, status_id: Optional[str]) -> Optional[str]:
        """Bucket a stored status falls into; unknown or missing values map to the default"""
        if not self.is_compound:
            return None
        if self.has_status(status_id):
            return status_id
        return self.default_status
