"""Placement keys: where a card lives on a board.

A simple board addresses cards by column alone, a compound board by column
and sub-status. The two shapes are separate frozen models tagged by ``kind``
so a column-only key can never be mistaken for a column/status key.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class SimplePlacement(BaseModel):
    """Column-only address used by simple boards"""
    kind: Literal["simple"] = "simple"
    board_id: str
    column_id: str

    class Config:
        frozen = True

    @property
    def status_id(self) -> Optional[str]:
        return None

    def __str__(self) -> str:
        return f"{self.board_id}/{self.column_id}"


class CompoundPlacement(BaseModel):
    """Column x status address used by compound boards"""
    kind: Literal["compound"] = "compound"
    board_id: str
    column_id: str
    status_id: str

    class Config:
        frozen = True

    def __str__(self) -> str:
        return f"{self.board_id}/{self.column_id}:{self.status_id}"


PlacementKey = Annotated[Union[SimplePlacement, CompoundPlacement], Field(discriminator="kind")]


def placement_for(board_id: str, column_id: str, status_id: Optional[str] = None):
    """Build the key shape matching whether a status is given"""
    if status_id is None:
        return SimplePlacement(board_id=board_id, column_id=column_id)
    return CompoundPlacement(board_id=board_id, column_id=column_id, status_id=status_id)
