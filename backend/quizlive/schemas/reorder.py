"""Schemas for reordering periods and period questions."""

from pydantic import BaseModel, Field


class ReorderRequest(BaseModel):
    """Ids of the siblings in their new order."""

    ids: list[int] = Field(min_length=1)


class PositionRead(BaseModel):
    id: int
    order_num: int
