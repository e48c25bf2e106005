from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.equipment import MAX_ID
from .equipment import EquipmentOut


class BorrowRequest(BaseModel):
    user_name: str = Field(min_length=1)
    equipment_id: int = Field(ge=1, le=MAX_ID)


class BorrowRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_name: str
    equipment_id: int
    borrow_date: str
    return_date: Optional[str] = None
    status: Literal["ACTIVE", "RETURNED"]
    equipment: Optional[EquipmentOut] = None


class ReturnResult(BaseModel):
    status: Literal["returned", "unchanged"]
    record: Optional[BorrowRecordOut] = None


class ClearHistoryResult(BaseModel):
    status: Literal["cleared"] = "cleared"
    deleted: int
    reconciled: bool = False
