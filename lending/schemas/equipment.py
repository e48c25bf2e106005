from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictInt

from ..models.equipment import MAX_UNITS


class EquipmentCreate(BaseModel):
    name: str = Field(min_length=1)
    total: StrictInt = Field(ge=0, le=MAX_UNITS)


class StockAdjustment(BaseModel):
    delta: StrictInt = Field(ge=-MAX_UNITS, le=MAX_UNITS)


class EquipmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    total: int
    available: int
    on_loan: int = 0
