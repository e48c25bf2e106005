from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..crud.equipment import add_equipment, adjust_stock, delete_equipment, list_equipment
from ..db.session import get_db
from ..schemas.equipment import EquipmentCreate, EquipmentOut, StockAdjustment

REFRESH_HEADER = "X-Lending-Refresh"
REFRESH_VALUE = "equipment,records"

router = APIRouter(prefix="/api/v1/equipment", tags=["equipment"])


def signal_refresh(response: Response) -> None:
    """Tell clients the equipment and record lists are stale."""

    response.headers[REFRESH_HEADER] = REFRESH_VALUE


@router.get("", response_model=list[EquipmentOut])
def api_list(db: Session = Depends(get_db)):
    return list_equipment(db)


@router.post("", response_model=EquipmentOut, status_code=201)
def api_create(payload: EquipmentCreate, response: Response, db: Session = Depends(get_db)):
    item = add_equipment(db, payload.name, payload.total)
    signal_refresh(response)
    return item


@router.delete("/{equipment_id}")
def api_delete(equipment_id: int, response: Response, db: Session = Depends(get_db)):
    if not delete_equipment(db, equipment_id):
        return {"status": "failed"}
    signal_refresh(response)
    return {"status": "deleted"}


@router.post("/{equipment_id}/stock", response_model=EquipmentOut)
def api_adjust_stock(equipment_id: int, payload: StockAdjustment, response: Response, db: Session = Depends(get_db)):
    item = adjust_stock(db, equipment_id, payload.delta)
    signal_refresh(response)
    return item
