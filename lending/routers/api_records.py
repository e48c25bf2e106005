from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from ..crud.borrowing import borrow_item, clear_history, list_records, return_item
from ..db.session import get_db
from ..schemas.borrow import BorrowRecordOut, BorrowRequest, ClearHistoryResult, ReturnResult
from .api_equipment import signal_refresh

router = APIRouter(prefix="/api/v1/records", tags=["records"])


@router.get("", response_model=list[BorrowRecordOut])
def api_list(db: Session = Depends(get_db)):
    return list_records(db)


@router.post("", response_model=BorrowRecordOut, status_code=201)
def api_borrow(payload: BorrowRequest, response: Response, db: Session = Depends(get_db)):
    record = borrow_item(db, payload.user_name, payload.equipment_id)
    signal_refresh(response)
    return record


@router.post("/{record_id}/return", response_model=ReturnResult)
def api_return(record_id: int, response: Response, db: Session = Depends(get_db)):
    record = return_item(db, record_id)
    if record is None:
        return ReturnResult(status="unchanged")
    signal_refresh(response)
    return ReturnResult(status="returned", record=BorrowRecordOut.model_validate(record))


@router.delete("", response_model=ClearHistoryResult)
def api_clear(
    request: Request,
    response: Response,
    reconcile: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    if reconcile is None:
        reconcile = request.app.state.settings.RECONCILE_ON_CLEAR_HISTORY
    deleted = clear_history(db, reconcile=reconcile)
    signal_refresh(response)
    return ClearHistoryResult(deleted=deleted, reconciled=reconcile)
