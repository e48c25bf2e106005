"""Dashboard pages and form actions.

Each form POST runs one operation and redirects back to ``/borrow`` so the
browser re-fetches both lists. Failures travel back as an ``error`` query
parameter and are shown above the tabs.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

from ..core.errors import LendingError
from ..crud.borrowing import borrow_item, clear_history, list_records, return_item
from ..crud.equipment import add_equipment, adjust_stock, delete_equipment, list_equipment
from ..db.session import get_db

logger = logging.getLogger("lending.ui")

TABS = ("equipment", "borrow", "history")

router = APIRouter()


def _back(tab: str, *, error: str | None = None, notice: str | None = None) -> RedirectResponse:
    params = {"tab": tab if tab in TABS else TABS[0]}
    if error:
        params["error"] = error
        logger.info("ui.action_failed", extra={"extra_data": {"tab": params["tab"], "reason": error}})
    if notice:
        params["notice"] = notice
    return RedirectResponse(url=f"/borrow?{urlencode(params)}", status_code=303)


def _parse_int(raw: str) -> int | None:
    try:
        return int(raw.strip())
    except (AttributeError, ValueError):
        return None


@router.get("/", include_in_schema=False)
def index_page():
    return RedirectResponse(url="/borrow", status_code=302)


@router.get("/borrow", response_class=HTMLResponse)
def borrow_page(
    request: Request,
    tab: str = "equipment",
    error: str | None = None,
    notice: str | None = None,
    db: Session = Depends(get_db),
):
    equipment = list_equipment(db)
    records = list_records(db)
    context = {
        "request": request,
        "tab": tab if tab in TABS else TABS[0],
        "tabs": TABS,
        "equipment": equipment,
        "borrowable": [item for item in equipment if item.available > 0],
        "records": records,
        "active_records": [r for r in records if r.is_active],
        "error": error,
        "notice": notice,
        "app_name": request.app.state.settings.APP_NAME,
        "reconcile_default": request.app.state.settings.RECONCILE_ON_CLEAR_HISTORY,
    }
    response = request.app.state.templates.TemplateResponse(request, "borrow.html", context)
    response.headers["Cache-Control"] = "no-store"
    return response


@router.post("/borrow/equipment")
def add_equipment_action(
    name: str = Form(""),
    total: str = Form("0"),
    db: Session = Depends(get_db),
):
    count = _parse_int(total)
    if count is None:
        return _back("equipment", error="Total must be a whole number")
    try:
        item = add_equipment(db, name, count)
    except LendingError as exc:
        return _back("equipment", error=exc.message)
    return _back("equipment", notice=f"Added {item.name}")


@router.post("/borrow/equipment/{equipment_id}/delete")
def delete_equipment_action(equipment_id: int, db: Session = Depends(get_db)):
    try:
        deleted = delete_equipment(db, equipment_id)
    except LendingError as exc:
        return _back("equipment", error=exc.message)
    if not deleted:
        return _back("equipment", error="Delete failed")
    return _back("equipment", notice="Equipment deleted")


@router.post("/borrow/equipment/{equipment_id}/stock")
def adjust_stock_action(equipment_id: int, delta: str = Form("0"), db: Session = Depends(get_db)):
    change = _parse_int(delta)
    if change is None:
        return _back("equipment", error="Stock change must be a whole number")
    try:
        adjust_stock(db, equipment_id, change)
    except LendingError as exc:
        return _back("equipment", error=exc.message)
    return _back("equipment")


@router.post("/borrow/records")
def borrow_action(
    user_name: str = Form(""),
    equipment_id: str = Form(""),
    db: Session = Depends(get_db),
):
    target = _parse_int(equipment_id)
    if target is None:
        return _back("borrow", error="Choose an item to borrow")
    try:
        record = borrow_item(db, user_name, target)
    except LendingError as exc:
        return _back("borrow", error=exc.message)
    return _back("borrow", notice=f"{record.user_name} borrowed {record.equipment_name}")


@router.post("/borrow/records/{record_id}/return")
def return_action(record_id: int, db: Session = Depends(get_db)):
    try:
        return_item(db, record_id)
    except LendingError as exc:
        return _back("borrow", error=exc.message)
    return _back("borrow")


@router.post("/borrow/history/clear")
def clear_history_action(
    reconcile: str | None = Form(None),
    db: Session = Depends(get_db),
):
    # An unchecked box posts nothing; the page pre-checks it from the setting.
    restore = reconcile is not None and reconcile.lower() in ("1", "true", "on", "yes")
    try:
        deleted = clear_history(db, reconcile=restore)
    except LendingError as exc:
        return _back("history", error=exc.message)
    return _back("history", notice=f"Cleared {deleted} records")
