"""Borrow/return helpers.

A borrow takes one unit out of ``Equipment.available`` and writes an ACTIVE
record; a return flips the record to RETURNED and puts the unit back. Both
pairs of writes share one transaction so neither half can land alone.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import case, delete, desc, func, select, update
from sqlalchemy.orm import Session

from ..core.errors import OutOfStockError, ValidationError
from ..db.session import transaction
from ..models.borrow_record import BorrowRecord, BorrowStatus
from ..models.equipment import MAX_ID, Equipment

logger = logging.getLogger("lending.borrowing")


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _valid_id(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 < value <= MAX_ID


def list_records(db: Session) -> list[BorrowRecord]:
    """Fetch every loan record, newest first, with its equipment joined."""

    stmt = select(BorrowRecord).order_by(desc(BorrowRecord.borrow_date), desc(BorrowRecord.id))
    return list(db.execute(stmt).unique().scalars().all())


def get_record(db: Session, record_id: int) -> BorrowRecord | None:
    if not _valid_id(record_id):
        return None
    return db.get(BorrowRecord, record_id)


def borrow_item(db: Session, user_name: str, equipment_id: int) -> BorrowRecord:
    """Lend one unit of ``equipment_id`` to ``user_name``."""

    borrower = (user_name or "").strip() if isinstance(user_name, str) else ""
    if not borrower:
        raise ValidationError("Borrower name is required")

    item = db.get(Equipment, equipment_id) if _valid_id(equipment_id) else None
    if item is None or item.available <= 0:
        raise OutOfStockError("Out of stock", details={"equipment_id": equipment_id})

    # The guard in the WHERE clause makes the decrement itself the stock check,
    # so two borrowers racing for the last unit cannot both succeed.
    decrement = (
        update(Equipment)
        .where(Equipment.id == equipment_id, Equipment.available > 0)
        .values(available=Equipment.available - 1)
        .execution_options(synchronize_session=False)
    )
    record = BorrowRecord(
        user_name=borrower,
        equipment_id=equipment_id,
        borrow_date=_utc_now(),
        status=BorrowStatus.ACTIVE.value,
    )
    with transaction(db):
        if db.execute(decrement).rowcount != 1:
            raise OutOfStockError("Out of stock", details={"equipment_id": equipment_id})
        db.add(record)

    db.refresh(item)
    db.refresh(record)
    logger.info(
        "borrow.created",
        extra={
            "extra_data": {
                "record_id": record.id,
                "equipment_id": equipment_id,
                "available": item.available,
            }
        },
    )
    return record


def return_item(db: Session, record_id: int) -> BorrowRecord | None:
    """Mark an ACTIVE loan as returned and release its unit.

    Returns ``None`` without touching anything when the record does not exist
    or was already returned.
    """

    record = get_record(db, record_id)
    if record is None or record.status == BorrowStatus.RETURNED.value:
        logger.info("borrow.return_skipped", extra={"extra_data": {"record_id": record_id}})
        return None

    increment = (
        update(Equipment)
        .where(Equipment.id == record.equipment_id, Equipment.available < Equipment.total)
        .values(available=Equipment.available + 1)
        .execution_options(synchronize_session=False)
    )
    with transaction(db):
        record.status = BorrowStatus.RETURNED.value
        record.return_date = _utc_now()
        restored = db.execute(increment).rowcount

    db.refresh(record)
    if record.equipment is not None:
        db.refresh(record.equipment)
    if not restored:
        # Equipment deleted, or its stock was already at ``total``.
        logger.warning(
            "borrow.return_unit_not_restored",
            extra={"extra_data": {"record_id": record_id, "equipment_id": record.equipment_id}},
        )
    logger.info(
        "borrow.returned",
        extra={"extra_data": {"record_id": record_id, "equipment_id": record.equipment_id}},
    )
    return record


def clear_history(db: Session, reconcile: bool = False) -> int:
    """Delete every loan record, ACTIVE ones included.

    By default ``available`` is left as it is, so units still out on loan stay
    unavailable with no record explaining why. ``reconcile=True`` hands those
    units back in the same transaction, never raising ``available`` past
    ``total``.
    """

    with transaction(db):
        if reconcile:
            active_counts = db.execute(
                select(BorrowRecord.equipment_id, func.count(BorrowRecord.id))
                .where(BorrowRecord.status == BorrowStatus.ACTIVE.value)
                .group_by(BorrowRecord.equipment_id)
            ).all()
            for equipment_id, count in active_counts:
                db.execute(
                    update(Equipment)
                    .where(Equipment.id == equipment_id)
                    .values(
                        available=case(
                            (Equipment.available + count > Equipment.total, Equipment.total),
                            else_=Equipment.available + count,
                        )
                    )
                    .execution_options(synchronize_session=False)
                )
        deleted = db.execute(delete(BorrowRecord).execution_options(synchronize_session=False)).rowcount

    # Bulk statements bypass the identity map.
    db.expire_all()
    logger.info(
        "history.cleared",
        extra={"extra_data": {"deleted": deleted, "reconciled": reconcile}},
    )
    return deleted
