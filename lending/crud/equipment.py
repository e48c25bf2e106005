"""Equipment catalog helpers.

Every function takes the request's ``Session`` first, commits its own work and
raises a :class:`~lending.core.errors.LendingError` subclass when the request
cannot be honoured.
"""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError, ValidationError
from ..db.session import transaction
from ..models.equipment import MAX_ID, MAX_UNITS, Equipment

logger = logging.getLogger("lending.equipment")


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def list_equipment(db: Session) -> list[Equipment]:
    """Return every equipment item ordered by id."""

    stmt = select(Equipment).order_by(Equipment.id)
    return list(db.execute(stmt).scalars().all())


def get_equipment(db: Session, equipment_id: int) -> Equipment | None:
    if not _is_int(equipment_id) or not 0 < equipment_id <= MAX_ID:
        return None
    return db.get(Equipment, equipment_id)


def _require_equipment(db: Session, equipment_id: int) -> Equipment:
    item = get_equipment(db, equipment_id)
    if item is None:
        raise NotFoundError(f"Equipment {equipment_id} not found", details={"equipment_id": equipment_id})
    return item


def add_equipment(db: Session, name: str, total: int) -> Equipment:
    """Register a new item; all of its units start out available."""

    cleaned = (name or "").strip() if isinstance(name, str) else ""
    if not cleaned:
        raise ValidationError("Equipment name is required")
    if not _is_int(total) or not 0 <= total <= MAX_UNITS:
        raise ValidationError(
            f"Total must be a whole number between 0 and {MAX_UNITS}",
            details={"total": str(total)},
        )

    item = Equipment(name=cleaned, total=total, available=total)
    with transaction(db):
        db.add(item)
    db.refresh(item)
    logger.info(
        "equipment.created",
        extra={"extra_data": {"equipment_id": item.id, "total": item.total}},
    )
    return item


def delete_equipment(db: Session, equipment_id: int) -> bool:
    """Remove an item permanently.

    Loan records that reference it are left alone and keep pointing at the
    missing id. A database failure is logged and reported as ``False`` rather
    than raised.
    """

    item = _require_equipment(db, equipment_id)
    try:
        db.delete(item)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("equipment.delete_failed", extra={"extra_data": {"equipment_id": equipment_id}})
        return False
    logger.info("equipment.deleted", extra={"extra_data": {"equipment_id": equipment_id}})
    return True


def adjust_stock(db: Session, equipment_id: int, delta: int) -> Equipment:
    """Add or remove owned units, which are assumed to be free ones.

    ``total`` and ``available`` move by the same ``delta``. Removing more units
    than are currently available is rejected even when ``total`` could absorb
    it, because borrowed units cannot be written off here.
    """

    if not _is_int(delta) or abs(delta) > MAX_UNITS:
        raise ValidationError(f"Stock change must be a whole number up to {MAX_UNITS}", details={"delta": str(delta)})
    item = _require_equipment(db, equipment_id)

    new_total = item.total + delta
    new_available = item.available + delta
    if new_total < 0 or new_available < 0 or new_total > MAX_UNITS:
        logger.warning(
            "equipment.stock_rejected",
            extra={
                "extra_data": {
                    "equipment_id": equipment_id,
                    "delta": delta,
                    "total": item.total,
                    "available": item.available,
                }
            },
        )
        raise ValidationError(
            f"Stock must stay between 0 and {MAX_UNITS}",
            details={"equipment_id": equipment_id, "total": item.total, "available": item.available, "delta": delta},
        )

    # Re-check inside the UPDATE so a borrow landing after our read cannot
    # push ``available`` below zero.
    stmt = (
        update(Equipment)
        .where(
            Equipment.id == equipment_id,
            Equipment.total + delta >= 0,
            Equipment.total + delta <= MAX_UNITS,
            Equipment.available + delta >= 0,
        )
        .values(total=Equipment.total + delta, available=Equipment.available + delta)
        .execution_options(synchronize_session=False)
    )
    with transaction(db):
        if db.execute(stmt).rowcount != 1:
            raise ValidationError(
                f"Stock must stay between 0 and {MAX_UNITS}",
                details={"equipment_id": equipment_id, "delta": delta},
            )
    db.refresh(item)
    logger.info(
        "equipment.stock_adjusted",
        extra={"extra_data": {"equipment_id": equipment_id, "delta": delta, "total": item.total}},
    )
    return item
