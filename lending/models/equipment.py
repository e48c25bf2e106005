from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, Integer, Text

from ..db.session import Base

# Largest unit count accepted for ``total``/``available`` (32-bit signed).
MAX_UNITS = 2**31 - 1
# Largest id a 64-bit INTEGER column can hold.
MAX_ID = 2**63 - 1


class Equipment(Base):
    """A borrowable item type with its owned and currently free unit counts."""

    __tablename__ = "equipment"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    total = Column(Integer, nullable=False, default=0)
    available = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("total >= 0", name="ck_equipment_total_non_negative"),
        CheckConstraint("available >= 0", name="ck_equipment_available_non_negative"),
        CheckConstraint("available <= total", name="ck_equipment_available_lte_total"),
        # Loan records outlive deleted equipment, so ids must never be reused.
        {"sqlite_autoincrement": True},
    )

    @property
    def on_loan(self) -> int:
        return (self.total or 0) - (self.available or 0)
