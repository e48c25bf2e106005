from __future__ import annotations

import enum

from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class BorrowStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    RETURNED = "RETURNED"


class BorrowRecord(Base):
    """One loan of one unit of equipment to one person.

    ``status`` only ever moves from ACTIVE to RETURNED, and ``return_date`` is
    filled in at that moment.
    """

    __tablename__ = "borrow_records"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    user_name = Column(Text, nullable=False)
    equipment_id = Column(Integer, ForeignKey("equipment.id"), nullable=False, index=True)
    borrow_date = Column(Text, nullable=False, index=True)
    return_date = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default=BorrowStatus.ACTIVE.value, index=True)

    # Read-only navigation for display joins; equipment keeps no back collection.
    equipment = relationship("Equipment", lazy="joined", viewonly=True)

    @property
    def is_active(self) -> bool:
        return self.status == BorrowStatus.ACTIVE.value

    @property
    def equipment_name(self) -> str | None:
        return self.equipment.name if self.equipment else None
