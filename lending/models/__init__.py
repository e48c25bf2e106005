from .borrow_record import BorrowRecord, BorrowStatus
from .equipment import Equipment

__all__ = ["BorrowRecord", "BorrowStatus", "Equipment"]
