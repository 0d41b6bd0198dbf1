from borrowtrack.models.user import User
from borrowtrack.models.inventory import InventoryItem
from borrowtrack.models.borrow_record import BorrowRecord

__all__ = ["User", "InventoryItem", "BorrowRecord"]
