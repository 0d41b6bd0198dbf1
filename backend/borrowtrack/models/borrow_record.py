"""
BorrowRecord: one lending of `quantity` units of an item to a user.
Status flow: active -> returned (terminal). item_id / user_email are not
enforced foreign keys; deleting a user or item leaves its records in place.
"""
from sqlalchemy import Column, Integer, String, DateTime
from borrowtrack.db.base import Base


class BorrowRecord(Base):
    __tablename__ = "borrow_records"

    id = Column(String(48), primary_key=True)  # b<epoch-ms><random>
    item_id = Column(String(32), nullable=False, index=True)
    user_email = Column(String(255), nullable=False, index=True)
    borrow_date = Column(DateTime(timezone=True), nullable=False)
    return_date = Column(DateTime(timezone=True), nullable=True)
    quantity = Column(Integer, nullable=False)
    status = Column(String(16), nullable=False, default="active")  # active | returned
    estimated_duration = Column(Integer, nullable=False, default=7)  # days
    barcode = Column(String(64), nullable=True)
