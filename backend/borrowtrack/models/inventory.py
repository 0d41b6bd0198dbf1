from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from borrowtrack.db.base import Base


class InventoryItem(Base):
    """
    One row per inventory item, all three kinds in one table.

    type: material | tool | apd
    Tool-only columns: tool_number .. sop. Material/apd-only: usage_period.
    available is the number of units not currently lent out.
    """
    __tablename__ = "inventory_items"

    id = Column(String(32), primary_key=True)  # t1, m1, p1 ...
    name = Column(String(255), nullable=False)
    type = Column(String(16), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    available = Column(Integer, nullable=False, default=0)
    image = Column(Text, nullable=True)
    added_date = Column(DateTime(timezone=True), server_default=func.now())
    description = Column(Text, nullable=True)
    barcode = Column(String(64), nullable=True)
    brand = Column(String(255), nullable=True)
    year = Column(Integer, nullable=True)
    unit = Column(String(32), nullable=True)
    location = Column(String(255), nullable=True)
    condition = Column(String(64), nullable=True)
    tool_number = Column(String(64), nullable=True)
    serial_number = Column(String(128), nullable=True)
    last_calibration = Column(DateTime(timezone=True), nullable=True)
    next_calibration = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    measuring_tool_number = Column(String(64), nullable=True)
    sop = Column(Text, nullable=True)
    usage_period = Column(String(64), nullable=True)
