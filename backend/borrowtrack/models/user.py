from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.sql import func
from borrowtrack.db.base import Base


class User(Base):
    __tablename__ = "users"

    email = Column(String(255), primary_key=True)
    password = Column(String(255), nullable=False)  # salted hash, never plaintext
    role = Column(String(16), nullable=False, default="user")  # admin | user
    name = Column(String(255), nullable=False)
    nip = Column(String(64), nullable=True)  # employee id
    birth_date = Column(DateTime(timezone=True), nullable=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    barcode = Column(String(64), nullable=True)
