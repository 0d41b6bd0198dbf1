from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, TypeAdapter, field_validator

from borrowtrack.schemas.inventory import as_utc

BorrowStatus = Literal["active", "returned"]


class BorrowRecordData(BaseModel):
    id: str
    item_id: str
    user_email: str
    borrow_date: datetime
    return_date: Optional[datetime] = None
    quantity: int
    status: BorrowStatus = "active"
    estimated_duration: int = 7
    barcode: str = ""

    class Config:
        from_attributes = True

    @field_validator("borrow_date", "return_date")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


record_list_adapter = TypeAdapter(List[BorrowRecordData])


class BorrowRecordCreate(BaseModel):
    """Input of the raw add operation (id and barcode are assigned by the layer)."""
    item_id: str
    user_email: str
    quantity: int
    borrow_date: Optional[datetime] = None
    estimated_duration: int = 7


class BorrowRequest(BaseModel):
    item_id: str
    quantity: int = Field(default=1, gt=0)
    estimated_duration: Optional[int] = Field(default=None, gt=0)
    # Admins may borrow on behalf of another user
    user_email: Optional[EmailStr] = None
