from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, TypeAdapter, field_validator

from borrowtrack.schemas.inventory import as_utc

Role = Literal["admin", "user"]


class UserRecord(BaseModel):
    """A user as stored remotely and mirrored locally. `password` is a salted hash."""
    email: str
    password: str
    role: Role = "user"
    name: str
    nip: str = ""
    birth_date: Optional[datetime] = None
    address: str = ""
    created_at: datetime
    barcode: str = ""

    class Config:
        from_attributes = True

    @field_validator("birth_date", "created_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


user_list_adapter = TypeAdapter(List[UserRecord])


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    name: str
    role: Role = "user"
    nip: Optional[str] = None
    birth_date: Optional[datetime] = None
    address: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()


class UserRegister(BaseModel):
    """Self-registration; role is always "user"."""
    email: EmailStr
    password: str
    name: str
    nip: Optional[str] = None
    birth_date: Optional[datetime] = None
    address: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()


class UserUpdate(BaseModel):
    """Admin edit. Partial patch."""
    password: Optional[str] = None
    role: Optional[Role] = None
    name: Optional[str] = None
    nip: Optional[str] = None
    birth_date: Optional[datetime] = None
    address: Optional[str] = None


class ProfileUpdate(BaseModel):
    """Self-service profile edit: no role changes."""
    password: Optional[str] = None
    name: Optional[str] = None
    nip: Optional[str] = None
    birth_date: Optional[datetime] = None
    address: Optional[str] = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    email: str
    role: Role
    name: str
    nip: str = ""
    birth_date: Optional[datetime] = None
    address: str = ""
    created_at: datetime
    barcode: str = ""

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
