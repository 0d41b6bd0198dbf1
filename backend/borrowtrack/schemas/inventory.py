"""Inventory records (tool / material / apd) and request bodies.

The record classes are the typed shape shared by the remote accessor, the
local mirror (as JSON, dates in ISO-8601) and the API responses.
"""
from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

ItemType = Literal["tool", "material", "apd"]

ITEM_TYPES = ("tool", "material", "apd")

# Id prefix per item type: t1, m1, p1 ...
TYPE_PREFIXES = {"tool": "t", "material": "m", "apd": "p"}

TOOL_FIELDS = (
    "tool_number",
    "serial_number",
    "last_calibration",
    "next_calibration",
    "notes",
    "measuring_tool_number",
    "sop",
)
CONSUMABLE_FIELDS = ("usage_period",)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops the zone on the way back)."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class _ItemRecord(BaseModel):
    id: str
    name: str
    quantity: int
    available: int
    image: str = ""
    added_date: datetime
    description: str = ""
    barcode: str = ""
    brand: str = ""
    year: int = Field(default_factory=lambda: datetime.now().year)
    unit: str = "pcs"
    location: str = ""
    condition: str = "Good"

    class Config:
        from_attributes = True

    @field_validator("added_date")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class ToolItem(_ItemRecord):
    type: Literal["tool"] = "tool"
    tool_number: str = ""
    serial_number: str = ""
    last_calibration: Optional[datetime] = None
    next_calibration: Optional[datetime] = None
    notes: str = ""
    measuring_tool_number: str = ""
    sop: str = ""

    @field_validator("last_calibration", "next_calibration")
    @classmethod
    def _utc_optional(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class MaterialItem(_ItemRecord):
    type: Literal["material"] = "material"
    usage_period: str = ""


class APDItem(_ItemRecord):
    type: Literal["apd"] = "apd"
    usage_period: str = ""


InventoryItemRecord = Annotated[
    Union[ToolItem, MaterialItem, APDItem],
    Field(discriminator="type"),
]

item_adapter = TypeAdapter(InventoryItemRecord)
item_list_adapter = TypeAdapter(List[InventoryItemRecord])


class InventoryCreate(BaseModel):
    name: str
    type: ItemType
    quantity: int = Field(ge=0)
    available: Optional[int] = None  # defaults to quantity
    image: Optional[str] = None
    description: Optional[str] = None
    brand: Optional[str] = None
    year: Optional[int] = None
    unit: Optional[str] = None
    location: Optional[str] = None
    condition: Optional[str] = None
    # tool
    tool_number: Optional[str] = None
    serial_number: Optional[str] = None
    last_calibration: Optional[datetime] = None
    next_calibration: Optional[datetime] = None
    notes: Optional[str] = None
    measuring_tool_number: Optional[str] = None
    sop: Optional[str] = None
    # material / apd
    usage_period: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Item name cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def available_within_quantity(self):
        if self.available is not None and not 0 <= self.available <= self.quantity:
            raise ValueError("Available must be between 0 and quantity")
        return self


class InventoryUpdate(BaseModel):
    """Partial patch: only fields that are sent are changed."""
    name: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    available: Optional[int] = Field(default=None, ge=0)
    image: Optional[str] = None
    description: Optional[str] = None
    brand: Optional[str] = None
    year: Optional[int] = None
    unit: Optional[str] = None
    location: Optional[str] = None
    condition: Optional[str] = None
    tool_number: Optional[str] = None
    serial_number: Optional[str] = None
    last_calibration: Optional[datetime] = None
    next_calibration: Optional[datetime] = None
    notes: Optional[str] = None
    measuring_tool_number: Optional[str] = None
    sop: Optional[str] = None
    usage_period: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Item name cannot be empty")
        return v.strip() if v is not None else v
