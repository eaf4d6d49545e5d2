"""
Pydantic schemas for Part.
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional


class PartCreate(BaseModel):
    """Schema for adding a part to inventory."""
    name: str = Field(min_length=1)
    part_number: Optional[str] = None
    price: float = Field(ge=0)
    quantity: int = Field(ge=0)
    reorder_level: int = Field(default=5, ge=0)
    description: Optional[str] = None


class PartUpdate(BaseModel):
    """Schema for updating a part."""
    name: Optional[str] = Field(default=None, min_length=1)
    part_number: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    quantity: Optional[int] = Field(default=None, ge=0)
    reorder_level: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None


class Part(BaseModel):
    """Schema for part responses."""
    id: int
    name: str
    part_number: Optional[str] = None
    price: float
    quantity: int
    reorder_level: int
    description: Optional[str] = None
    is_low_stock: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PartEnvelope(BaseModel):
    part: Part


class PartMessage(BaseModel):
    message: str
    part: Part


class PartList(BaseModel):
    parts: list[Part]
