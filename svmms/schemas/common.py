"""
Pydantic schemas shared by several resources.
"""
from pydantic import BaseModel


class Message(BaseModel):
    """Schema for plain acknowledgement responses."""
    message: str


class Pagination(BaseModel):
    """Schema for pagination metadata."""
    currentPage: int
    totalPages: int
    totalItems: int
    itemsPerPage: int
