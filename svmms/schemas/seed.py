"""
Pydantic schemas for the development seeding endpoint.
"""
from pydantic import BaseModel


class SeedResult(BaseModel):
    """Schema for the seeding response: row counts per table."""
    message: str
    summary: dict[str, int]
