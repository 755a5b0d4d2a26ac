from datetime import datetime
from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    """Schema for registering a point-holder."""
    name: str = Field(..., min_length=1, max_length=100)
    handle: str = Field(..., min_length=1, max_length=50, pattern=r'^[a-zA-Z0-9_]+$')


class UserResponse(BaseModel):
    id: int
    name: str
    handle: str
    created_at: datetime

    class Config:
        from_attributes = True
