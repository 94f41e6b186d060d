"""User data model for studybuddy."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class User(BaseModel):
    """User model for studybuddy."""

    id: str = Field(..., description="Unique user identifier (Google user ID)")
    email: str = Field(..., description="User email address")
    name: Optional[str] = Field(None, description="User display name")
    reminder_pref: Optional[str] = Field(
        None, description="Encoded reminder preference ('none' or minutes); null means default"
    )
    created_at: datetime = Field(..., description="User creation timestamp")
    updated_at: datetime = Field(..., description="User last update timestamp")
