"""User profile node model."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class UserBase(BaseModel):
    """Base profile attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: Optional[EmailStr] = None
    username: str = Field(..., min_length=1, max_length=100)
    bio: str = ""
    photo_url: Optional[str] = None
    interests: list[str] = Field(default_factory=list)


class UserCreate(UserBase):
    """Schema for creating a profile. ``uid`` is the identity-provider subject."""

    uid: str = Field(..., min_length=1, max_length=128)


class UserUpdate(BaseModel):
    """Schema for updating a profile."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    username: Optional[str] = Field(None, min_length=1, max_length=100)
    bio: Optional[str] = None
    photo_url: Optional[str] = None
    interests: Optional[list[str]] = None


class UserProfile(UserBase):
    """Complete profile with adjacency lists."""

    id: str
    followers: list[str] = Field(default_factory=list)
    following: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
