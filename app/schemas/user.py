from pydantic import BaseModel, Field
from uuid import UUID
from datetime import date, datetime
from typing import Optional

from app.models.user import UserGender
from app.schemas.photo import PhotoResponse
from app.schemas.tag import TagResponse


class UserCreate(BaseModel):
    name: str
    surname: str
    about_myself: Optional[str] = None
    gender: Optional[UserGender] = None


class UserResponse(BaseModel):
    id: UUID
    name: str
    surname: str
    about_myself: Optional[str] = None
    gender: Optional[UserGender] = None
    birth_date: Optional[date] = None
    jung_result: Optional[str] = None
    jung_last_attempt: Optional[datetime] = None
    primary_photo: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UserDetailResponse(UserResponse):
    photos: list[PhotoResponse] = []
    tags: list[TagResponse] = []


class ProfileUpdate(BaseModel):
    """Partial profile update; only fields present in the body are applied."""

    name: Optional[str] = None
    surname: Optional[str] = None
    about_myself: Optional[str] = None
    gender: Optional[UserGender] = None
    birth_date: Optional[date] = None
    jung_result: Optional[str] = Field(None, description="Four-letter personality code")


class AboutUpdate(BaseModel):
    about_myself: str


class NameUpdate(BaseModel):
    name: str


class SurnameUpdate(BaseModel):
    surname: str
