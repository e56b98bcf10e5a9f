from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

from adboard.models import Role


# --- User ---

class UserBase(BaseModel):
    email: str = Field(max_length=255)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=32)


class UserCreate(UserBase):
    password: str = Field(min_length=8, max_length=128)


class UserResponse(UserBase):
    id: int
    role: Role
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Listing ---

class CreateOrUpdateAd(BaseModel):
    title: str = Field(min_length=4, max_length=32)
    description: str = Field(min_length=8, max_length=64)
    price: int = Field(ge=0, le=10_000_000)


class ListingSummary(BaseModel):
    id: int
    author_id: int
    title: str
    price: int
    image: str | None = None


class ListingsPage(BaseModel):
    count: int
    results: list[ListingSummary] = []


class ListingDetail(BaseModel):
    id: int
    title: str
    description: str
    price: int
    image: str | None = None
    author_first_name: str | None = None
    author_last_name: str | None = None
    email: str
    phone: str | None = None


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_listings: int
    total_comments: int
    total_users: int
    avg_comments_per_listing: float
    cache_info: dict = {}
