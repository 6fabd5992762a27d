from typing import Literal

from pydantic import BaseModel, Field


class UserRegister(BaseModel):
    email: str = Field(min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=1, max_length=80)
    last_name: str = Field(min_length=1, max_length=80)
    user_type: Literal["client", "professional"]
    phone: str | None = None
    address: str | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    city: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    token: str
    expires_in_seconds: int
    user_id: str
    user_type: str


class UserResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    user_type: str
    phone: str | None
    city: str | None
    latitude: float | None
    longitude: float | None
    rating_avg: float
    rating_count: int
    is_active: bool
    created_at: str


class UserUpdate(BaseModel):
    first_name: str | None = Field(None, min_length=2, max_length=50)
    last_name: str | None = Field(None, min_length=2, max_length=50)
    phone: str | None = Field(None, pattern=r"^\+?[1-9]\d{1,14}$")
    address: str | None = Field(None, max_length=200)
    city: str | None = Field(None, max_length=50)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)


class PublicService(BaseModel):
    service_name: str
    category_name: str
    custom_price: float
    price_unit: str
    description: str | None


class PublicPortfolioItem(BaseModel):
    id: str
    title: str
    description: str | None
    completed_date: str | None
    is_featured: bool


class PublicReview(BaseModel):
    id: str
    rating: int
    comment: str | None
    reviewer_name: str
    created_at: str


class PublicProfessional(BaseModel):
    bio: str | None
    experience_years: int
    work_radius_km: float
    accepts_emergencies: bool
    has_vehicle: bool
    has_tools: bool
    is_verified: bool
    services: list[PublicService]
    portfolio: list[PublicPortfolioItem]
    reviews: list[PublicReview]


class PublicUserResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    user_type: str
    city: str | None
    rating_avg: float
    rating_count: int
    member_since: str
    professional_profile: PublicProfessional | None = None
