from typing import Literal

from pydantic import BaseModel, Field


class ProfileUpdate(BaseModel):
    bio: str | None = Field(None, max_length=500)
    experience_years: int | None = Field(None, ge=0, le=50)
    hourly_rate: float | None = Field(None, ge=0, le=100000)
    work_radius_km: float | None = Field(None, ge=1, le=100)
    accepts_emergencies: bool | None = None
    emergency_rate_multiplier: float | None = Field(None, ge=1, le=5)
    has_vehicle: bool | None = None
    has_tools: bool | None = None
    # {"mon": ["08:00", "18:00"], ...}; a missing day means closed.
    work_schedule: dict[str, list[str]] | None = None


class AvailabilityUpdate(BaseModel):
    is_available: bool


class ProfileResponse(BaseModel):
    id: str
    user_id: str
    bio: str | None
    experience_years: int
    hourly_rate: float | None
    work_radius_km: float
    work_schedule: dict[str, list[str]] | None
    accepts_emergencies: bool
    emergency_rate_multiplier: float
    has_vehicle: bool
    has_tools: bool
    verification_status: str
    is_available: bool
    subscription_type: str


class OfferedServiceCreate(BaseModel):
    service_id: str
    custom_price: float = Field(ge=0)
    price_unit: Literal["servicio", "hora", "m2", "metro", "punto"] = "servicio"
    description: str | None = Field(None, max_length=300)


class OfferedServiceResponse(BaseModel):
    id: str
    service_id: str
    service_name: str
    custom_price: float
    price_unit: str
    description: str | None
    created_at: str


class PortfolioCreate(BaseModel):
    title: str = Field(min_length=5, max_length=100)
    description: str | None = Field(None, max_length=300)
    service_id: str | None = None
    completed_date: str | None = None
    is_featured: bool = False


class PortfolioResponse(BaseModel):
    id: str
    title: str
    description: str | None
    service_id: str | None
    completed_date: str | None
    is_featured: bool
    created_at: str


class RecentJob(BaseModel):
    id: str
    job_number: str
    title: str
    status: str
    price: float | None
    service_name: str | None
    client_name: str
    created_at: str


class ProfessionalStats(BaseModel):
    total_jobs: int
    completed_jobs: int
    active_quotations: int
    total_earnings: float
    avg_rating: float
    success_rate: int
    recent_jobs: list[RecentJob]
