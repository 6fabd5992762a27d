from pydantic import BaseModel, ConfigDict, Field


class SearchCriteria(BaseModel):
    """Every recognised professional-search filter and its valid range."""

    model_config = ConfigDict(extra="forbid")

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    radius_km: float = Field(10, ge=1, le=50)
    service_id: str | None = None
    category_id: str | None = None
    min_rating: float | None = Field(None, ge=1, le=5)
    max_price: float | None = Field(None, ge=0)
    emergency_only: bool = False
    verified_only: bool = False
    available_now: bool = False
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=50)


class OfferedService(BaseModel):
    name: str
    category: str
    price: float
    price_unit: str
    description: str | None = None


class ProfessionalSummary(BaseModel):
    id: str
    first_name: str
    last_name: str
    profile_image: str | None
    city: str | None
    rating: float
    rating_count: int
    distance_km: float
    bio: str | None
    experience_years: int
    base_rate: float | None
    work_radius_km: float
    accepts_emergencies: bool
    has_vehicle: bool
    has_tools: bool
    is_verified: bool
    is_premium: bool
    services: list[OfferedService] = []


class SearchPage(BaseModel):
    results: list[ProfessionalSummary]
    total_count: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool
