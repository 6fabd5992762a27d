from pydantic import BaseModel


class CategoryResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None
    color_hex: str | None
    service_count: int = 0
    professional_count: int = 0


class PriceRange(BaseModel):
    min_price: float = 0
    max_price: float = 0
    avg_price: float = 0


class ServiceResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None
    base_price: float | None
    price_unit: str
    is_emergency: bool
    professional_count: int = 0
    price_range: PriceRange = PriceRange()


class CategoryServicesResponse(BaseModel):
    category: CategoryResponse
    services: list[ServiceResponse]


class ServiceCategoryRef(BaseModel):
    id: str
    name: str
    slug: str


class ServiceDetailResponse(BaseModel):
    service: ServiceResponse
    category: ServiceCategoryRef
