from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.database import get_db
from marketplace.dependencies import require_professional, require_user
from marketplace.models.user import User
from marketplace.schemas.professional import (
    AvailabilityUpdate,
    OfferedServiceCreate,
    OfferedServiceResponse,
    PortfolioCreate,
    PortfolioResponse,
    ProfessionalStats,
    ProfileResponse,
    ProfileUpdate,
)
from marketplace.schemas.search import SearchPage
from marketplace.services import profile_service, search_service, stats_service

router = APIRouter(prefix="/professionals", tags=["professionals"])


@router.get("/search", response_model=SearchPage, dependencies=[Depends(require_user)])
async def search(
    latitude: float,
    longitude: float,
    radius_km: float = settings.search_default_radius_km,
    service_id: str | None = None,
    category_id: str | None = None,
    min_rating: float | None = None,
    max_price: float | None = None,
    emergency_only: bool = False,
    verified_only: bool = False,
    available_now: bool = False,
    page: int = 1,
    limit: int = settings.search_default_limit,
    db: Session = Depends(get_db),
):
    # Range checks happen in build_criteria so they surface as VALIDATION_ERROR.
    criteria = search_service.build_criteria(
        latitude=latitude,
        longitude=longitude,
        radius_km=radius_km,
        service_id=service_id,
        category_id=category_id,
        min_rating=min_rating,
        max_price=max_price,
        emergency_only=emergency_only,
        verified_only=verified_only,
        available_now=available_now,
        page=page,
        limit=limit,
    )
    return search_service.search_professionals(db, criteria)


@router.get("/me/profile", response_model=ProfileResponse)
async def get_my_profile(user: User = Depends(require_professional), db: Session = Depends(get_db)):
    return profile_service.to_response(profile_service.get_profile(db, user.id))


@router.put("/me/profile", response_model=ProfileResponse)
async def update_my_profile(
    req: ProfileUpdate, user: User = Depends(require_professional), db: Session = Depends(get_db),
):
    return profile_service.to_response(profile_service.update_profile(db, user.id, req))


@router.put("/me/availability", response_model=ProfileResponse)
async def update_availability(
    req: AvailabilityUpdate, user: User = Depends(require_professional), db: Session = Depends(get_db),
):
    return profile_service.to_response(profile_service.set_availability(db, user.id, req.is_available))


@router.get("/me/services", response_model=list[OfferedServiceResponse])
async def list_my_services(user: User = Depends(require_professional), db: Session = Depends(get_db)):
    return [
        OfferedServiceResponse(
            id=offered.id,
            service_id=service.id,
            service_name=service.name,
            custom_price=offered.custom_price,
            price_unit=offered.price_unit,
            description=offered.description,
            created_at=offered.created_at,
        )
        for offered, service in profile_service.list_offered_services(db, user.id)
    ]


@router.post("/me/services", response_model=OfferedServiceResponse, status_code=201)
async def add_service(
    req: OfferedServiceCreate, user: User = Depends(require_professional), db: Session = Depends(get_db),
):
    offered = profile_service.add_offered_service(db, user.id, req)
    return OfferedServiceResponse(
        id=offered.id,
        service_id=offered.service_id,
        service_name=offered.service.name,
        custom_price=offered.custom_price,
        price_unit=offered.price_unit,
        description=offered.description,
        created_at=offered.created_at,
    )


@router.delete("/me/services/{offered_id}")
async def remove_service(
    offered_id: str, user: User = Depends(require_professional), db: Session = Depends(get_db),
):
    profile_service.remove_offered_service(db, user.id, offered_id)
    return {"message": "Service removed"}


@router.post("/me/portfolio", response_model=PortfolioResponse, status_code=201)
async def add_portfolio(
    req: PortfolioCreate, user: User = Depends(require_professional), db: Session = Depends(get_db),
):
    item = profile_service.add_portfolio_item(db, user.id, req)
    return PortfolioResponse(
        id=item.id,
        title=item.title,
        description=item.description,
        service_id=item.service_id,
        completed_date=item.completed_date,
        is_featured=bool(item.is_featured),
        created_at=item.created_at,
    )


@router.get("/me/stats", response_model=ProfessionalStats)
async def my_stats(user: User = Depends(require_professional), db: Session = Depends(get_db)):
    return stats_service.professional_stats(db, user.id)
