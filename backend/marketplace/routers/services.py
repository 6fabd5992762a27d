from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.schemas.catalog import CategoryResponse, CategoryServicesResponse, ServiceDetailResponse
from marketplace.services import catalog_service

router = APIRouter(prefix="/services", tags=["services"])


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(db: Session = Depends(get_db)):
    return catalog_service.list_categories(db)


@router.get("/categories/{category_id}", response_model=CategoryServicesResponse)
async def category_services(category_id: str, db: Session = Depends(get_db)):
    return catalog_service.category_services(db, category_id)


@router.get("/{service_id}", response_model=ServiceDetailResponse)
async def service_detail(service_id: str, db: Session = Depends(get_db)):
    return catalog_service.service_detail(db, service_id)
