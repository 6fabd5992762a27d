from sqlalchemy import func
from sqlalchemy.orm import Session

from marketplace.errors import NotFound
from marketplace.models.catalog import Service, ServiceCategory
from marketplace.models.professional import ProfessionalService
from marketplace.schemas.catalog import (
    CategoryResponse,
    CategoryServicesResponse,
    PriceRange,
    ServiceCategoryRef,
    ServiceDetailResponse,
    ServiceResponse,
)


def _category_response(category: ServiceCategory, service_count: int, professional_count: int) -> CategoryResponse:
    return CategoryResponse(
        id=category.id,
        name=category.name,
        slug=category.slug,
        description=category.description,
        color_hex=category.color_hex,
        service_count=service_count,
        professional_count=professional_count,
    )


def _priced_services(db: Session):
    """Active services with the count and price spread of the professionals offering them."""
    return (
        db.query(
            Service,
            func.count(func.distinct(ProfessionalService.professional_id)),
            func.min(ProfessionalService.custom_price),
            func.max(ProfessionalService.custom_price),
            func.avg(ProfessionalService.custom_price),
        )
        .outerjoin(
            ProfessionalService,
            (ProfessionalService.service_id == Service.id) & ProfessionalService.is_active.is_(True),
        )
        .filter(Service.is_active.is_(True))
        .group_by(Service.id)
    )


def _service_response(service: Service, count: int, low, high, avg) -> ServiceResponse:
    return ServiceResponse(
        id=service.id,
        name=service.name,
        slug=service.slug,
        description=service.description,
        base_price=service.base_price,
        price_unit=service.price_unit,
        is_emergency=bool(service.is_emergency),
        professional_count=count,
        price_range=PriceRange(
            min_price=low or 0,
            max_price=high or 0,
            avg_price=round(avg, 2) if avg is not None else 0,
        ),
    )


def list_categories(db: Session) -> list[CategoryResponse]:
    """Active categories in display order, with active service and offering-professional counts."""
    rows = (
        db.query(
            ServiceCategory,
            func.count(func.distinct(Service.id)).label("services"),
            func.count(func.distinct(ProfessionalService.professional_id)).label("professionals"),
        )
        .outerjoin(Service, (Service.category_id == ServiceCategory.id) & Service.is_active.is_(True))
        .outerjoin(
            ProfessionalService,
            (ProfessionalService.service_id == Service.id) & ProfessionalService.is_active.is_(True),
        )
        .filter(ServiceCategory.is_active.is_(True))
        .group_by(ServiceCategory.id)
        .order_by(ServiceCategory.sort_order.asc(), ServiceCategory.name.asc())
        .all()
    )
    return [_category_response(category, services, professionals) for category, services, professionals in rows]


def category_services(db: Session, category_id: str) -> CategoryServicesResponse:
    category = (
        db.query(ServiceCategory)
        .filter(ServiceCategory.id == category_id)
        .filter(ServiceCategory.is_active.is_(True))
        .first()
    )
    if not category:
        raise NotFound("Category", category_id)

    rows = (
        _priced_services(db)
        .filter(Service.category_id == category_id)
        .order_by(Service.name.asc())
        .all()
    )
    services = [_service_response(*row) for row in rows]
    professionals = len({
        pid for (pid,) in db.query(ProfessionalService.professional_id)
        .join(Service, Service.id == ProfessionalService.service_id)
        .filter(Service.category_id == category_id)
        .filter(ProfessionalService.is_active.is_(True))
        .distinct()
        .all()
    })
    return CategoryServicesResponse(
        category=_category_response(category, len(services), professionals),
        services=services,
    )


def service_detail(db: Session, service_id: str) -> ServiceDetailResponse:
    row = (
        _priced_services(db)
        .join(ServiceCategory, ServiceCategory.id == Service.category_id)
        .filter(ServiceCategory.is_active.is_(True))
        .filter(Service.id == service_id)
        .first()
    )
    if not row:
        raise NotFound("Service", service_id)
    service = row[0]
    category = service.category
    return ServiceDetailResponse(
        service=_service_response(*row),
        category=ServiceCategoryRef(id=category.id, name=category.name, slug=category.slug),
    )
