import json
import logging
import re
import uuid

from sqlalchemy.orm import Session

from marketplace.errors import Conflict, Forbidden, NotFound, ValidationError
from marketplace.models.catalog import Service
from marketplace.models.professional import PortfolioItem, ProfessionalProfile, ProfessionalService
from marketplace.models.user import User
from marketplace.schemas.professional import (
    OfferedServiceCreate,
    PortfolioCreate,
    ProfileResponse,
    ProfileUpdate,
)
from marketplace.services.search_service import WEEKDAYS
from marketplace.utils.timeutil import to_iso, utc_now

logger = logging.getLogger("marketplace.professionals")

MAX_FEATURED_PORTFOLIO = 3
_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def get_profile(db: Session, user_id: str) -> ProfessionalProfile:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User", user_id)
    if user.user_type != "professional" or user.profile is None:
        raise Forbidden("Only professionals have a professional profile")
    return user.profile


def to_response(profile: ProfessionalProfile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        user_id=profile.user_id,
        bio=profile.bio,
        experience_years=profile.experience_years or 0,
        hourly_rate=profile.hourly_rate,
        work_radius_km=profile.work_radius_km,
        work_schedule=json.loads(profile.work_schedule) if profile.work_schedule else None,
        accepts_emergencies=bool(profile.accepts_emergencies),
        emergency_rate_multiplier=profile.emergency_rate_multiplier,
        has_vehicle=bool(profile.has_vehicle),
        has_tools=bool(profile.has_tools),
        verification_status=profile.verification_status,
        is_available=bool(profile.is_available),
        subscription_type=profile.subscription_type,
    )


def _validate_schedule(schedule: dict[str, list[str]]) -> str:
    for day, hours in schedule.items():
        if day not in WEEKDAYS:
            raise ValidationError(f"Unknown weekday '{day}'", field="work_schedule")
        if len(hours) != 2 or not all(_HHMM.match(h) for h in hours) or hours[0] >= hours[1]:
            raise ValidationError(
                f"Hours for '{day}' must be [\"HH:MM\", \"HH:MM\"] with opening before closing",
                field="work_schedule",
            )
    return json.dumps(schedule, sort_keys=True)


def update_profile(db: Session, user_id: str, data: ProfileUpdate) -> ProfessionalProfile:
    profile = get_profile(db, user_id)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")

    if "work_schedule" in changes:
        schedule = changes.pop("work_schedule")
        profile.work_schedule = _validate_schedule(schedule) if schedule else None
    for key, value in changes.items():
        setattr(profile, key, value)
    profile.updated_at = to_iso(utc_now())
    db.commit()
    logger.info("Profile %s updated: %s", profile.id, ", ".join(sorted(data.model_fields_set)))
    return profile


def set_availability(db: Session, user_id: str, is_available: bool) -> ProfessionalProfile:
    profile = get_profile(db, user_id)
    profile.is_available = is_available
    profile.updated_at = to_iso(utc_now())
    db.commit()
    return profile


def add_offered_service(db: Session, user_id: str, data: OfferedServiceCreate) -> ProfessionalService:
    profile = get_profile(db, user_id)
    service = db.query(Service).filter(Service.id == data.service_id).first()
    if not service or not service.is_active:
        raise NotFound("Service", data.service_id)

    existing = (
        db.query(ProfessionalService)
        .filter(ProfessionalService.professional_id == profile.id)
        .filter(ProfessionalService.service_id == data.service_id)
        .first()
    )
    if existing and existing.is_active:
        raise Conflict("You already offer this service", field="service_id")

    if existing:
        # Re-offering a removed service revives the row (unique per profile and service).
        existing.custom_price = data.custom_price
        existing.price_unit = data.price_unit
        existing.description = data.description
        existing.is_active = True
        offered = existing
    else:
        offered = ProfessionalService(
            id=str(uuid.uuid4()),
            professional_id=profile.id,
            service_id=data.service_id,
            custom_price=data.custom_price,
            price_unit=data.price_unit,
            description=data.description,
            is_active=True,
            created_at=to_iso(utc_now()),
        )
        db.add(offered)
    db.commit()
    return offered


def remove_offered_service(db: Session, user_id: str, offered_id: str) -> None:
    profile = get_profile(db, user_id)
    offered = (
        db.query(ProfessionalService)
        .filter(ProfessionalService.id == offered_id)
        .filter(ProfessionalService.professional_id == profile.id)
        .first()
    )
    if not offered or not offered.is_active:
        raise NotFound("Offered service", offered_id)
    offered.is_active = False
    db.commit()


def list_offered_services(db: Session, user_id: str) -> list[tuple[ProfessionalService, Service]]:
    profile = get_profile(db, user_id)
    return (
        db.query(ProfessionalService, Service)
        .join(Service, Service.id == ProfessionalService.service_id)
        .filter(ProfessionalService.professional_id == profile.id)
        .filter(ProfessionalService.is_active.is_(True))
        .order_by(Service.name.asc())
        .all()
    )


def add_portfolio_item(db: Session, user_id: str, data: PortfolioCreate) -> PortfolioItem:
    profile = get_profile(db, user_id)
    if data.service_id and not db.query(Service).filter(Service.id == data.service_id).first():
        raise NotFound("Service", data.service_id)
    if data.is_featured:
        featured = (
            db.query(PortfolioItem)
            .filter(PortfolioItem.professional_id == profile.id)
            .filter(PortfolioItem.is_featured.is_(True))
            .count()
        )
        if featured >= MAX_FEATURED_PORTFOLIO:
            raise ValidationError(
                f"At most {MAX_FEATURED_PORTFOLIO} portfolio items can be featured", field="is_featured"
            )

    item = PortfolioItem(
        id=str(uuid.uuid4()),
        professional_id=profile.id,
        title=data.title,
        description=data.description,
        service_id=data.service_id,
        completed_date=data.completed_date,
        is_featured=data.is_featured,
        created_at=to_iso(utc_now()),
    )
    db.add(item)
    db.commit()
    return item
