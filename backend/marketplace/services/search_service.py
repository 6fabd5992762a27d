import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pydantic
from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.errors import ValidationError
from marketplace.models.catalog import Service, ServiceCategory
from marketplace.models.professional import ProfessionalProfile, ProfessionalService
from marketplace.models.user import User
from marketplace.schemas.search import OfferedService, ProfessionalSummary, SearchCriteria, SearchPage
from marketplace.services.geo import distance_km, latitude_window
from marketplace.utils.timeutil import parse_iso, utc_now

logger = logging.getLogger("marketplace.search")

WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


@dataclass
class _Candidate:
    user: User
    profile: ProfessionalProfile
    distance: float
    premium: bool


def build_criteria(**raw) -> SearchCriteria:
    """Validate raw filter values; out-of-range input is rejected, never clamped."""
    try:
        return SearchCriteria(**raw)
    except pydantic.ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ValidationError(f"{field}: {first['msg']}", field=field) from exc


def is_premium(profile: ProfessionalProfile, now: datetime) -> bool:
    if profile.subscription_type != "premium":
        return False
    if profile.subscription_expires_at is None:
        return True
    return parse_iso(profile.subscription_expires_at) > now


def is_open(schedule: str | None, moment: datetime) -> bool:
    """True when the JSON work schedule covers ``moment`` (local time). No schedule means always open."""
    if not schedule:
        return True
    hours = json.loads(schedule).get(WEEKDAYS[moment.weekday()])
    if not hours:
        return False
    opens, closes = hours
    return opens <= moment.strftime("%H:%M") < closes


def ranking_key(candidate: _Candidate) -> tuple:
    # premium first, best rated first, nearest first; user id keeps ties stable
    return (
        0 if candidate.premium else 1,
        -(candidate.user.rating_avg or 0),
        candidate.distance,
        candidate.user.id,
    )


def _candidate_query(db: Session, criteria: SearchCriteria):
    lat_min, lat_max = latitude_window(criteria.latitude, criteria.radius_km)
    query = (
        db.query(User, ProfessionalProfile)
        .join(ProfessionalProfile, ProfessionalProfile.user_id == User.id)
        .filter(User.user_type == "professional")
        .filter(User.is_active.is_(True))
        .filter(ProfessionalProfile.is_available.is_(True))
        .filter(User.latitude.isnot(None), User.longitude.isnot(None))
        .filter(User.latitude.between(lat_min, lat_max))
    )

    if criteria.min_rating is not None:
        query = query.filter(User.rating_avg >= criteria.min_rating)
    if criteria.emergency_only:
        query = query.filter(ProfessionalProfile.accepts_emergencies.is_(True))
    if criteria.verified_only:
        query = query.filter(ProfessionalProfile.verification_status == "verified")

    # Service, category and price constraints must hold for the same offered service.
    if criteria.service_id or criteria.category_id or criteria.max_price is not None:
        offered = (
            select(ProfessionalService.id)
            .join(Service, Service.id == ProfessionalService.service_id)
            .where(ProfessionalService.professional_id == ProfessionalProfile.id)
            .where(ProfessionalService.is_active.is_(True))
        )
        if criteria.service_id:
            offered = offered.where(ProfessionalService.service_id == criteria.service_id)
        if criteria.category_id:
            offered = offered.where(Service.category_id == criteria.category_id)
        if criteria.max_price is not None:
            offered = offered.where(ProfessionalService.custom_price <= criteria.max_price)
        query = query.filter(offered.exists())

    return query


def _offered_services(db: Session, profile_ids: list[str]) -> dict[str, list[OfferedService]]:
    if not profile_ids:
        return {}
    rows = (
        db.query(ProfessionalService, Service, ServiceCategory)
        .join(Service, Service.id == ProfessionalService.service_id)
        .join(ServiceCategory, ServiceCategory.id == Service.category_id)
        .filter(ProfessionalService.professional_id.in_(profile_ids))
        .filter(ProfessionalService.is_active.is_(True))
        .order_by(Service.name.asc())
        .all()
    )
    grouped: dict[str, list[OfferedService]] = {}
    for offered, service, category in rows:
        grouped.setdefault(offered.professional_id, []).append(
            OfferedService(
                name=service.name,
                category=category.name,
                price=offered.custom_price,
                price_unit=offered.price_unit,
                description=offered.description,
            )
        )
    return grouped


def _to_summary(candidate: _Candidate, services: list[OfferedService]) -> ProfessionalSummary:
    user, profile = candidate.user, candidate.profile
    return ProfessionalSummary(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        profile_image=user.profile_image_url,
        city=user.city,
        rating=user.rating_avg or 0,
        rating_count=user.rating_count or 0,
        distance_km=round(candidate.distance, 1),
        bio=profile.bio,
        experience_years=profile.experience_years or 0,
        base_rate=profile.hourly_rate,
        work_radius_km=profile.work_radius_km,
        accepts_emergencies=bool(profile.accepts_emergencies),
        has_vehicle=bool(profile.has_vehicle),
        has_tools=bool(profile.has_tools),
        is_verified=profile.verification_status == "verified",
        is_premium=candidate.premium,
        services=services,
    )


def search_professionals(
    db: Session,
    criteria: SearchCriteria | dict,
    now: datetime | None = None,
) -> SearchPage:
    """
    Rank available professionals around a client location.

    Candidates are filtered in SQL on everything except distance and the
    work schedule, which are evaluated here. Ordering is premium tier first,
    then rating descending, then distance ascending.
    """
    if not isinstance(criteria, SearchCriteria):
        criteria = build_criteria(**criteria)
    now = now or utc_now()
    local_now = now.astimezone(timezone(timedelta(hours=settings.utc_offset_hours)))

    matches: list[_Candidate] = []
    for user, profile in _candidate_query(db, criteria).all():
        distance = distance_km(criteria.latitude, criteria.longitude, user.latitude, user.longitude)
        reach = min(criteria.radius_km, profile.work_radius_km or criteria.radius_km)
        if distance > reach:
            continue
        if criteria.available_now and not is_open(profile.work_schedule, local_now):
            continue
        matches.append(_Candidate(user, profile, distance, is_premium(profile, now)))

    matches.sort(key=ranking_key)
    total = len(matches)
    start = (criteria.page - 1) * criteria.limit
    page_items = matches[start:start + criteria.limit]

    services = _offered_services(db, [c.profile.id for c in page_items])
    total_pages = math.ceil(total / criteria.limit) if total else 0

    logger.debug(
        "search lat=%s lon=%s radius=%s -> %d matches",
        criteria.latitude, criteria.longitude, criteria.radius_km, total,
    )
    return SearchPage(
        results=[_to_summary(c, services.get(c.profile.id, [])) for c in page_items],
        total_count=total,
        page=criteria.page,
        limit=criteria.limit,
        total_pages=total_pages,
        has_next=criteria.page < total_pages,
        has_prev=criteria.page > 1,
    )
