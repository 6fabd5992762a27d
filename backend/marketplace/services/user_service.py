import logging
import time

from sqlalchemy.orm import Session

from marketplace.errors import Conflict, NotFound, ValidationError
from marketplace.models.catalog import Service, ServiceCategory
from marketplace.models.professional import PortfolioItem, ProfessionalService
from marketplace.models.review import Review
from marketplace.models.user import User
from marketplace.schemas.user import (
    PublicPortfolioItem,
    PublicProfessional,
    PublicReview,
    PublicService,
    PublicUserResponse,
    UserUpdate,
)
from marketplace.services.auth_service import token_store
from marketplace.utils.timeutil import to_iso, utc_now

logger = logging.getLogger("marketplace.users")

PUBLIC_PORTFOLIO_LIMIT = 10
PUBLIC_REVIEW_LIMIT = 5


def _active_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).filter(User.is_active.is_(True)).first()
    if not user:
        raise NotFound("User", user_id)
    return user


def update_user(db: Session, user_id: str, data: UserUpdate) -> User:
    user = _active_user(db, user_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationError("No fields to update")

    phone = changes.get("phone")
    if phone and phone != user.phone:
        taken = db.query(User).filter(User.phone == phone).filter(User.id != user.id).first()
        if taken:
            raise Conflict("Phone is already registered", field="phone")

    latitude = changes.get("latitude", user.latitude)
    longitude = changes.get("longitude", user.longitude)
    if (latitude is None) != (longitude is None):
        raise ValidationError("latitude and longitude must be set together", field="latitude")

    for key, value in changes.items():
        setattr(user, key, value)
    user.updated_at = to_iso(utc_now())
    db.commit()
    logger.info("User %s updated: %s", user.id, ", ".join(sorted(changes)))
    return user


def deactivate_user(db: Session, user_id: str) -> None:
    """Soft-delete: the row stays for job history, the email and phone are freed for reuse."""
    user = _active_user(db, user_id)
    user.is_active = False
    user.email = f"deleted_{int(time.time())}_{user.id}@deleted.invalid"
    user.phone = None
    if user.profile is not None:
        user.profile.is_available = False
    user.updated_at = to_iso(utc_now())
    db.commit()
    token_store.revoke_user(user.id)
    logger.info("User %s deactivated", user.id)


def _reviewer_name(first_name: str, last_name: str) -> str:
    return f"{first_name} {last_name[:1]}." if last_name else first_name


def _public_professional(db: Session, user: User) -> PublicProfessional:
    profile = user.profile
    services = (
        db.query(ProfessionalService, Service, ServiceCategory)
        .join(Service, Service.id == ProfessionalService.service_id)
        .join(ServiceCategory, ServiceCategory.id == Service.category_id)
        .filter(ProfessionalService.professional_id == profile.id)
        .filter(ProfessionalService.is_active.is_(True))
        .order_by(Service.name.asc())
        .all()
    )
    portfolio = (
        db.query(PortfolioItem)
        .filter(PortfolioItem.professional_id == profile.id)
        .order_by(PortfolioItem.is_featured.desc(), PortfolioItem.created_at.desc())
        .limit(PUBLIC_PORTFOLIO_LIMIT)
        .all()
    )
    reviews = (
        db.query(Review, User.first_name, User.last_name)
        .join(User, User.id == Review.reviewer_id)
        .filter(Review.reviewee_id == user.id)
        .order_by(Review.created_at.desc())
        .limit(PUBLIC_REVIEW_LIMIT)
        .all()
    )
    return PublicProfessional(
        bio=profile.bio,
        experience_years=profile.experience_years or 0,
        work_radius_km=profile.work_radius_km,
        accepts_emergencies=bool(profile.accepts_emergencies),
        has_vehicle=bool(profile.has_vehicle),
        has_tools=bool(profile.has_tools),
        is_verified=profile.verification_status == "verified",
        services=[
            PublicService(
                service_name=service.name,
                category_name=category.name,
                custom_price=offered.custom_price,
                price_unit=offered.price_unit,
                description=offered.description,
            )
            for offered, service, category in services
        ],
        portfolio=[
            PublicPortfolioItem(
                id=item.id,
                title=item.title,
                description=item.description,
                completed_date=item.completed_date,
                is_featured=bool(item.is_featured),
            )
            for item in portfolio
        ],
        reviews=[
            PublicReview(
                id=review.id,
                rating=review.rating,
                comment=review.comment,
                reviewer_name=_reviewer_name(first_name, last_name),
                created_at=review.created_at,
            )
            for review, first_name, last_name in reviews
        ],
    )


def public_profile(db: Session, user_id: str) -> PublicUserResponse:
    """What other users may see: no email, phone or exact location."""
    user = _active_user(db, user_id)
    professional = None
    if user.user_type == "professional" and user.profile is not None:
        professional = _public_professional(db, user)
    return PublicUserResponse(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        user_type=user.user_type,
        city=user.city,
        rating_avg=user.rating_avg or 0,
        rating_count=user.rating_count or 0,
        member_since=user.created_at,
        professional_profile=professional,
    )
