import logging
import time
import uuid

from sqlalchemy import func
from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.errors import AuthenticationError, Conflict
from marketplace.models.professional import ProfessionalProfile
from marketplace.models.user import User
from marketplace.schemas.user import UserRegister
from marketplace.utils.security import generate_token, hash_password, verify_password
from marketplace.utils.timeutil import to_iso, utc_now

logger = logging.getLogger("marketplace.auth")


class TokenStore:
    """Opaque bearer tokens kept in memory until they expire or the process restarts."""

    def __init__(self):
        self._tokens: dict[str, tuple[str, float]] = {}  # token -> (user_id, expires_at)

    def _cleanup_expired(self):
        now = time.time()
        self._tokens = {t: entry for t, entry in self._tokens.items() if entry[1] > now}

    def issue(self, user_id: str, ttl_seconds: int | None = None) -> str:
        token = generate_token()
        self._tokens[token] = (user_id, time.time() + (ttl_seconds or settings.token_ttl_seconds))
        return token

    def resolve(self, token: str) -> str | None:
        self._cleanup_expired()
        entry = self._tokens.get(token)
        return entry[0] if entry else None

    def revoke(self, token: str) -> None:
        self._tokens.pop(token, None)

    def revoke_user(self, user_id: str) -> None:
        self._tokens = {t: entry for t, entry in self._tokens.items() if entry[0] != user_id}

    def clear(self) -> None:
        self._tokens.clear()


token_store = TokenStore()


def register(db: Session, data: UserRegister) -> User:
    email = data.email.strip().lower()
    if db.query(User).filter(func.lower(User.email) == email).first():
        raise Conflict("Email is already registered", field="email")
    if data.phone and db.query(User).filter(User.phone == data.phone).first():
        raise Conflict("Phone is already registered", field="phone")

    now = to_iso(utc_now())
    user = User(
        id=str(uuid.uuid4()),
        email=email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        user_type=data.user_type,
        address=data.address,
        latitude=data.latitude,
        longitude=data.longitude,
        city=data.city or settings.default_city,
        is_active=True,
        rating_avg=0,
        rating_count=0,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    if data.user_type == "professional":
        db.add(ProfessionalProfile(
            id=str(uuid.uuid4()),
            user_id=user.id,
            created_at=now,
            updated_at=now,
        ))
    db.commit()
    logger.info("Registered %s user %s", user.user_type, user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> dict:
    user = db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()
    if not user or not verify_password(user.password_hash, password):
        raise AuthenticationError("Invalid email or password")
    if not user.is_active:
        raise AuthenticationError("Account is disabled")
    token = token_store.issue(user.id)
    return {
        "token": token,
        "expires_in_seconds": settings.token_ttl_seconds,
        "user_id": user.id,
        "user_type": user.user_type,
    }
