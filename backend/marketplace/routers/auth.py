from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.dependencies import require_token, require_user
from marketplace.models.user import User
from marketplace.schemas.user import LoginRequest, TokenResponse, UserRegister, UserResponse
from marketplace.services import auth_service
from marketplace.services.auth_service import token_store

router = APIRouter(prefix="/auth", tags=["auth"])


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        user_type=user.user_type,
        phone=user.phone,
        city=user.city,
        latitude=user.latitude,
        longitude=user.longitude,
        rating_avg=user.rating_avg or 0,
        rating_count=user.rating_count or 0,
        is_active=bool(user.is_active),
        created_at=user.created_at,
    )


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(req: UserRegister, db: Session = Depends(get_db)):
    return user_to_response(auth_service.register(db, req))


@router.post("/login", response_model=TokenResponse)
async def login(req: LoginRequest, db: Session = Depends(get_db)):
    return auth_service.authenticate(db, req.email, req.password)


@router.post("/logout")
async def logout(token: str = Depends(require_token)):
    token_store.revoke(token)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(require_user)):
    return user_to_response(user)
