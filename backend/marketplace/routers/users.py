from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.dependencies import require_user
from marketplace.models.user import User
from marketplace.routers.auth import user_to_response
from marketplace.schemas.user import PublicUserResponse, UserResponse, UserUpdate
from marketplace.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(require_user)):
    return user_to_response(user)


@router.put("/me", response_model=UserResponse)
async def update_me(req: UserUpdate, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return user_to_response(user_service.update_user(db, user.id, req))


@router.delete("/me")
async def deactivate_me(user: User = Depends(require_user), db: Session = Depends(get_db)):
    user_service.deactivate_user(db, user.id)
    return {"message": "Account deactivated"}


@router.get("/{user_id}", response_model=PublicUserResponse, dependencies=[Depends(require_user)])
async def get_public_profile(user_id: str, db: Session = Depends(get_db)):
    return user_service.public_profile(db, user_id)
