from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from marketplace.context import MarketplaceContext
from marketplace.database import get_db
from marketplace.models.user import User
from marketplace.services.auth_service import token_store


async def require_token(authorization: str = Header(...)) -> str:
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return authorization[7:]


async def require_user(token: str = Depends(require_token), db: Session = Depends(get_db)) -> User:
    user_id = token_store.resolve(token)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Account not found or disabled")
    return user


async def require_professional(user: User = Depends(require_user)) -> User:
    if user.user_type != "professional":
        raise HTTPException(status_code=403, detail="Professionals only")
    return user


def get_context(request: Request, db: Session = Depends(get_db)) -> MarketplaceContext:
    return MarketplaceContext(db=db, dispatcher=request.app.state.dispatcher)
