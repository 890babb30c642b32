from typing import Optional
from itsdangerous import URLSafeSerializer, BadSignature
from fastapi import Request, Depends, HTTPException
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models import User

# Session cookies are issued by the hotel's auth service with the shared SECRET_KEY.
serializer = URLSafeSerializer(settings.SECRET_KEY, salt="frontdesk-session")


def issue_session_token(user_id: int) -> str:
    return serializer.dumps({"uid": user_id})


def get_current_user_id(request: Request) -> Optional[int]:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    try:
        data = serializer.loads(token)
        return int(data.get("uid"))
    except (BadSignature, ValueError, TypeError, AttributeError):
        return None


def require_staff(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Dependency for every back-office endpoint: resolves the acting staff user.
    """
    user_id = get_current_user_id(request)
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Not authenticated")

    return user
