from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from . import crud, errors, models
from .config import Settings
from .security import decode_access_token
from .storage import ImageStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request):
    yield from request.app.state.db.session()


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.images


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> models.User:
    """
    Expect Authorization: Bearer <token>
    Returns the User the token was issued to or raises AuthError.
    """
    if not authorization:
        raise errors.AuthError("Missing authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise errors.AuthError("Invalid authorization header")
    payload = decode_access_token(parts[1], settings.jwt_secret, settings.jwt_algorithm)
    if not payload:
        raise errors.AuthError("Invalid or expired token")
    user = crud.get_user(db, payload["sub"])
    if not user:
        raise errors.AuthError("User not found")
    return user
