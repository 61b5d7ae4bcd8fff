import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import crud, errors, models, schemas
from ..config import Settings
from ..deps import get_app_settings, get_current_user, get_db
from ..security import create_access_token, verify_password

router = APIRouter(prefix="/users", tags=["users"])

logger = logging.getLogger("foodblog.users")


def _auth_response(user: models.User, settings: Settings) -> schemas.AuthOut:
    token = create_access_token(
        user.id,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.jwt_expire_minutes,
    )
    return schemas.AuthOut(token=token, user=schemas.UserOut.model_validate(user))


@router.post("/register", response_model=schemas.AuthOut, status_code=status.HTTP_201_CREATED)
def register(
    payload: schemas.UserRegister,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    if crud.get_user_by_email(db, payload.email):
        raise errors.ConflictError("Email already registered")
    try:
        user = crud.create_user(db, payload)
    except IntegrityError:
        # lost a race with a concurrent registration for the same email
        db.rollback()
        raise errors.ConflictError("Email already registered")
    logger.info("User registered: %s", user.email)
    return _auth_response(user, settings)


@router.post("/login", response_model=schemas.AuthOut)
def login(
    payload: schemas.UserLogin,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = crud.get_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login for %s", payload.email)
        raise errors.AuthError("Invalid credentials")
    logger.info("User logged in: %s", user.email)
    return _auth_response(user, settings)


@router.get("/me", response_model=schemas.UserOut)
def me(current_user: models.User = Depends(get_current_user)):
    return schemas.UserOut.model_validate(current_user)


@router.get("/{user_id}", response_model=schemas.UserPublic)
def get_user(user_id: str, db: Session = Depends(get_db)):
    user = crud.get_user(db, user_id)
    if not user:
        raise errors.NotFoundError("User not found")
    return schemas.UserPublic.model_validate(user)
