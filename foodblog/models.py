import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Text

from .db import Base


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    id = Column(String(32), primary_key=True, default=_new_id)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class Recipe(Base):
    __tablename__ = "recipes"
    id = Column(String(32), primary_key=True, default=_new_id)
    title = Column(String(200), index=True, nullable=False)
    ingredients = Column(Text, nullable=False)  # JSON-encoded list
    instructions = Column(Text, nullable=False)
    time = Column(String(100), nullable=True)
    image = Column(String(255), nullable=True)
    author = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )
