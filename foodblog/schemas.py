import json
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def split_ingredients(value):
    """Accept a list of strings or a single comma-joined string.

    Items are trimmed and blank entries dropped. Anything that is not a
    string is passed through so normal validation can reject it.
    """
    if value is None:
        return value
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return value
    cleaned = []
    for item in items:
        if isinstance(item, str):
            item = item.strip()
            if not item:
                continue
        cleaned.append(item)
    return cleaned


def _time_to_str(value):
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str) and not value.strip():
        return None
    return value


class _Input(BaseModel):
    model_config = ConfigDict(extra="forbid")


class _RecipeInput(_Input):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class _Output(BaseModel):
    model_config = ConfigDict(
        from_attributes=True, alias_generator=to_camel, populate_by_name=True
    )


# --- Users ---

class UserRegister(_Input):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)]
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("password")
    @classmethod
    def _password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class UserLogin(_Input):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserOut(_Output):
    id: str
    name: str
    email: str
    created_at: datetime


class UserPublic(_Output):
    """Profile fields anyone may see."""

    id: str
    name: str
    created_at: datetime


class AuthOut(BaseModel):
    token: str
    user: UserOut


# --- Recipes ---

class RecipeCreate(_RecipeInput):
    title: str = Field(
        ..., min_length=1, max_length=200,
        json_schema_extra={"example": "Simple Pancakes"},
    )
    ingredients: List[str] = Field(
        ..., min_length=1,
        json_schema_extra={"example": ["flour", "milk", "egg"]},
    )
    instructions: str = Field(
        ..., min_length=1,
        json_schema_extra={"example": "Mix everything and cook on a skillet."},
    )
    time: Optional[str] = Field(
        default=None, max_length=100, json_schema_extra={"example": "20 min"}
    )

    @field_validator("ingredients", mode="before")
    @classmethod
    def _split_ingredients(cls, value):
        return split_ingredients(value)

    @field_validator("time", mode="before")
    @classmethod
    def _coerce_time(cls, value):
        return _time_to_str(value)


class RecipeUpdate(_RecipeInput):
    """Partial update; only the fields a caller sends are applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    ingredients: Optional[List[str]] = Field(default=None, min_length=1)
    instructions: Optional[str] = Field(default=None, min_length=1)
    time: Optional[str] = Field(default=None, max_length=100)

    @field_validator("ingredients", mode="before")
    @classmethod
    def _split_ingredients(cls, value):
        return split_ingredients(value)

    @field_validator("time", mode="before")
    @classmethod
    def _coerce_time(cls, value):
        return _time_to_str(value)

    @field_validator("title", "ingredients", "instructions")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("field cannot be null")
        return value


class RecipeOut(_Output):
    id: str
    title: str
    ingredients: List[str]
    instructions: str
    time: Optional[str] = None
    image: Optional[str] = None
    author: str
    created_at: datetime
    updated_at: datetime

    @field_validator("ingredients", mode="before")
    @classmethod
    def _decode_ingredients(cls, value):
        # stored JSON-encoded on the model
        if isinstance(value, str):
            return json.loads(value or "[]")
        return value
