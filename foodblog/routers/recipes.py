import logging
import math
from typing import List, Optional

import pydantic
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from .. import crud, errors, models, schemas
from ..config import Settings
from ..deps import get_app_settings, get_current_user, get_db, get_image_store
from ..storage import ImageStore

router = APIRouter(prefix="/recipes", tags=["recipes"])

logger = logging.getLogger("foodblog.recipes")

FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


# ---------------------- BODY PARSING ----------------------

def _form_fields(form):
    """Split a submitted form into plain fields and the optional image upload.

    Repeated keys and ``name[]`` keys are collected into lists.
    """
    data = {}
    upload = None
    for key, value in form.multi_items():
        if key == "file":
            if isinstance(value, UploadFile) and value.filename:
                upload = value
            continue
        if key.endswith("[]"):
            data.setdefault(key[:-2], []).append(value)
        elif key in data:
            existing = data[key]
            data[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            data[key] = value
    return data, upload


async def recipe_submission(request: Request):
    """Yield ``(fields, upload)`` from a JSON or form request body."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_TYPES):
        async with request.form() as form:
            yield _form_fields(form)
        return
    try:
        data = await request.json()
    except ValueError:
        raise errors.ValidationError("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise errors.ValidationError("Request body must be a JSON object")
    yield data, None


def parse_payload(schema, data: dict):
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as exc:
        raise errors.ValidationError("Invalid recipe", errors.format_errors(exc.errors()))


# ---------------------- HELPERS ----------------------

def _link_header(request: Request, page: int, limit: int, total: int) -> str:
    last = max(1, math.ceil(total / limit))

    def url(p):
        return str(request.url.include_query_params(page=p, limit=limit))

    links = [f'<{url(1)}>; rel="first"']
    if page > 1:
        links.append(f'<{url(min(page - 1, last))}>; rel="prev"')
    if page < last:
        links.append(f'<{url(page + 1)}>; rel="next"')
    links.append(f'<{url(last)}>; rel="last"')
    return ", ".join(links)


def _get_owned_recipe(db: Session, recipe_id: str, user: models.User) -> models.Recipe:
    recipe = crud.get_recipe(db, recipe_id)
    if not recipe:
        raise errors.NotFoundError("Recipe not found")
    if recipe.author != user.id:
        raise errors.ForbiddenError("Only the author can modify this recipe")
    return recipe


# ---------------------- ROUTES ----------------------

@router.get("", response_model=List[schemas.RecipeOut])
def list_recipes(
    request: Request,
    response: Response,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    author: Optional[str] = None,
    q: Optional[str] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    if page is not None and limit is None:
        limit = settings.default_page_size
    if limit is None:
        recipes = crud.get_recipes(db, author=author, q=q)
    else:
        page = page or 1
        recipes = crud.get_recipes(db, skip=(page - 1) * limit, limit=limit, author=author, q=q)
        total = crud.count_recipes(db, author=author, q=q)
        response.headers["X-Total-Count"] = str(total)
        response.headers["Link"] = _link_header(request, page, limit, total)
    return [schemas.RecipeOut.model_validate(r) for r in recipes]


@router.get("/{recipe_id}", response_model=schemas.RecipeOut)
def get_recipe(recipe_id: str, db: Session = Depends(get_db)):
    recipe = crud.get_recipe(db, recipe_id)
    if not recipe:
        raise errors.NotFoundError("Recipe not found")
    return schemas.RecipeOut.model_validate(recipe)


@router.post("", response_model=schemas.RecipeOut, status_code=status.HTTP_201_CREATED)
def create_recipe(
    current_user: models.User = Depends(get_current_user),
    submission=Depends(recipe_submission),
    db: Session = Depends(get_db),
    images: ImageStore = Depends(get_image_store),
):
    data, upload = submission
    payload = parse_payload(schemas.RecipeCreate, data)
    image = images.accept(upload) if upload else None
    try:
        recipe = crud.create_recipe(db, payload, author=current_user.id, image=image)
    except SQLAlchemyError:
        db.rollback()
        images.discard(image)
        raise
    logger.info("Recipe %s created by %s", recipe.id, current_user.id)
    return schemas.RecipeOut.model_validate(recipe)


@router.api_route("/{recipe_id}", methods=["PUT", "PATCH"], response_model=schemas.RecipeOut)
def update_recipe(
    recipe_id: str,
    current_user: models.User = Depends(get_current_user),
    submission=Depends(recipe_submission),
    db: Session = Depends(get_db),
    images: ImageStore = Depends(get_image_store),
):
    data, upload = submission
    recipe = _get_owned_recipe(db, recipe_id, current_user)
    payload = parse_payload(schemas.RecipeUpdate, data)
    if not payload.model_fields_set and upload is None:
        raise errors.ValidationError("No fields to update")
    old_image = recipe.image
    image = images.accept(upload) if upload else None
    try:
        recipe = crud.update_recipe(db, recipe, payload, image=image)
    except SQLAlchemyError:
        db.rollback()
        images.discard(image)
        raise
    if old_image and old_image != recipe.image:
        images.discard(old_image)
    logger.info("Recipe %s updated by %s", recipe.id, current_user.id)
    return schemas.RecipeOut.model_validate(recipe)


@router.delete("/{recipe_id}")
def delete_recipe(
    recipe_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    images: ImageStore = Depends(get_image_store),
):
    recipe = _get_owned_recipe(db, recipe_id, current_user)
    image = recipe.image
    crud.delete_recipe(db, recipe)
    images.discard(image)
    logger.info("Recipe %s deleted by %s", recipe_id, current_user.id)
    return {"deleted": True, "id": recipe_id}
