import json
from typing import Optional

from sqlalchemy.orm import Session

from . import models, schemas
from .security import hash_password


# --- Users ---

def get_user(db: Session, user_id: str):
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(models.User.email == email.lower()).first()


def create_user(db: Session, user: schemas.UserRegister):
    db_user = models.User(
        name=user.name,
        email=user.email.lower(),
        password_hash=hash_password(user.password),
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


# --- Recipes ---

def get_recipe(db: Session, recipe_id: str):
    return db.query(models.Recipe).filter(models.Recipe.id == recipe_id).first()


def _filtered_recipes(db: Session, author: Optional[str] = None, q: Optional[str] = None):
    query = db.query(models.Recipe)
    if author:
        query = query.filter(models.Recipe.author == author)
    if q:
        pattern = q.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        query = query.filter(models.Recipe.title.ilike(f"%{pattern}%", escape="\\"))
    return query


def get_recipes(
    db: Session,
    skip: int = 0,
    limit: Optional[int] = None,
    author: Optional[str] = None,
    q: Optional[str] = None,
):
    query = _filtered_recipes(db, author, q).order_by(
        models.Recipe.created_at, models.Recipe.id
    )
    if skip:
        query = query.offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def count_recipes(db: Session, author: Optional[str] = None, q: Optional[str] = None) -> int:
    return _filtered_recipes(db, author, q).count()


def create_recipe(db: Session, recipe: schemas.RecipeCreate, author: str, image: Optional[str] = None):
    db_recipe = models.Recipe(
        title=recipe.title,
        ingredients=json.dumps(recipe.ingredients),
        instructions=recipe.instructions,
        time=recipe.time,
        image=image,
        author=author,
    )
    db.add(db_recipe)
    db.commit()
    db.refresh(db_recipe)
    return db_recipe


def update_recipe(db: Session, db_recipe: models.Recipe, recipe: schemas.RecipeUpdate, image: Optional[str] = None):
    changes = recipe.model_dump(exclude_unset=True)
    if "ingredients" in changes:
        changes["ingredients"] = json.dumps(changes["ingredients"])
    if image:
        changes["image"] = image
    for field, value in changes.items():
        setattr(db_recipe, field, value)
    db.add(db_recipe)
    db.commit()
    db.refresh(db_recipe)
    return db_recipe


def delete_recipe(db: Session, db_recipe: models.Recipe):
    db.delete(db_recipe)
    db.commit()
    return True
