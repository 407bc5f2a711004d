"""SQLAlchemy ORM models read by PlatePick.

Tables:
- recipes: Recipe catalog with rating/popularity and timing
- ingredients / allergens: Ingredient catalog and allergen registry
- recipe_ingredients: Ingredient usages (quantity + unit) per recipe
- recipe_allergens / ingredient_allergens: Allergen tags (many-to-many)
- recipe_nutritions: Optional nutrition facts per recipe
- meal_plans / meal_plan_entries: Per-user meal history
- user_allergies: Allergen ids a user must avoid

The engine only reads these tables; plan CRUD lives elsewhere.
"""

from __future__ import annotations

from datetime import datetime, date
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Date,
    Text,
    Integer,
    Boolean,
    Numeric,
    ForeignKey,
    Index,
    Table,
    Column,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from .db import Base


recipe_allergens = Table(
    "recipe_allergens",
    Base.metadata,
    Column("recipe_id", ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True),
    Column("allergen_id", ForeignKey("allergens.id", ondelete="CASCADE"), primary_key=True),
)

ingredient_allergens = Table(
    "ingredient_allergens",
    Base.metadata,
    Column("ingredient_id", ForeignKey("ingredients.id", ondelete="CASCADE"), primary_key=True),
    Column("allergen_id", ForeignKey("allergens.id", ondelete="CASCADE"), primary_key=True),
)


class Allergen(Base):
    """Allergen registry. Matched by id only, never by display name."""
    __tablename__ = "allergens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    is_major: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Ingredient(Base):
    __tablename__ = "ingredients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    allergens: Mapped[list["Allergen"]] = relationship(
        "Allergen", secondary=ingredient_allergens, lazy="selectin"
    )


class Recipe(Base):
    """Recipe catalog row."""
    __tablename__ = "recipes"
    __table_args__ = (
        Index("ix_recipes_meal_type", "meal_type"),
        Index("ix_recipes_cuisine_type", "cuisine_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cuisine_type: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    meal_type: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    prep_time_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cook_time_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    servings: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Popularity
    rating_average: Mapped[Optional[float]] = mapped_column(Numeric(3, 2), nullable=True)
    likes_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_custom: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    ingredients: Mapped[list["RecipeIngredient"]] = relationship(
        "RecipeIngredient", back_populates="recipe", cascade="all, delete-orphan",
        lazy="selectin"
    )
    allergens: Mapped[list["Allergen"]] = relationship(
        "Allergen", secondary=recipe_allergens, lazy="selectin"
    )
    nutritions: Mapped[list["RecipeNutrition"]] = relationship(
        "RecipeNutrition", back_populates="recipe", cascade="all, delete-orphan",
        lazy="selectin"
    )


class RecipeIngredient(Base):
    """Ingredient usage within a recipe."""
    __tablename__ = "recipe_ingredients"
    __table_args__ = (
        Index("ix_recipe_ingredients_recipe_id", "recipe_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    ingredient_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("ingredients.id", ondelete="SET NULL"), nullable=True
    )
    quantity: Mapped[Optional[float]] = mapped_column(Numeric(10, 3), nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="ingredients")
    ingredient: Mapped[Optional["Ingredient"]] = relationship("Ingredient", lazy="selectin")


class RecipeNutrition(Base):
    __tablename__ = "recipe_nutritions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    calories: Mapped[Optional[float]] = mapped_column(Numeric(8, 2), nullable=True)
    protein_g: Mapped[Optional[float]] = mapped_column(Numeric(8, 2), nullable=True)
    carbs_g: Mapped[Optional[float]] = mapped_column(Numeric(8, 2), nullable=True)
    fat_g: Mapped[Optional[float]] = mapped_column(Numeric(8, 2), nullable=True)

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="nutritions")


class MealPlan(Base):
    __tablename__ = "meal_plans"
    __table_args__ = (
        Index("ix_meal_plans_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="Meal plan")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    entries: Mapped[list["MealPlanEntry"]] = relationship(
        "MealPlanEntry", back_populates="meal_plan", cascade="all, delete-orphan"
    )


class MealPlanEntry(Base):
    """One planned (and possibly completed) meal slot."""
    __tablename__ = "meal_plan_entries"
    __table_args__ = (
        Index("ix_meal_plan_entries_plan_date", "meal_plan_id", "meal_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    meal_plan_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("meal_plans.id", ondelete="CASCADE"), nullable=False
    )
    meal_date: Mapped[date] = mapped_column(Date, nullable=False)
    meal_type: Mapped[str] = mapped_column(String(40), nullable=False)
    recipe_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    meal_plan: Mapped["MealPlan"] = relationship("MealPlan", back_populates="entries")
    recipe: Mapped[Optional["Recipe"]] = relationship("Recipe")


class UserAllergy(Base):
    __tablename__ = "user_allergies"
    __table_args__ = (
        UniqueConstraint("user_id", "allergen_id", name="uq_user_allergen"),
        Index("ix_user_allergies_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    allergen_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("allergens.id", ondelete="CASCADE"), nullable=True
    )
    severity: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    allergen: Mapped[Optional["Allergen"]] = relationship("Allergen")
