"""Pydantic models for REST API request/response validation.

Field names follow the web client's camelCase JSON (chatHistory, maxTime,
mealPlan, isError) through aliases.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from domain.models import ConstraintSet, MacroRange, UiMessage


# --- Query ---

class ChatTurnBody(BaseModel):
    """A transcript entry. Accepts model roles (human/ai) and UI roles (user/bot)."""
    model_config = ConfigDict(populate_by_name=True)

    role: Literal["user", "bot", "human", "ai"]
    content: str = ""
    recipe: Optional[dict[str, Any]] = None
    is_error: bool = Field(False, alias="isError")

    def to_ui_message(self) -> UiMessage:
        title = (self.recipe or {}).get("title")
        return UiMessage(
            role=self.role,
            content=self.content,
            recipe_title=str(title) if title else None,
            is_error=self.is_error,
        )


class MacroRangeBody(BaseModel):
    min: float
    max: float


class ConstraintsBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    calories: Optional[MacroRangeBody] = None
    protein: Optional[MacroRangeBody] = None
    carbs: Optional[MacroRangeBody] = None
    fats: Optional[MacroRangeBody] = None
    max_time: Optional[float] = Field(None, alias="maxTime")
    dietary: list[str] = Field(default_factory=list)
    allergens: list[str] = Field(default_factory=list)
    dislikes: list[str] = Field(default_factory=list)

    def to_domain(self) -> ConstraintSet:
        def rng(body: Optional[MacroRangeBody]) -> Optional[MacroRange]:
            return MacroRange(min=body.min, max=body.max) if body else None

        return ConstraintSet(
            calories=rng(self.calories),
            protein=rng(self.protein),
            carbs=rng(self.carbs),
            fats=rng(self.fats),
            max_time=self.max_time,
            dietary=list(self.dietary),
            allergens=list(self.allergens),
            dislikes=list(self.dislikes),
        )


class QueryBody(BaseModel):
    # question stays optional here; the router answers a missing or blank
    # one with its own 400 body.
    model_config = ConfigDict(populate_by_name=True)

    question: Optional[str] = None
    chat_history: list[ChatTurnBody] = Field(default_factory=list, alias="chatHistory")
    constraints: Optional[ConstraintsBody] = None


class MacrosOut(BaseModel):
    calories: float
    protein: float
    carbs: float
    fats: float


class RecipeOut(BaseModel):
    title: str
    summary: str
    ingredients: list[str]
    steps: list[str]
    macros: MacrosOut
    time: float
    difficulty: str
    servings: int
    explanation: str


class QueryOut(BaseModel):
    success: bool = True
    recipe: RecipeOut


# --- Meal plan ---

class MealPlanBody(BaseModel):
    ingredients: Optional[list[str]] = None


class MealOut(BaseModel):
    title: str
    type: str
    description: str
    ingredients: list[str]
    steps: list[str]
    time: Optional[float] = None


class DayOut(BaseModel):
    day: int
    meals: list[MealOut]


class MealPlanOut(BaseModel):
    title: str
    description: str
    days: list[DayOut]


class MealPlanResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    meal_plan: MealPlanOut = Field(..., alias="mealPlan")


# --- Errors / health ---

class ErrorOut(BaseModel):
    success: bool = False
    error: str


class HealthOut(BaseModel):
    status: str
    message: str
    state: str
