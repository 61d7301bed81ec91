"""
application.services.output_parser - Free-form model text → Recipe / MealPlan.

The model is told to answer with JSON only, but routinely wraps it in
prose or code fences. We take the greedy outermost {...} span, json-load
it, then validate it against a pydantic schema before building domain
objects. Every failure comes back as a ParseFailure value; nothing here
raises to the caller.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from domain.models import (
    DIFFICULTIES,
    MEAL_TYPES,
    Day,
    Macros,
    Meal,
    MealPlan,
    ParseFailure,
    Recipe,
)

_JSON_SPAN = re.compile(r"\{.*\}", re.DOTALL)


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class _MacrosSchema(BaseModel):
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fats: float = 0


class _RecipeSchema(BaseModel):
    title: str = Field(..., min_length=1)
    summary: str = ""
    ingredients: list[str]
    steps: list[str]
    macros: _MacrosSchema = Field(default_factory=_MacrosSchema)
    time: float = 0
    difficulty: str = "medium"
    servings: int = 1
    explanation: str = ""

    @field_validator("difficulty", mode="before")
    @classmethod
    def _normalize_difficulty(cls, value: Any) -> str:
        if value is None:
            return "medium"
        text = str(value).strip().lower()
        if text not in DIFFICULTIES:
            raise ValueError(f"difficulty must be one of {', '.join(DIFFICULTIES)}")
        return text


class _MealSchema(BaseModel):
    title: str = Field(..., min_length=1)
    type: str
    description: str = ""
    ingredients: list[str] = Field(default_factory=list)
    steps: list[str] = Field(default_factory=list)
    time: Optional[float] = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        if text not in MEAL_TYPES:
            raise ValueError(f"meal type must be one of {', '.join(MEAL_TYPES)}")
        return text


class _DaySchema(BaseModel):
    day: int
    meals: list[_MealSchema]


class _MealPlanSchema(BaseModel):
    title: str = ""
    description: str = ""
    days: list[_DaySchema] = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def extract_json_object(raw_text: str) -> Union[dict[str, Any], ParseFailure]:
    """Locate and load the outermost JSON object in *raw_text*."""
    match = _JSON_SPAN.search(raw_text or "")
    if not match:
        return ParseFailure(reason="No JSON found in response", raw_text=raw_text or "")
    try:
        data = json.loads(match.group())
    except json.JSONDecodeError as exc:
        return ParseFailure(reason=f"Invalid JSON: {exc}", raw_text=raw_text)
    return data


def _validation_reason(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(p) for p in first.get("loc", ()))
    return f"Schema validation failed at '{location}': {first.get('msg', 'invalid')}"


# ---------------------------------------------------------------------------
# Recipe
# ---------------------------------------------------------------------------

def parse_recipe_json(raw_text: str) -> Union[Recipe, ParseFailure]:
    data = extract_json_object(raw_text)
    if isinstance(data, ParseFailure):
        return data
    try:
        payload = _RecipeSchema.model_validate(data)
    except ValidationError as exc:
        return ParseFailure(reason=_validation_reason(exc), raw_text=raw_text)

    return Recipe(
        title=payload.title,
        summary=payload.summary,
        ingredients=list(payload.ingredients),
        steps=list(payload.steps),
        macros=Macros(**payload.macros.model_dump()),
        time=payload.time,
        difficulty=payload.difficulty,
        servings=payload.servings,
        explanation=payload.explanation,
    )


# ---------------------------------------------------------------------------
# Meal plan
# ---------------------------------------------------------------------------

def parse_meal_plan_json(
    raw_text: str, expected_days: Optional[int] = None,
) -> Union[MealPlan, ParseFailure]:
    """Parse a meal plan and check its shape.

    Each day must hold exactly one breakfast, lunch and dinner; when
    expected_days is given the plan must have that many days.
    """
    data = extract_json_object(raw_text)
    if isinstance(data, ParseFailure):
        return data
    try:
        payload = _MealPlanSchema.model_validate(data)
    except ValidationError as exc:
        return ParseFailure(reason=_validation_reason(exc), raw_text=raw_text)

    if expected_days is not None and len(payload.days) != expected_days:
        return ParseFailure(
            reason=f"Expected {expected_days} days, got {len(payload.days)}",
            raw_text=raw_text,
        )

    for day in payload.days:
        types = sorted(m.type for m in day.meals)
        if types != sorted(MEAL_TYPES):
            return ParseFailure(
                reason=f"Day {day.day} must have one breakfast, lunch and dinner (got {types})",
                raw_text=raw_text,
            )

    return MealPlan(
        title=payload.title,
        description=payload.description,
        days=[
            Day(
                day=d.day,
                meals=[
                    Meal(
                        title=m.title,
                        type=m.type,
                        description=m.description,
                        ingredients=list(m.ingredients),
                        steps=list(m.steps),
                        time=m.time,
                    )
                    for m in d.meals
                ],
            )
            for d in payload.days
        ],
    )
