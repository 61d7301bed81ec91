"""
application.dto - Data Transfer Objects for service input/output.

These are the structured results that services return to callers
(REST endpoints, CLI adapters). Results are all-or-nothing: either the
payload is set and success is True, or error is set and success is False.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from domain.models import ChatTurn, ConstraintSet, MealPlan, Recipe


@dataclass(frozen=True)
class QueryRequest:
    """Input for one conversational recipe query."""
    question: str
    chat_history: list[ChatTurn] = field(default_factory=list)
    constraints: Optional[ConstraintSet] = None


@dataclass(frozen=True)
class QueryResult:
    success: bool
    recipe: Optional[Recipe] = None
    error: Optional[str] = None
    standalone_question: str = ""

    @classmethod
    def ok(cls, recipe: Recipe, standalone_question: str = "") -> QueryResult:
        return cls(success=True, recipe=recipe, standalone_question=standalone_question)

    @classmethod
    def failed(cls, error: str) -> QueryResult:
        return cls(success=False, error=error)


@dataclass(frozen=True)
class MealPlanResult:
    success: bool
    meal_plan: Optional[MealPlan] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, meal_plan: MealPlan) -> MealPlanResult:
        return cls(success=True, meal_plan=meal_plan)

    @classmethod
    def failed(cls, error: str) -> MealPlanResult:
        return cls(success=False, error=error)


@dataclass(frozen=True)
class LoadReport:
    """Outcome of a corpus load or resume run."""
    dataset_tag: str
    skipped: bool
    start_offset: int = 0
    embedded: int = 0
    batches: int = 0
    total_rows: int = 0
