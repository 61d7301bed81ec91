"""
application.services.meal_plan - Ingredient list → N-day meal plan.

No retrieval and no condensation: one LLM call with a literal example
shape, parsed with the same extractor as the recipe path.
"""

from __future__ import annotations

import logging

from domain.exceptions import UpstreamError
from domain.models import ParseFailure
from domain.ports import CompletionPort
from application.context import RequestContext
from application.dto import MealPlanResult
from application.prompts import build_meal_plan_messages
from application.services.output_parser import parse_meal_plan_json
from application.services.recipe_query import call_upstream

logger = logging.getLogger(__name__)

MEAL_PLAN_PARSE_ERROR = "Failed to parse meal plan data from LLM response"
DEFAULT_PLAN_DAYS = 7


class MealPlanService:

    def __init__(self, completion: CompletionPort, days: int = DEFAULT_PLAN_DAYS):
        self._completion = completion
        self._days = days

    async def generate(self, ctx: RequestContext, ingredients: list[str]) -> MealPlanResult:
        """Generate a plan using only *ingredients*.

        The caller validates that the list is non-empty.
        """
        names = [name.strip() for name in ingredients if name and name.strip()]
        logger.info(
            "Generating %d-day meal plan (request=%s) for ingredients: %s",
            self._days, ctx.request_id, ", ".join(names),
        )

        try:
            raw = await call_upstream(
                ctx,
                self._completion.generate(build_meal_plan_messages(names, self._days)),
                "meal plan generation",
            )
        except UpstreamError as exc:
            logger.exception("Meal plan generation failed (request=%s)", ctx.request_id)
            return MealPlanResult.failed(str(exc))

        parsed = parse_meal_plan_json(raw, expected_days=self._days)
        if isinstance(parsed, ParseFailure):
            logger.error(
                "Could not parse meal plan (request=%s): %s\nRaw LLM response: %s",
                ctx.request_id, parsed.reason, parsed.raw_text,
            )
            return MealPlanResult.failed(MEAL_PLAN_PARSE_ERROR)

        return MealPlanResult.ok(parsed)
