"""Ingredient-based meal plan endpoint."""

import dataclasses
import logging

from fastapi import APIRouter, Depends

from factory import ServiceFactory
from application.context import RequestContext
from adapters.rest.dependencies import require_ready
from adapters.rest.routers.query import error_response
from adapters.rest.schemas import ErrorOut, MealPlanBody, MealPlanOut, MealPlanResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["meal-plan"])


@router.post(
    "/meal-plan",
    response_model=MealPlanResponse,
    responses={400: {"model": ErrorOut}, 500: {"model": ErrorOut}, 503: {"model": ErrorOut}},
)
async def generate_meal_plan(
    body: MealPlanBody,
    factory: ServiceFactory = Depends(require_ready),
):
    ingredients = [i for i in (body.ingredients or []) if i and i.strip()]
    if not ingredients:
        return error_response(400, "Ingredients array is required")

    ctx = RequestContext.with_timeout(factory.config.meal_plan_timeout_seconds)
    try:
        result = await factory.create_meal_plan_service().generate(ctx, ingredients)
    except Exception as exc:
        logger.exception("Error in /api/meal-plan (request=%s)", ctx.request_id)
        return error_response(500, str(exc) or "Internal server error")

    if not result.success:
        return error_response(500, result.error or "Failed to generate meal plan")
    return MealPlanResponse(
        meal_plan=MealPlanOut.model_validate(dataclasses.asdict(result.meal_plan)),
    )
