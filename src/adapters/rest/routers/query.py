"""Conversational recipe query endpoint."""

import dataclasses
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from factory import ServiceFactory
from application.context import RequestContext
from application.dto import QueryRequest
from application.services.history import normalize
from adapters.rest.dependencies import require_ready
from adapters.rest.schemas import ErrorOut, QueryBody, QueryOut, RecipeOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["query"])


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorOut(error=message).model_dump())


@router.post(
    "/query",
    response_model=QueryOut,
    responses={400: {"model": ErrorOut}, 500: {"model": ErrorOut}, 503: {"model": ErrorOut}},
)
async def query_recipes(
    body: QueryBody,
    factory: ServiceFactory = Depends(require_ready),
):
    if not body.question or not body.question.strip():
        return error_response(400, "Question is required")

    request = QueryRequest(
        question=body.question,
        chat_history=normalize(turn.to_ui_message() for turn in body.chat_history),
        constraints=body.constraints.to_domain() if body.constraints else None,
    )
    ctx = RequestContext.with_timeout(factory.config.query_timeout_seconds)

    try:
        result = await factory.create_query_service().query(ctx, request)
    except Exception as exc:
        logger.exception("Error in /api/query (request=%s)", ctx.request_id)
        return error_response(500, str(exc) or "Internal server error")

    if not result.success:
        return error_response(500, result.error or "Failed to generate recipe")
    return QueryOut(recipe=RecipeOut.model_validate(dataclasses.asdict(result.recipe)))
