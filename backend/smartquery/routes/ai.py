"""
SmartQuery Backend: AI Assistant Route Handler
==============================================

What:  POST /api/ai/{action} with action in explain | fix | generate.
How:   Thin pass-through to the configured LLMService. No database session
       is opened; the assistant has no persisted side effects.

Error responses (handled by global exception handlers):
    HTTP 400: Unknown action or missing input (ValidationError)
    HTTP 429: AI rate limit exceeded (middleware)
    HTTP 503: Gemini unavailable (LLMServiceError / CircuitBreakerOpenError)
"""

import logging

from fastapi import APIRouter, Depends

from smartquery.dependencies import get_current_user
from smartquery.schemas.ai import AssistRequest, AssistResponse
from smartquery.schemas.common import ErrorResponse
from smartquery.security import TokenClaims
from smartquery.services.gemini_service import gemini_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI Assistant"])


@router.post(
    "/{action}",
    response_model=AssistResponse,
    responses={
        400: {"description": "Unknown action or missing input", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
        503: {"description": "AI service unavailable", "model": ErrorResponse},
    },
    summary="Explain, fix or generate SQL with the AI assistant",
)
async def assist(
    action: str,
    body: AssistRequest,
    user: TokenClaims = Depends(get_current_user),
) -> AssistResponse:
    logger.info("AI %s requested by %s", action, user.user_id)
    result = await gemini_service.assist(action, text=body.text, query=body.query)
    return AssistResponse(result=result)
