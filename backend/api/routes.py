"""FastAPI endpoints for the DiffDesk API.

POST /api/review - stream an AI review of a diff back to the caller
GET /health - component health check
"""

import json

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from backend.api.deps import Credential, get_llm_relay, require_credential
from backend.api.schemas import ErrorResponse, HealthResponse, ReviewRequest
from backend.core.errors import BadRequestError
from backend.core.llm_relay import LLMRelay
from backend.core.prompts import build_review_messages

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/api/review",
    response_class=StreamingResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def review(
    req: Request,
    credential: Credential = Depends(require_credential),
    relay: LLMRelay = Depends(get_llm_relay),
):
    """Relay a streamed completion for one review chat turn: auth -> validate -> prompt -> upstream.

    The body is parsed here, after the credential check, so every failure
    answers with the generic {"error": ...} shape instead of a 422.
    """
    request = await _parse_review_request(req)
    if not request.code_diff or not request.user_question:
        logger.warning("review.missing_fields",
                       has_diff=bool(request.code_diff), has_question=bool(request.user_question))
        raise BadRequestError("Missing required fields: codeDiff and userQuestion")

    history = request.conversation_history or []
    logger.info("review.request", auth=credential.kind, file=request.file_name,
                diff_len=len(request.code_diff), history=len(history))

    messages = build_review_messages(
        request.code_diff,
        request.user_question,
        file_name=request.file_name,
        history=history,
    )

    # Raises before any byte is sent, so failures still get a JSON error body
    upstream = await relay.open_stream(messages)

    return StreamingResponse(
        relay.iter_body(upstream),
        media_type="text/plain; charset=utf-8",
        headers={"Cache-Control": "no-cache"},
    )


async def _parse_review_request(req: Request) -> ReviewRequest:
    """Decode and validate the review body; an empty body counts as missing fields."""
    raw = await req.body()
    try:
        payload = json.loads(raw) if raw.strip() else {}
        return ReviewRequest.model_validate(payload)
    except (ValueError, ValidationError) as e:
        logger.warning("review.invalid_body", error=str(e)[:200])
        raise BadRequestError("Invalid request body")


@router.get("/health", response_model=HealthResponse)
def health(relay: LLMRelay = Depends(get_llm_relay)):
    """Check health of backend components."""
    components = {"llm": "ok" if relay.is_healthy() else "error"}
    errors = [k for k, v in components.items() if v == "error"]
    status = "healthy" if not errors else "degraded"
    return {"status": status, "components": components}


@router.get("/")
@router.head("/")
def root_health():
    """Basic root health check for deployment platforms."""
    return {"status": "ok", "service": "diffdesk-api"}
