"""Request dependencies for the API layer."""

import os
from dataclasses import dataclass

import structlog
from fastapi import Request

from backend.core.errors import UnauthorizedError
from backend.core.llm_relay import LLMRelay

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass
class Credential:
    """Which credential admitted the request. The token is passed through, not validated."""
    kind: str  # "session" or "bearer"
    token: str


def require_credential(request: Request) -> Credential:
    """Admit the request if a session cookie or a bearer token is present.

    Either one is sufficient; they are not cross-checked.

    Raises:
        UnauthorizedError: If neither credential is presented.
    """
    cookie_name = os.environ.get("SESSION_COOKIE_NAME", "diffdesk_session")
    session_token = request.cookies.get(cookie_name)
    if session_token:
        return Credential(kind="session", token=session_token)

    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith(BEARER_PREFIX):
        token = auth_header[len(BEARER_PREFIX):].strip()
        if token:
            return Credential(kind="bearer", token=token)

    logger.warning("auth.missing_credential", path=request.url.path)
    raise UnauthorizedError("Unauthorized")


def get_llm_relay(request: Request) -> LLMRelay:
    """Return the relay created at startup."""
    return request.app.state.llm_relay
