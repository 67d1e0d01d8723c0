"""Pydantic models for the API layer.

Field aliases keep the camelCase wire names the browser client sends.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class HistoryEntry(BaseModel):
    """One prior chat turn forwarded upstream (extra keys like id/timestamp ignored)."""
    role: Literal["user", "assistant"]
    content: str


class ReviewRequest(BaseModel):
    """Incoming review chat turn.

    codeDiff and userQuestion are optional at the schema level so the
    endpoint can answer 400 (not 422) when either is missing.
    """
    model_config = ConfigDict(populate_by_name=True)

    code_diff: str | None = Field(default=None, alias="codeDiff")
    user_question: str | None = Field(default=None, alias="userQuestion")
    file_name: str | None = Field(default=None, alias="fileName")
    conversation_history: list[HistoryEntry] | None = Field(default=None, alias="conversationHistory")


class ErrorResponse(BaseModel):
    """Generic error body; never carries internal detail."""
    error: str


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded"]
    components: dict[str, str]
