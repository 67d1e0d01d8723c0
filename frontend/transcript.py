"""Incremental transcript assembly for the review chat.

Sends one question at a time to the review gateway and folds the streamed
reply into the conversation log as it arrives:

    IDLE -> SENDING -> STREAMING_NO_CONTENT -> STREAMING_WITH_CONTENT -> DONE

SENDING and both STREAMING states move to FAILED on error. FAILED and DONE
are terminal for a request; the next send() starts over.
There is no cancel and no retry: after a failure the user resends.
"""

import os
from collections.abc import Callable
from enum import Enum

import requests
import structlog

from frontend.auth import AuthContext
from frontend.conversation import ChatMessage, ConversationHistory
from frontend.stream_parser import iter_stream_events

logger = structlog.get_logger(__name__)

API_URL = os.environ.get("API_URL", "http://localhost:8000")
REVIEW_ENDPOINT = f"{API_URL}/api/review"

HISTORY_LIMIT = 10
UNKNOWN_FILE = "Unknown file"
FAILURE_BANNER = "Failed to get AI response. Please try again."


class RequestState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING_NO_CONTENT = "streaming_no_content"
    STREAMING_WITH_CONTENT = "streaming_with_content"
    DONE = "done"
    FAILED = "failed"


_BUSY_STATES = {
    RequestState.SENDING,
    RequestState.STREAMING_NO_CONTENT,
    RequestState.STREAMING_WITH_CONTENT,
}


class ReviewRequestError(Exception):
    """The gateway answered with a non-success status."""
    pass


class TranscriptAssembler:
    """Owns the chat log for one file's review and drives its requests."""

    def __init__(
        self,
        code_diff: str,
        auth: AuthContext,
        file_name: str | None = None,
        endpoint: str = REVIEW_ENDPOINT,
        session: requests.Session | None = None,
    ):
        self.code_diff = code_diff
        self.file_name = file_name
        self.auth = auth
        self.endpoint = endpoint
        self.history = ConversationHistory()
        self.state = RequestState.IDLE
        self.error: str | None = None
        self._session = session or requests.Session()

    @property
    def is_busy(self) -> bool:
        """True while a request is outstanding; the UI disables input on it."""
        return self.state in _BUSY_STATES

    @property
    def messages(self) -> list[ChatMessage]:
        return self.history.messages

    def build_request_body(self, question: str, prior: list[ChatMessage]) -> dict:
        return {
            "codeDiff": self.code_diff,
            "userQuestion": question,
            "fileName": self.file_name or UNKNOWN_FILE,
            "conversationHistory": [m.to_wire() for m in prior],
        }

    def send(
        self,
        question: str,
        on_update: Callable[[ChatMessage], None] | None = None,
    ) -> ChatMessage | None:
        """Ask one question and stream the answer into the log.

        Args:
            question: The user's text; blank input is ignored.
            on_update: Called with the assistant message after every delta.

        Returns:
            The completed assistant message, or None if nothing was produced
            (ignored input, empty stream, or failure - see `error`).
        """
        question = question.strip()
        if not question or self.is_busy:
            return None

        # History snapshot excludes the question being sent
        prior = self.history.recent(HISTORY_LIMIT)
        self.history.append(ChatMessage(role="user", content=question))
        self.state = RequestState.SENDING
        self.error = None

        assistant: ChatMessage | None = None
        response = None
        try:
            response = self._session.post(
                self.endpoint,
                json=self.build_request_body(question, prior),
                headers=self.auth.bearer_headers(),
                stream=True,
            )
            if not response.ok:
                raise ReviewRequestError(f"Gateway returned {response.status_code}")

            self.state = RequestState.STREAMING_NO_CONTENT
            for event in iter_stream_events(response.iter_content(chunk_size=None)):
                if event.kind != "delta":
                    continue
                if assistant is None:
                    assistant = ChatMessage(role="assistant", streaming=True)
                    self.history.append(assistant)
                    self.state = RequestState.STREAMING_WITH_CONTENT
                assistant.append_text(event.text)
                if on_update is not None:
                    on_update(assistant)

            self.state = RequestState.DONE

        except (requests.RequestException, ReviewRequestError) as e:
            logger.error("transcript.request_failed", error=str(e), state=self.state.value,
                         had_content=assistant is not None)
            self._fail(assistant)
            return None

        finally:
            if response is not None:
                response.close()
            # Anything else escaping (e.g. from on_update) must not leave input disabled
            if self.is_busy:
                self._fail(assistant)

        if assistant is None:
            logger.info("transcript.empty_reply")
            return None

        assistant.finalize()
        logger.info("transcript.reply_complete", chars=len(assistant.content))
        return assistant

    def _fail(self, assistant: ChatMessage | None) -> None:
        # The user message stays (it was real); a partial reply does not
        if assistant is not None:
            self.history.remove(assistant.id)
        self.state = RequestState.FAILED
        self.error = FAILURE_BANNER

    def dismiss_error(self) -> None:
        self.error = None
