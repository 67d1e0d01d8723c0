"""Prompt assembly for the code review chat."""

from backend.api.schemas import HistoryEntry

HISTORY_LIMIT = 10
UNKNOWN_FILE = "Unknown file"

SYSTEM_PROMPT = """You are an expert code reviewer for a senior software engineering team. Your feedback is always constructive, clear, and concise.

Analyze the following code diff and answer the user's question. Provide code examples for your suggestions if applicable.

Focus on:
- Code quality and best practices
- Potential bugs or issues
- Performance implications
- Security considerations
- Maintainability and readability
- Testing recommendations

Be specific and actionable in your feedback."""

USER_PROMPT_TEMPLATE = """CODE DIFF:
```diff
{diff}
```

FILE: {file_name}

USER QUESTION:
{question}

Please provide a detailed analysis and answer to the user's question."""


def build_user_prompt(diff: str, question: str, file_name: str | None = None) -> str:
    """Embed the diff, file label and question into a single user turn.

    Args:
        diff: Unified diff text for the file under review.
        question: The reviewer's free-text question.
        file_name: Optional label; falls back to "Unknown file".

    Returns:
        Formatted user prompt string.
    """
    return USER_PROMPT_TEMPLATE.format(
        diff=diff,
        file_name=file_name or UNKNOWN_FILE,
        question=question,
    )


def build_review_messages(
    diff: str,
    question: str,
    file_name: str | None = None,
    history: list[HistoryEntry] | None = None,
) -> list[dict[str, str]]:
    """Build the upstream message array: system, recent history, user turn.

    Only the last HISTORY_LIMIT history entries are kept, in their original
    order. Older entries are dropped without summarization.
    """
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]

    for entry in (history or [])[-HISTORY_LIMIT:]:
        messages.append({"role": entry.role, "content": entry.content})

    messages.append({"role": "user", "content": build_user_prompt(diff, question, file_name)})
    return messages
