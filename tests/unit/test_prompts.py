"""Unit tests for review prompt assembly."""

from backend.api.schemas import HistoryEntry
from backend.core.prompts import SYSTEM_PROMPT, build_review_messages, build_user_prompt


def _history(n: int) -> list[HistoryEntry]:
    return [
        HistoryEntry(role="user" if i % 2 == 0 else "assistant", content=f"msg {i}")
        for i in range(n)
    ]


class TestUserPrompt:

    def test_diff_is_fenced(self):
        prompt = build_user_prompt("+console.log('x')", "any issues?", "app.js")
        assert "```diff\n+console.log('x')\n```" in prompt

    def test_file_name_and_question_embedded(self):
        prompt = build_user_prompt("+x", "any issues?", "app.js")
        assert "FILE: app.js" in prompt
        assert "USER QUESTION:\nany issues?" in prompt

    def test_missing_file_name_placeholder(self):
        assert "FILE: Unknown file" in build_user_prompt("+x", "q")
        assert "FILE: Unknown file" in build_user_prompt("+x", "q", "")


class TestReviewMessages:

    def test_no_history_gives_system_and_user(self):
        messages = build_review_messages("+x", "q")
        assert [m["role"] for m in messages] == ["system", "user"]
        assert messages[0]["content"] == SYSTEM_PROMPT

    def test_history_kept_verbatim_in_order(self):
        messages = build_review_messages("+x", "q", history=_history(3))
        assert messages[1:4] == [
            {"role": "user", "content": "msg 0"},
            {"role": "assistant", "content": "msg 1"},
            {"role": "user", "content": "msg 2"},
        ]
        assert messages[-1]["role"] == "user"

    def test_history_over_limit_keeps_last_ten(self):
        messages = build_review_messages("+x", "q", history=_history(15))
        forwarded = messages[1:-1]
        assert len(forwarded) == 10
        assert [m["content"] for m in forwarded] == [f"msg {i}" for i in range(5, 15)]

    def test_history_at_limit_kept_whole(self):
        messages = build_review_messages("+x", "q", history=_history(10))
        assert len(messages) == 12
