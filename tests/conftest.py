"""Shared fixtures for all tests."""

import json

import pytest


def sse_line(content: str) -> bytes:
    """One provider event line carrying a text delta."""
    payload = json.dumps({"choices": [{"delta": {"content": content}}]}, ensure_ascii=False)
    return f"data: {payload}\n".encode("utf-8")


DONE_LINE = b"data: [DONE]\n"


@pytest.fixture
def make_sse_line():
    return sse_line


@pytest.fixture
def sample_diff() -> str:
    return (
        "diff --git a/app.js b/app.js\n"
        "index 83db48f..bf269f4 100644\n"
        "--- a/app.js\n"
        "+++ b/app.js\n"
        "@@ -1,3 +1,3 @@\n"
        " const a = 1;\n"
        "-console.log(a);\n"
        "+console.log('x');\n"
        " export default a;"
    )


@pytest.fixture
def look_stream() -> bytes:
    """Upstream body whose deltas concatenate to "Look"."""
    return sse_line("Lo") + sse_line("ok") + DONE_LINE


@pytest.fixture
def unicode_stream() -> bytes:
    """Multi-byte content so chunk splits can land inside a UTF-8 sequence."""
    return (
        b": OPENROUTER PROCESSING\n\n"
        + sse_line("Naïve ")
        + sse_line("café ☕ ")
        + sse_line("日本語 🚀")
        + DONE_LINE
    )
