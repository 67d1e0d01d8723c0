"""Unit tests for the incremental transcript assembler (mocked HTTP session)."""

import pytest
import requests

from frontend.auth import AuthContext
from frontend.transcript import FAILURE_BANNER, RequestState, TranscriptAssembler


def _response(mocker, status_code=200, chunks=()):
    resp = mocker.MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 400
    resp.iter_content.return_value = iter(chunks)
    return resp


def _failing_iter(chunks, exc):
    yield from chunks
    raise exc


@pytest.fixture
def auth():
    return AuthContext(access_token="ghp_test")


@pytest.fixture
def session(mocker):
    return mocker.MagicMock()


@pytest.fixture
def assembler(auth, session):
    return TranscriptAssembler("+console.log('x')", auth, file_name="app.js",
                               endpoint="http://api/api/review", session=session)


class TestSuccessfulStream:

    def test_deltas_concatenate_into_one_message(self, assembler, session, mocker, look_stream):
        session.post.return_value = _response(mocker, chunks=[look_stream])

        reply = assembler.send("any issues?")

        assert reply.content == "Look"
        assert [m.role for m in assembler.messages] == ["user", "assistant"]
        assert assembler.messages[0].content == "any issues?"
        assert assembler.state == RequestState.DONE
        assert assembler.error is None

    def test_reply_is_frozen_after_stream(self, assembler, session, mocker, look_stream):
        session.post.return_value = _response(mocker, chunks=[look_stream])
        reply = assembler.send("q")
        assert reply.streaming is False

    def test_arbitrary_chunking_same_result(self, assembler, session, mocker, unicode_stream):
        chunks = [unicode_stream[i:i + 3] for i in range(0, len(unicode_stream), 3)]
        session.post.return_value = _response(mocker, chunks=chunks)
        assert assembler.send("q").content == "Naïve café ☕ 日本語 🚀"

    def test_on_update_sees_growing_content(self, assembler, session, mocker, look_stream):
        session.post.return_value = _response(mocker, chunks=[look_stream])
        seen = []
        assembler.send("q", on_update=lambda m: seen.append(m.content))
        assert seen == ["Lo", "Look"]

    def test_empty_stream_adds_no_assistant_message(self, assembler, session, mocker):
        session.post.return_value = _response(mocker, chunks=[b"data: [DONE]\n"])
        assert assembler.send("q") is None
        assert [m.role for m in assembler.messages] == ["user"]
        assert assembler.state == RequestState.DONE

    def test_response_closed(self, assembler, session, mocker, look_stream):
        resp = _response(mocker, chunks=[look_stream])
        session.post.return_value = resp
        assembler.send("q")
        resp.close.assert_called_once()


class TestRequestBody:

    def test_body_and_bearer_header(self, assembler, session, mocker, look_stream):
        session.post.return_value = _response(mocker, chunks=[look_stream])
        assembler.send("  any issues?  ")

        args, kwargs = session.post.call_args
        assert args[0] == "http://api/api/review"
        assert kwargs["stream"] is True
        assert kwargs["headers"] == {"Authorization": "Bearer ghp_test"}
        assert kwargs["json"] == {
            "codeDiff": "+console.log('x')",
            "userQuestion": "any issues?",
            "fileName": "app.js",
            "conversationHistory": [],
        }

    def test_missing_file_name_sends_placeholder(self, auth, session, mocker, look_stream):
        session.post.return_value = _response(mocker, chunks=[look_stream])
        TranscriptAssembler("+x", auth, session=session).send("q")
        assert session.post.call_args.kwargs["json"]["fileName"] == "Unknown file"

    def test_history_excludes_current_question(self, assembler, session, mocker, look_stream, make_sse_line):
        session.post.return_value = _response(mocker, chunks=[look_stream])
        assembler.send("first")
        session.post.return_value = _response(mocker, chunks=[make_sse_line("again")])
        assembler.send("second")

        history = session.post.call_args.kwargs["json"]["conversationHistory"]
        assert history == [
            {"role": "user", "content": "first"},
            {"role": "assistant", "content": "Look"},
        ]

    def test_history_trimmed_to_ten(self, assembler, session, mocker, make_sse_line):
        for i in range(7):
            session.post.return_value = _response(mocker, chunks=[make_sse_line(f"a{i}")])
            assembler.send(f"q{i}")

        # 12 prior messages before the last send; q0/a0 are dropped
        history = session.post.call_args.kwargs["json"]["conversationHistory"]
        assert len(history) == 10
        assert history[0] == {"role": "user", "content": "q1"}
        assert history[-1] == {"role": "assistant", "content": "a5"}

    def test_logged_out_sends_no_auth_header(self, session, mocker, look_stream):
        session.post.return_value = _response(mocker, chunks=[look_stream])
        TranscriptAssembler("+x", AuthContext(), session=session).send("q")
        assert session.post.call_args.kwargs["headers"] == {}


class TestFailures:

    def test_gateway_500_shows_banner(self, assembler, session, mocker):
        session.post.return_value = _response(mocker, status_code=500)

        assert assembler.send("q") is None
        assert assembler.state == RequestState.FAILED
        assert assembler.error == FAILURE_BANNER
        assert [m.role for m in assembler.messages] == ["user"]

    def test_connection_error(self, assembler, session):
        session.post.side_effect = requests.ConnectionError("refused")
        assembler.send("q")
        assert assembler.state == RequestState.FAILED
        assert [m.content for m in assembler.messages] == ["q"]

    def test_mid_stream_error_discards_partial_reply(self, assembler, session, mocker, make_sse_line):
        resp = _response(mocker)
        resp.iter_content.return_value = _failing_iter(
            [make_sse_line("partial")], requests.exceptions.ChunkedEncodingError("reset"))
        session.post.return_value = resp

        assert assembler.send("q") is None
        assert [m.role for m in assembler.messages] == ["user"]
        assert assembler.error == FAILURE_BANNER
        assert not assembler.is_busy

    def test_next_send_clears_error(self, assembler, session, mocker, look_stream):
        session.post.return_value = _response(mocker, status_code=502)
        assembler.send("q1")
        session.post.return_value = _response(mocker, chunks=[look_stream])
        assembler.send("q2")
        assert assembler.error is None
        assert [m.content for m in assembler.messages] == ["q1", "q2", "Look"]

    def test_dismiss_error_keeps_transcript(self, assembler, session, mocker):
        session.post.return_value = _response(mocker, status_code=500)
        assembler.send("q")

        assembler.dismiss_error()

        assert assembler.error is None
        assert [m.content for m in assembler.messages] == ["q"]
        assert not assembler.is_busy

    def test_callback_exception_does_not_leave_input_disabled(self, assembler, session, mocker, look_stream):
        session.post.return_value = _response(mocker, chunks=[look_stream])

        def boom(_):
            raise RuntimeError("render failed")

        with pytest.raises(RuntimeError):
            assembler.send("q", on_update=boom)
        assert assembler.state == RequestState.FAILED
        assert [m.role for m in assembler.messages] == ["user"]


class TestInputGuard:

    def test_blank_question_ignored(self, assembler, session):
        assert assembler.send("   ") is None
        session.post.assert_not_called()
        assert assembler.messages == []

    def test_busy_assembler_ignores_send(self, assembler, session):
        assembler.state = RequestState.STREAMING_WITH_CONTENT
        assert assembler.send("q") is None
        session.post.assert_not_called()

    def test_idle_is_not_busy(self, assembler):
        assert assembler.state == RequestState.IDLE
        assert not assembler.is_busy
