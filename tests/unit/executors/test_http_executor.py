"""
Tests for the HTTP action executor and response envelope handling.
"""

import asyncio

import pytest

from seedline.executors.base import ActionError
from seedline.executors.http import unwrap_envelope

try:
    import aiohttp

    AIOHTTP_AVAILABLE = True
except ImportError:
    AIOHTTP_AVAILABLE = False


class FakeResponse:
    def __init__(self, status=200, json_body=None, text=""):
        self.status = status
        self._json = json_body
        self._text = text

    async def json(self):
        return self._json

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class FakeSession:
    """Records posts and replays a canned response or exception."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.posts = []
        self.closed = False

    def post(self, url, json=None, headers=None):
        self.posts.append({"url": url, "json": json, "headers": headers})
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    async def close(self):
        self.closed = True


class TestActionError:
    @pytest.mark.parametrize(
        ("status", "retryable"),
        [(None, True), (500, True), (503, True), (429, True), (400, False), (404, False)],
    )
    def test_retryable_by_status(self, status, retryable):
        assert ActionError("x", status_code=status).retryable is retryable

    def test_explicit_override(self):
        assert ActionError("x", status_code=500, retryable=False).retryable is False


class TestUnwrapEnvelope:
    def test_successful_envelope(self):
        assert unwrap_envelope({"data": {"id": 1}, "successful": True, "error": None}) == {"id": 1}

    def test_misspelled_success_key(self):
        assert unwrap_envelope({"data": {"id": 1}, "successfull": True}) == {"id": 1}

    def test_nested_response_data(self):
        result = {"data": {"response_data": {"ts": "1.2"}}, "successful": True}
        assert unwrap_envelope(result) == {"ts": "1.2"}

    def test_failed_envelope_raises(self):
        with pytest.raises(ActionError) as exc_info:
            unwrap_envelope({"data": {}, "successful": False, "error": "no scope"}, "SLACK_X")

        assert "no scope" in str(exc_info.value)
        assert exc_info.value.provider_action == "SLACK_X"
        assert exc_info.value.retryable is True

    def test_failed_envelope_without_error_passes_data(self):
        assert unwrap_envelope({"data": {"id": 2}, "successful": False}) == {"id": 2}

    def test_plain_result_untouched(self):
        assert unwrap_envelope({"id": 3}) == {"id": 3}
        assert unwrap_envelope([1, 2]) == [1, 2]


@pytest.mark.skipif(not AIOHTTP_AVAILABLE, reason="aiohttp not installed")
class TestHttpActionExecutor:
    def _executor(self, outcome):
        from seedline.executors.http import HttpActionExecutor

        session = FakeSession(outcome)
        executor = HttpActionExecutor(api_key="k", base_url="https://api.test/v2/", session=session)
        return executor, session

    def test_action_url(self):
        executor, _ = self._executor(FakeResponse())
        assert executor.action_url("SLACKBOT_SEND_MESSAGE") == (
            "https://api.test/v2/actions/SLACKBOT_SEND_MESSAGE/execute"
        )

    def test_declares_api_key_requirement(self):
        from seedline.executors.base import ActionExecutor

        executor, _ = self._executor(FakeResponse())

        assert executor.requires_api_key is True
        assert ActionExecutor.requires_api_key is False

    @pytest.mark.asyncio
    async def test_execute_posts_and_unwraps(self):
        body = {"data": {"ts": "1.2", "channel": "C1"}, "successful": True}
        executor, session = self._executor(FakeResponse(json_body=body))

        result = await executor.execute("conn-1", "SLACKBOT_SEND_MESSAGE", {"text": "hi"})

        assert result == {"ts": "1.2", "channel": "C1"}
        (post,) = session.posts
        assert post["json"] == {"connectedAccountId": "conn-1", "input": {"text": "hi"}}
        assert post["headers"]["x-api-key"] == "k"

    @pytest.mark.asyncio
    async def test_http_error_carries_status(self):
        executor, _ = self._executor(FakeResponse(status=422, text="x" * 1000))

        with pytest.raises(ActionError) as exc_info:
            await executor.execute("conn-1", "GITHUB_CREATE_AN_ISSUE", {})

        assert exc_info.value.status_code == 422
        assert exc_info.value.retryable is False
        assert len(str(exc_info.value)) < 400

    @pytest.mark.asyncio
    async def test_transport_error_is_retryable(self):
        executor, _ = self._executor(aiohttp.ClientConnectionError("reset"))

        with pytest.raises(ActionError) as exc_info:
            await executor.execute("conn-1", "LINEAR_LIST_LINEAR_TEAMS", {})

        assert exc_info.value.status_code is None
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_timeout_is_retryable(self):
        executor, _ = self._executor(asyncio.TimeoutError())

        with pytest.raises(ActionError) as exc_info:
            await executor.execute("conn-1", "LINEAR_LIST_LINEAR_TEAMS", {})

        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_external_session_is_not_closed(self):
        executor, session = self._executor(FakeResponse())

        await executor.close()

        assert session.closed is False
