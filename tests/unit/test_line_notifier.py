"""
Unit tests for the LINE push client.
"""

import json

import httpx
import pytest

from coach.notify.base import LogNotifier, QuickAction
from coach.notify.line import LinePushNotifier


@pytest.fixture
def captured():
    return []


@pytest.fixture
def make_notifier(captured):
    def factory(status_code=200):
        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(status_code, json={})

        client = httpx.Client(transport=httpx.MockTransport(handler))
        return LinePushNotifier("token-123", api_base="https://line.test/", client=client)

    return factory


class TestLinePushNotifier:
    def test_push_payload(self, make_notifier, captured):
        notifier = make_notifier()
        notifier.push("U1", "Break time", [QuickAction("Vocabulary done", "vocab done")])

        request = captured[0]
        assert str(request.url) == "https://line.test/v2/bot/message/push"
        assert request.headers["Authorization"] == "Bearer token-123"

        body = json.loads(request.content)
        assert body["to"] == "U1"
        message = body["messages"][0]
        assert message["text"] == "Break time"
        assert message["quickReply"]["items"][0]["action"] == {
            "type": "message",
            "label": "Vocabulary done",
            "text": "vocab done",
        }

    def test_plain_message_has_no_quick_reply(self):
        assert LinePushNotifier.build_message("hi") == {"type": "text", "text": "hi"}

    def test_http_error_raises(self, make_notifier):
        notifier = make_notifier(status_code=401)
        with pytest.raises(httpx.HTTPStatusError):
            notifier.push("U1", "hello")


class TestLogNotifier:
    def test_push_never_raises(self):
        LogNotifier().push("U1", "hello", [QuickAction("a", "b")])
