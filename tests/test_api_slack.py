import json
import time
from urllib.parse import urlencode

import pytest
from httpx import ASGITransport, AsyncClient
from oncallbot.api.auth import compute_slack_signature, verify_slack_signature
from oncallbot.api.deps import get_command_handler, get_runtime_settings, get_slack_client
from oncallbot.api.main import create_app
from oncallbot.api.routes.slack import is_user_command, strip_mentions
from oncallbot.clients.base import PermanentHTTPError
from oncallbot.config import Settings
from oncallbot.core.errors import RosterQueryError
from oncallbot.directory import RosterDirectory
from oncallbot.formatter import FAILURE_MESSAGE, ResponseFormatter
from oncallbot.handler import OncallCommandHandler
from oncallbot.providers.base import OFF_DUTY, OncallHolder
from oncallbot.resolver import OncallResolver

SECRET = "8f742231b10e8888abcd99yyyzzz85a5"
RESPONSE_URL = "https://hooks.slack.com/commands/T000/1234/abcd"
ANSWER = "*PAYMENTS* On Call Engineers - *Primary*: Alice, *Secondary*: Currently Off Duty"


class TableClient:
    def __init__(self, holders, failures=()):
        self.holders = holders
        self.failures = set(failures)

    async def query(self, reference):
        if reference in self.failures:
            raise RosterQueryError(reference, "HTTP 502")
        return self.holders.get(reference, OFF_DUTY)


class StubSlack:
    def __init__(self, fail: bool = False) -> None:
        self.responses: list[tuple[str, str]] = []
        self.messages: list[tuple[str, str, str | None]] = []
        self.fail = fail

    async def respond(self, response_url, text, *, in_channel=True):
        if self.fail:
            raise PermanentHTTPError("HTTP 404")
        self.responses.append((response_url, text))

    async def post_message(self, channel, text, *, thread_ts=None, **extra):
        self.messages.append((channel, text, thread_ts))
        return {"ok": True}


def build_app(*, failures=(), slack=None, secret=SECRET):
    directory = RosterDirectory.from_mapping({"payments": ["sched-1", "sched-2"]})
    client = TableClient({"sched-1": OncallHolder("Alice")}, failures)
    handler = OncallCommandHandler(OncallResolver(directory, client), ResponseFormatter(directory))
    slack = slack or StubSlack()

    app = create_app()
    app.dependency_overrides[get_command_handler] = lambda: handler
    app.dependency_overrides[get_slack_client] = lambda: slack
    app.dependency_overrides[get_runtime_settings] = lambda: Settings(slack_signing_secret=secret)
    return app, slack


def signed_headers(body: bytes, secret: str = SECRET, timestamp: int | None = None) -> dict[str, str]:
    ts = str(timestamp if timestamp is not None else int(time.time()))
    return {
        "X-Slack-Request-Timestamp": ts,
        "X-Slack-Signature": compute_slack_signature(body, ts, secret),
    }


def command_body(text: str, **extra: str) -> bytes:
    fields = {
        "command": "/oncall",
        "text": text,
        "user_id": "U123",
        "channel_id": "C123",
        "response_url": RESPONSE_URL,
    } | extra
    return urlencode(fields).encode()


async def post(app, path, body, headers):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post(path, content=body, headers=headers)


class TestSignature:
    def test_valid_signature(self):
        body = b"token=x&text=payments"
        ts = "1531420618"
        signature = compute_slack_signature(body, ts, SECRET)
        assert verify_slack_signature(body, ts, signature, SECRET, now=1531420618 + 10)

    def test_tampered_body(self):
        ts = "1531420618"
        signature = compute_slack_signature(b"text=payments", ts, SECRET)
        assert not verify_slack_signature(b"text=billing", ts, signature, SECRET, now=1531420618)

    def test_stale_timestamp(self):
        ts = "1531420618"
        signature = compute_slack_signature(b"", ts, SECRET)
        assert not verify_slack_signature(b"", ts, signature, SECRET, now=1531420618 + 301)

    @pytest.mark.parametrize(("ts", "sig"), [(None, "v0=abc"), ("123", None), ("abc", "v0=abc")])
    def test_missing_or_bad_headers(self, ts, sig):
        assert not verify_slack_signature(b"", ts, sig, SECRET, now=123)


class TestMentions:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("<@U0BOT> payments", "payments"),
            ("<@U0BOT|oncall-bot>   Payments", "Payments"),
            ("<@U0BOT> <@U0OTHER> help", "help"),
            ("payments", "payments"),
            ("", ""),
        ],
    )
    def test_strip_mentions(self, text, expected):
        assert strip_mentions(text) == expected

    @pytest.mark.parametrize(
        ("event", "expected"),
        [
            ({"type": "app_mention", "text": "<@U0BOT> payments"}, True),
            ({"type": "message", "channel_type": "im", "text": "payments"}, True),
            ({"type": "message", "channel_type": "channel", "text": "payments"}, False),
            ({"type": "app_mention", "bot_id": "B1", "text": "payments"}, False),
            ({"type": "message", "channel_type": "im", "subtype": "message_changed"}, False),
        ],
    )
    def test_is_user_command(self, event, expected):
        assert is_user_command(event) is expected


@pytest.mark.asyncio
async def test_slash_command_replies_via_response_url():
    app, slack = build_app()
    body = command_body("Payments")

    response = await post(app, "/slack/commands", body, signed_headers(body))

    assert response.status_code == 200
    assert slack.responses == [(RESPONSE_URL, ANSWER)]


@pytest.mark.asyncio
async def test_slash_command_help():
    app, slack = build_app()
    body = command_body("")

    response = await post(app, "/slack/commands", body, signed_headers(body))

    assert response.status_code == 200
    assert len(slack.responses) == 1
    assert "Allowed team names are: `payments`." in slack.responses[0][1]


@pytest.mark.asyncio
async def test_slash_command_failure_reply():
    app, slack = build_app(failures={"sched-2"})
    body = command_body("payments")

    response = await post(app, "/slack/commands", body, signed_headers(body))

    assert response.status_code == 200
    assert slack.responses == [(RESPONSE_URL, FAILURE_MESSAGE)]


@pytest.mark.asyncio
async def test_slash_command_reply_delivery_failure_is_logged():
    app, slack = build_app(slack=StubSlack(fail=True))
    body = command_body("payments")

    response = await post(app, "/slack/commands", body, signed_headers(body))

    assert response.status_code == 200
    assert slack.responses == []


@pytest.mark.asyncio
async def test_slash_command_missing_response_url():
    app, _ = build_app()
    body = urlencode({"command": "/oncall", "text": "payments"}).encode()

    response = await post(app, "/slack/commands", body, signed_headers(body))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_slash_command_rejects_bad_signature():
    app, slack = build_app()
    body = command_body("payments")

    response = await post(app, "/slack/commands", body, signed_headers(body, secret="wrong"))

    assert response.status_code == 401
    assert slack.responses == []


@pytest.mark.asyncio
async def test_slash_command_rejects_replayed_request():
    app, slack = build_app()
    body = command_body("payments")
    headers = signed_headers(body, timestamp=int(time.time()) - 3600)

    response = await post(app, "/slack/commands", body, headers)

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unsigned_requests_allowed_without_secret():
    app, slack = build_app(secret=None)
    body = command_body("payments")

    response = await post(app, "/slack/commands", body, {})

    assert response.status_code == 200
    assert slack.responses == [(RESPONSE_URL, ANSWER)]


@pytest.mark.asyncio
async def test_events_url_verification():
    app, _ = build_app()
    body = json.dumps({"type": "url_verification", "challenge": "3eZbrw1aBm2rZgRNFdxV2595E9CY3gmdALWMmHkvFXO7tYXAYM8P"}).encode()

    response = await post(app, "/slack/events", body, signed_headers(body))

    assert response.status_code == 200
    assert response.json() == {"challenge": "3eZbrw1aBm2rZgRNFdxV2595E9CY3gmdALWMmHkvFXO7tYXAYM8P"}


@pytest.mark.asyncio
async def test_events_app_mention_replies_in_thread():
    app, slack = build_app()
    payload = {
        "type": "event_callback",
        "event": {
            "type": "app_mention",
            "user": "U123",
            "text": "<@U0BOT> PAYMENTS",
            "channel": "C123",
            "thread_ts": "1700000000.000100",
        },
    }
    body = json.dumps(payload).encode()

    response = await post(app, "/slack/events", body, signed_headers(body))

    assert response.status_code == 200
    assert slack.messages == [("C123", ANSWER, "1700000000.000100")]


@pytest.mark.asyncio
async def test_events_ignore_bot_messages():
    app, slack = build_app()
    payload = {
        "type": "event_callback",
        "event": {
            "type": "message",
            "channel_type": "im",
            "bot_id": "B0BOT",
            "text": ANSWER,
            "channel": "D123",
        },
    }
    body = json.dumps(payload).encode()

    response = await post(app, "/slack/events", body, signed_headers(body))

    assert response.status_code == 200
    assert slack.messages == []


@pytest.mark.asyncio
async def test_events_ignore_retries():
    app, slack = build_app()
    payload = {
        "type": "event_callback",
        "event": {"type": "app_mention", "text": "<@U0BOT> payments", "channel": "C1"},
    }
    body = json.dumps(payload).encode()
    headers = signed_headers(body) | {"X-Slack-Retry-Num": "1"}

    response = await post(app, "/slack/events", body, headers)

    assert response.status_code == 200
    assert slack.messages == []


@pytest.mark.asyncio
async def test_events_invalid_json():
    app, _ = build_app()
    body = b"{not json"

    response = await post(app, "/slack/events", body, signed_headers(body))

    assert response.status_code == 400
