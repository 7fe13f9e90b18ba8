from __future__ import annotations

import json
import re
from typing import Any
from urllib.parse import parse_qs

import structlog
from circuitbreaker import CircuitBreakerError
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response, status

from oncallbot.api.auth import verified_slack_body
from oncallbot.api.deps import get_command_handler, get_slack_client
from oncallbot.clients.base import ReplyDeliveryError
from oncallbot.clients.slack import SlackClient
from oncallbot.handler import OncallCommandHandler, Reply

router = APIRouter(prefix="/slack")
logger = structlog.get_logger()

LEADING_MENTIONS = re.compile(r"^\s*(?:<@[A-Z0-9]+(?:\|[^>]*)?>\s*)+")
REPLY_ERRORS = (ReplyDeliveryError, CircuitBreakerError)


def strip_mentions(text: str) -> str:
    """Drop the ``<@U123>`` mentions that prefix an app mention."""
    return LEADING_MENTIONS.sub("", text or "")


def is_user_command(event: dict[str, Any]) -> bool:
    """True for mentions and direct messages written by a human."""
    if event.get("bot_id") or event.get("subtype"):
        return False
    if event.get("type") == "app_mention":
        return True
    return event.get("type") == "message" and event.get("channel_type") == "im"


async def run_command(
    handler: OncallCommandHandler,
    text: str | None,
    reply: Reply,
    **context: str | None,
) -> None:
    try:
        await handler.handle(text, reply, **context)
    except REPLY_ERRORS as exc:
        logger.error("oncall_reply_failed", error=str(exc), **context)


@router.post("/commands", status_code=status.HTTP_200_OK)
async def slash_command(
    background: BackgroundTasks,
    body: bytes = Depends(verified_slack_body),  # noqa: B008
    handler: OncallCommandHandler = Depends(get_command_handler),  # noqa: B008
    slack: SlackClient = Depends(get_slack_client),  # noqa: B008
) -> Response:
    """Acknowledge a slash command and answer it through its response URL."""
    form = {key: values[0] for key, values in parse_qs(body.decode(), keep_blank_values=True).items()}
    response_url = form.get("response_url")
    if not response_url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing response_url",
        )

    async def reply(message: str) -> None:
        await slack.respond(response_url, message)

    background.add_task(
        run_command,
        handler,
        form.get("text"),
        reply,
        command=form.get("command"),
        user_id=form.get("user_id"),
        channel_id=form.get("channel_id"),
    )
    logger.info("slash_command_accepted", command=form.get("command"), user_id=form.get("user_id"))
    return Response(status_code=status.HTTP_200_OK)


@router.post("/events", status_code=status.HTTP_200_OK)
async def events(
    request: Request,
    background: BackgroundTasks,
    body: bytes = Depends(verified_slack_body),  # noqa: B008
    handler: OncallCommandHandler = Depends(get_command_handler),  # noqa: B008
    slack: SlackClient = Depends(get_slack_client),  # noqa: B008
) -> dict[str, Any]:
    """Handle Events API callbacks: URL verification, mentions and DMs."""
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON payload",
        ) from exc
    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid event payload",
        )

    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge")}

    if request.headers.get("X-Slack-Retry-Num"):
        # The first delivery is already being answered.
        logger.info("slack_retry_ignored", retry=request.headers.get("X-Slack-Retry-Num"))
        return {"ok": True}

    event = payload.get("event") or {}
    if payload.get("type") != "event_callback" or not is_user_command(event):
        return {"ok": True}

    channel = event.get("channel")
    if not channel:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event has no channel",
        )
    thread_ts = event.get("thread_ts")

    async def reply(message: str) -> None:
        await slack.post_message(channel, message, thread_ts=thread_ts)

    background.add_task(
        run_command,
        handler,
        strip_mentions(event.get("text", "")),
        reply,
        event_type=event.get("type"),
        user_id=event.get("user"),
        channel_id=channel,
    )
    return {"ok": True}
