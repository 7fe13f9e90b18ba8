from __future__ import annotations

import hashlib
import hmac
import time

import structlog
from fastapi import Depends, HTTPException, Request, status

from oncallbot.api.deps import get_runtime_settings
from oncallbot.config import Settings

logger = structlog.get_logger()

SIGNATURE_VERSION = "v0"


def compute_slack_signature(body: bytes, timestamp: str, secret: str) -> str:
    """Slack request signature: ``v0=`` + HMAC-SHA256 of ``v0:<ts>:<body>``."""
    base = f"{SIGNATURE_VERSION}:{timestamp}:".encode() + body
    digest = hmac.new(secret.encode(), base, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def verify_slack_signature(
    body: bytes,
    timestamp: str | None,
    signature: str | None,
    secret: str,
    *,
    tolerance: int = 300,
    now: float | None = None,
) -> bool:
    """Check a Slack request signature and reject stale timestamps."""
    if not timestamp or not signature:
        return False
    try:
        sent_at = int(timestamp)
    except ValueError:
        return False
    current = time.time() if now is None else now
    if abs(current - sent_at) > tolerance:
        return False
    expected = compute_slack_signature(body, timestamp, secret)
    return hmac.compare_digest(signature, expected)


async def verified_slack_body(
    request: Request,
    settings: Settings = Depends(get_runtime_settings),  # noqa: B008
) -> bytes:
    """Return the raw request body after checking its Slack signature."""
    body = await request.body()

    if not settings.slack_signing_secret:
        logger.warning("slack_signature_check_disabled", reason="No signing secret")
        return body

    valid = verify_slack_signature(
        body,
        request.headers.get("X-Slack-Request-Timestamp"),
        request.headers.get("X-Slack-Signature"),
        settings.slack_signing_secret,
        tolerance=settings.slack_request_tolerance,
    )
    if not valid:
        logger.warning("slack_signature_invalid", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Slack signature",
        )
    return body
