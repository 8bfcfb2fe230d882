"""homeskill_shared.config — Environment configuration shared by the skill Lambda and the agent.

Values are read once at import time. Nothing here is validated up front; a bad
queue URL or bucket name surfaces as a failed downstream call.
"""
from __future__ import annotations

import os

__all__ = [
    "ALEXA_EVENT_ENDPOINT",
    "AUTH_CLIENT_ID",
    "AUTH_CLIENT_SECRET",
    "AWS_REGION",
    "DELETE_ON_SEND_ERROR",
    "HTTP_TIMEOUT_SECONDS",
    "LWA_PROFILE_URL",
    "LWA_TOKEN_URL",
    "QUEUE_MAX_MESSAGES",
    "QUEUE_WAIT_TIME_SECONDS",
    "RELAY_MESSAGE_GROUP_ID",
    "S3_TOKEN_BUCKET",
    "SKILL_DEBUG",
    "SQS_QUEUE_URL",
]


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# AWS
# ---------------------------------------------------------------------------

AWS_REGION: str = os.environ.get("AWS_REGION", os.environ.get("AWS_DEFAULT_REGION", "us-east-1"))
SQS_QUEUE_URL: str = os.environ.get("SQS_QUEUE_URL", "")
S3_TOKEN_BUCKET: str = os.environ.get("S3_TOKEN_BUCKET", "")

# All relayed directives share one FIFO group so they are delivered in order.
RELAY_MESSAGE_GROUP_ID = "alexa.HandleRequest"

QUEUE_WAIT_TIME_SECONDS: int = _env_int("QUEUE_WAIT_TIME_SECONDS", 20)
QUEUE_MAX_MESSAGES: int = _env_int("QUEUE_MAX_MESSAGES", 1)
DELETE_ON_SEND_ERROR: bool = _env_flag("DELETE_ON_SEND_ERROR")

# ---------------------------------------------------------------------------
# Login with Amazon / smart home event gateway
# ---------------------------------------------------------------------------

AUTH_CLIENT_ID: str = os.environ.get("AUTH_CLIENT_ID", "")
AUTH_CLIENT_SECRET: str = os.environ.get("AUTH_CLIENT_SECRET", "")
LWA_TOKEN_URL: str = os.environ.get("LWA_TOKEN_URL", "https://api.amazon.com/auth/o2/token")
LWA_PROFILE_URL: str = os.environ.get("LWA_PROFILE_URL", "https://api.amazon.com/user/profile")
ALEXA_EVENT_ENDPOINT: str = os.environ.get("ALEXA_EVENT_ENDPOINT", "https://api.amazonalexa.com/v3/events")
HTTP_TIMEOUT_SECONDS: int = _env_int("HTTP_TIMEOUT_SECONDS", 10)

SKILL_DEBUG: bool = _env_flag("SKILL_DEBUG")
