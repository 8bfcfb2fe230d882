#!/usr/bin/env python3
"""Deferred smart home agent.

Long-polls the relay queue fed by the skill Lambda, handles the power and
percentage directives found there, and posts each response to the smart home
event gateway with the user's stored credentials. Runs until SIGINT/SIGTERM;
a failed receive or a failed message is logged and the queue is polled again
after one wait interval.

Scale out by running more agents against the same queue.
"""

from __future__ import annotations

import argparse
import logging
import os
import signal
import threading
from typing import Any, List, Optional

from homeskill_shared.config import (
    ALEXA_EVENT_ENDPOINT,
    AUTH_CLIENT_ID,
    AUTH_CLIENT_SECRET,
    DELETE_ON_SEND_ERROR,
    QUEUE_MAX_MESSAGES,
    QUEUE_WAIT_TIME_SECONDS,
    S3_TOKEN_BUCKET,
    SKILL_DEBUG,
    SQS_QUEUE_URL,
)
from homeskill_shared.debug import DebugTokenStore, debug_handler
from homeskill_shared.deferred import DeferredHandler, HTTPEventSender
from homeskill_shared.oauth import OAuthClient
from homeskill_shared.profile import ProfileUserIDReader
from homeskill_shared.queue_processor import QueueProcessor, run_until_stopped
from homeskill_shared.responses import ResponseBuilder
from homeskill_shared.router import NamespaceMux, percentage_controller_handler, power_controller_handler
from homeskill_shared.serialization import _now_utc
from homeskill_shared.token_store import S3TokenStore
from homeskill_shared.types import (
    NAMESPACE_PERCENTAGE_CONTROLLER,
    NAMESPACE_POWER_CONTROLLER,
    AdjustPercentagePayload,
    ContextProperty,
    Request,
    Response,
    SetPercentagePayload,
)

logger = logging.getLogger("sqs_agent")

UNCERTAINTY_MS = 500


class FanSwitch:
    def __init__(self, builder: ResponseBuilder, now=_now_utc):
        self.builder = builder
        self.now = now
        self.power_state = "OFF"

    def _power(self, req: Request, state: str) -> Response:
        self.power_state = state
        logger.info("Turn %s!", state.lower())
        return self.builder.basic_response(
            req,
            ContextProperty(
                namespace=NAMESPACE_POWER_CONTROLLER,
                name="powerState",
                value=state,
                time_of_sample=self.now(),
                uncertainty_in_milliseconds=UNCERTAINTY_MS,
            ),
        )

    def turn_on(self, req: Request) -> Response:
        return self._power(req, "ON")

    def turn_off(self, req: Request) -> Response:
        return self._power(req, "OFF")


class WindowControl:
    """Tracks how far the window is open, clamped to 0-100."""

    def __init__(self, builder: ResponseBuilder, now=_now_utc, percentage: int = 50):
        self.builder = builder
        self.now = now
        self.percentage = percentage

    def _report(self, req: Request) -> Response:
        return self.builder.basic_response(
            req,
            ContextProperty(
                namespace=NAMESPACE_PERCENTAGE_CONTROLLER,
                name="percentage",
                value=self.percentage,
                time_of_sample=self.now(),
                uncertainty_in_milliseconds=UNCERTAINTY_MS,
            ),
        )

    def set_percentage(self, req: Request) -> Response:
        target = SetPercentagePayload.from_dict(req.payload)
        self.percentage = max(0, min(100, target.percentage))
        logger.info("SetPercentage: %d", self.percentage)
        return self._report(req)

    def adjust_percentage(self, req: Request) -> Response:
        adjust = AdjustPercentagePayload.from_dict(req.payload)
        self.percentage = max(0, min(100, self.percentage + adjust.percentage_delta))
        logger.info("AdjustPercentage: %+d -> %d", adjust.percentage_delta, self.percentage)
        return self._report(req)


def build_mux(builder: ResponseBuilder) -> NamespaceMux:
    fan = FanSwitch(builder)
    window = WindowControl(builder)

    mux = NamespaceMux()
    mux.register(
        NAMESPACE_PERCENTAGE_CONTROLLER,
        percentage_controller_handler(window.set_percentage, window.adjust_percentage),
    )
    mux.register(NAMESPACE_POWER_CONTROLLER, power_controller_handler(fan.turn_on, fan.turn_off))
    return mux


def build_processor(args: argparse.Namespace, sqs: Any = None, s3: Any = None) -> QueueProcessor:
    token_store: Any = S3TokenStore(args.token_bucket, s3=s3)
    if args.debug:
        token_store = DebugTokenStore(token_store)

    request_handler = build_mux(ResponseBuilder())
    event_sender = HTTPEventSender(
        token_store=token_store,
        user_id_reader=ProfileUserIDReader(),
        oauth_client=OAuthClient(args.client_id, args.client_secret),
        event_endpoint=args.event_endpoint,
    )
    handler = DeferredHandler(
        request_handler=debug_handler(request_handler) if args.debug else request_handler,
        event_sender=event_sender,
    )
    return QueueProcessor(
        handler=handler,
        queue_url=args.queue_url,
        sqs=sqs,
        wait_time_seconds=args.wait_seconds,
        max_messages=args.max_messages,
        delete_on_send_error=args.delete_on_send_error,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Handle deferred smart home directives from SQS.")
    parser.add_argument("--queue-url", default=SQS_QUEUE_URL)
    parser.add_argument("--token-bucket", default=S3_TOKEN_BUCKET)
    parser.add_argument("--client-id", default=AUTH_CLIENT_ID)
    parser.add_argument("--client-secret", default=AUTH_CLIENT_SECRET)
    parser.add_argument("--event-endpoint", default=ALEXA_EVENT_ENDPOINT)
    parser.add_argument("--wait-seconds", type=int, default=QUEUE_WAIT_TIME_SECONDS)
    parser.add_argument("--max-messages", type=int, default=QUEUE_MAX_MESSAGES)
    parser.add_argument(
        "--delete-on-send-error",
        action=argparse.BooleanOptionalAction,
        default=DELETE_ON_SEND_ERROR,
        help="Delete a message whose directive was handled even if its response was not delivered.",
    )
    parser.add_argument("--debug", action=argparse.BooleanOptionalAction, default=SKILL_DEBUG)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not args.queue_url:
        logger.error("[ERROR] no queue url: set SQS_QUEUE_URL or pass --queue-url")
        return 2

    processor = build_processor(args)
    stop_event = threading.Event()

    def _stop(signum, _frame):
        logger.info("received signal %s, stopping after the current receive", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)

    logger.info("[START] polling %s (pid %d)", args.queue_url, os.getpid())
    run_until_stopped(processor, stop_event)
    logger.info("[END] agent stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
