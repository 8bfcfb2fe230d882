"""homeskill_shared.handlers — Reusable directive handlers for the skill Lambda."""

from __future__ import annotations

import logging

from homeskill_shared.errors import SkillError
from homeskill_shared.oauth import OAuthClient
from homeskill_shared.responses import ResponseBuilder
from homeskill_shared.router import Handler
from homeskill_shared.types import AcceptGrantPayload, DiscoverEndpoint, Request, Response

logger = logging.getLogger(__name__)

ACCEPT_GRANT_FAILED = "ACCEPT_GRANT_FAILED"


def deferred_relay_handler(relayer, builder: ResponseBuilder) -> Handler:
    """Relay the request and acknowledge it with a DeferredResponse.

    The actual response is posted to the event gateway once the relayed
    directive has been handled. A relay failure propagates, telling the
    platform the directive was not accepted.
    """

    def handle(req: Request) -> Response:
        relayer.relay(req)
        return builder.deferred_response(req)

    return handle


def static_discovery_handler(builder: ResponseBuilder, *endpoints: DiscoverEndpoint) -> Handler:
    """Answer discovery with a fixed set of endpoints."""

    def handle(req: Request) -> Response:
        return builder.discover_response(*endpoints)

    return handle


def authorization_handler(
    oauth_client: OAuthClient,
    user_id_reader,
    token_writer,
    builder: ResponseBuilder,
) -> Handler:
    """Handle AcceptGrant: fetch and store the credentials used to post events.

    Failures after the payload is decoded are answered with an
    ACCEPT_GRANT_FAILED error response rather than raised.
    """

    def handle(req: Request) -> Response:
        payload = AcceptGrantPayload.from_dict(req.payload)

        try:
            token = oauth_client.exchange(payload.code)
        except SkillError as exc:
            logger.warning("accept grant: token exchange failed: %s", exc)
            return builder.basic_error_response(req, ACCEPT_GRANT_FAILED, f"failed to exchange token: {exc}")

        try:
            user_id = user_id_reader.read(payload.grantee_token)
        except SkillError as exc:
            logger.warning("accept grant: user id lookup failed: %s", exc)
            return builder.basic_error_response(req, ACCEPT_GRANT_FAILED, f"failed to lookup userid: {exc}")

        try:
            token_writer.write(user_id, token)
        except SkillError as exc:
            logger.warning("accept grant: token store failed: %s", exc)
            return builder.basic_error_response(req, ACCEPT_GRANT_FAILED, f"failed to store token: {exc}")

        logger.info("[TOKEN] accept grant stored credentials")
        return builder.accept_grant_response()

    return handle
