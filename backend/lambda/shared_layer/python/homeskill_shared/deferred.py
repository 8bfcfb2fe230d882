"""homeskill_shared.deferred — Handles relayed directives and posts their results to the event gateway.

DeferredHandler separates two failure kinds:
    - HandlingError: the directive itself failed, nothing was produced.
    - SendError: the directive succeeded but its response is stranded.

HTTPEventSender posts with the end user's credentials. Their token is looked up
by the user id behind the bearer token carried in the response's endpoint
scope, refreshed when the gateway (or its expiry) says it is stale, and
written back when the refresh produced a new access token.
"""

from __future__ import annotations

import logging
import urllib.error
from typing import Optional, Tuple

from homeskill_shared.config import ALEXA_EVENT_ENDPOINT
from homeskill_shared.errors import HandlingError, OAuthError, SendError, SerializationError, SkillError, TokenPersistError
from homeskill_shared.http_utils import HttpRequester, _accepted, _bearer_headers, _http_request
from homeskill_shared.oauth import OAuthClient, OAuthToken
from homeskill_shared.router import Handler
from homeskill_shared.serialization import _dumps
from homeskill_shared.types import Request, Response

logger = logging.getLogger(__name__)


class DeferredHandler:
    """Runs the request handler and forwards any response to the event sender."""

    def __init__(self, request_handler: Handler, event_sender):
        self.request_handler = request_handler
        self.event_sender = event_sender

    def handle_request(self, req: Request) -> None:
        try:
            resp = self.request_handler(req)
        except Exception as exc:
            raise HandlingError(f"failed to handle request: {exc}") from exc
        if resp is None:
            return
        self.event_sender.send(resp)

    __call__ = handle_request


class HTTPEventSender:
    """Sends responses to the smart home event gateway with the credentials of the user."""

    def __init__(
        self,
        token_store,
        user_id_reader,
        oauth_client: OAuthClient,
        event_endpoint: str = ALEXA_EVENT_ENDPOINT,
        http_request: Optional[HttpRequester] = None,
    ):
        self.token_store = token_store
        self.user_id_reader = user_id_reader
        self.oauth_client = oauth_client
        self.event_endpoint = event_endpoint
        self._http_request = http_request or _http_request

    def send(self, resp: Response) -> None:
        try:
            body = _dumps(resp.to_dict()).encode("utf-8")
        except SerializationError as exc:
            raise SendError(f"failed to marshal response: {exc}") from exc

        endpoint = resp.event.endpoint
        if endpoint is None or not endpoint.scope.token:
            raise SendError("response carries no bearer token in its endpoint scope")

        try:
            user_id = self.user_id_reader.read(endpoint.scope.token)
        except SkillError as exc:
            raise SendError(f"failed to retrieve user id: {exc}") from exc

        try:
            token = self.token_store.read(user_id)
        except SkillError as exc:
            raise SendError(f"failed to retrieve access token: {exc}") from exc
        if token is None:
            raise SendError("missing access token")

        status, used = self._post_with_refresh(body, token)
        if not _accepted(status):
            raise SendError(f"event response unexpected status code: {status}")

        if used.access_token != token.access_token:
            try:
                self.token_store.write(user_id, used)
            except SkillError as exc:
                raise TokenPersistError(f"failed to update token: {exc}") from exc
            logger.info("[TOKEN] persisted refreshed token")

    __call__ = send

    def _post_with_refresh(self, body: bytes, token: OAuthToken) -> Tuple[int, OAuthToken]:
        """Post the event, refreshing the token at most once.

        Returns the final status and the token the final attempt used.
        """
        current = token
        refreshed = False
        if current.expired():
            current = self._refresh(current)
            refreshed = True

        status = self._post(body, current)
        if status == 401 and not refreshed and current.refresh_token:
            logger.info("[TOKEN] event gateway rejected the access token, refreshing")
            current = self._refresh(current)
            status = self._post(body, current)
        return status, current

    def _refresh(self, token: OAuthToken) -> OAuthToken:
        try:
            return self.oauth_client.refresh(token)
        except OAuthError as exc:
            raise SendError(f"failed to refresh access token: {exc}") from exc

    def _post(self, body: bytes, token: OAuthToken) -> int:
        try:
            status, _ = self._http_request(
                "POST",
                self.event_endpoint,
                headers=_bearer_headers(token.access_token),
                data=body,
            )
        except (urllib.error.URLError, OSError) as exc:
            raise SendError(f"failed to perform event request: {exc}") from exc
        return status
