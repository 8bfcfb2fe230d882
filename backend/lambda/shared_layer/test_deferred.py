"""test_deferred.py — DeferredHandler and HTTPEventSender, including token refresh."""

from __future__ import annotations

import datetime as dt
import json
import os
import sys
import unittest
import urllib.error
from unittest.mock import MagicMock

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "python"))

from homeskill_shared.deferred import DeferredHandler, HTTPEventSender
from homeskill_shared.errors import (
    HandlingError,
    OAuthError,
    ProfileLookupError,
    SendError,
    TokenPersistError,
    TokenStoreError,
)
from homeskill_shared.oauth import OAuthToken
from homeskill_shared.responses import ResponseBuilder
from homeskill_shared.types import Header, Request, RequestEndpoint, Scope

EVENT_ENDPOINT = "https://api.amazonalexa.com/v3/events"
USER_ID = "amzn1.account.AHXXXX"


class FakeHttp:
    """Records requests and replays canned (status, body) results in order."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def __call__(self, method, url, headers=None, data=None, timeout=None):
        self.calls.append({"method": method, "url": url, "headers": headers or {}, "data": data})
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _request(token="bearer-1"):
    return Request(
        header=Header(
            namespace="Alexa.PowerController",
            name="TurnOn",
            message_id="msg-1",
            correlation_token="corr-1",
        ),
        endpoint=RequestEndpoint(scope=Scope(type="BearerToken", token=token), endpoint_id="switch-1"),
    )


def _response(token="bearer-1"):
    return ResponseBuilder(message_id=lambda: "out-1").basic_response(_request(token))


def _future(seconds=3600):
    return dt.datetime.now(dt.timezone.utc) + dt.timedelta(seconds=seconds)


class DeferredHandlerTests(unittest.TestCase):
    def setUp(self):
        self.sender = MagicMock()

    def test_response_is_sent(self):
        resp = _response()
        handler = DeferredHandler(MagicMock(return_value=resp), self.sender)
        handler.handle_request(_request())
        self.sender.send.assert_called_once_with(resp)

    def test_no_response_sends_nothing(self):
        handler = DeferredHandler(MagicMock(return_value=None), self.sender)
        handler.handle_request(_request())
        self.sender.send.assert_not_called()

    def test_handler_failure_is_handling_error(self):
        boom = RuntimeError("device offline")
        handler = DeferredHandler(MagicMock(side_effect=boom), self.sender)

        with self.assertRaises(HandlingError) as ctx:
            handler(_request())
        self.assertIs(ctx.exception.__cause__, boom)
        self.sender.send.assert_not_called()

    def test_send_failure_stays_send_error(self):
        self.sender.send.side_effect = SendError("gateway down")
        handler = DeferredHandler(MagicMock(return_value=_response()), self.sender)

        with self.assertRaises(SendError):
            handler.handle_request(_request())


class HTTPEventSenderTests(unittest.TestCase):
    def setUp(self):
        self.token_store = MagicMock()
        self.token_store.read.return_value = OAuthToken("access-1", refresh_token="refresh-1", expiry=_future())
        self.user_id_reader = MagicMock()
        self.user_id_reader.read.return_value = USER_ID
        self.oauth = MagicMock()
        self.oauth.refresh.return_value = OAuthToken("access-2", refresh_token="refresh-1", expiry=_future())

    def _sender(self, http):
        return HTTPEventSender(
            token_store=self.token_store,
            user_id_reader=self.user_id_reader,
            oauth_client=self.oauth,
            event_endpoint=EVENT_ENDPOINT,
            http_request=http,
        )

    def test_posts_response_with_user_credentials(self):
        http = FakeHttp((202, b""))
        resp = _response()
        self._sender(http).send(resp)

        self.user_id_reader.read.assert_called_once_with("bearer-1")
        self.token_store.read.assert_called_once_with(USER_ID)
        self.assertEqual(len(http.calls), 1)
        call = http.calls[0]
        self.assertEqual((call["method"], call["url"]), ("POST", EVENT_ENDPOINT))
        self.assertEqual(call["headers"]["Authorization"], "Bearer access-1")
        self.assertEqual(call["headers"]["Content-Type"], "application/json")
        self.assertEqual(json.loads(call["data"]), resp.to_dict())
        self.oauth.refresh.assert_not_called()
        self.token_store.write.assert_not_called()

    def test_unauthorized_refreshes_once_and_persists(self):
        http = FakeHttp((401, b""), (200, b""))
        self._sender(http).send(_response())

        self.assertEqual(
            [c["headers"]["Authorization"] for c in http.calls],
            ["Bearer access-1", "Bearer access-2"],
        )
        self.oauth.refresh.assert_called_once()
        self.token_store.write.assert_called_once()
        user_id, token = self.token_store.write.call_args.args
        self.assertEqual(user_id, USER_ID)
        self.assertEqual(token.access_token, "access-2")

    def test_expired_token_is_refreshed_before_posting(self):
        self.token_store.read.return_value = OAuthToken(
            "access-1", refresh_token="refresh-1", expiry=_future(seconds=-60)
        )
        http = FakeHttp((202, b""))
        self._sender(http).send(_response())

        self.assertEqual(len(http.calls), 1)
        self.assertEqual(http.calls[0]["headers"]["Authorization"], "Bearer access-2")
        self.token_store.write.assert_called_once()

    def test_second_unauthorized_is_not_retried(self):
        http = FakeHttp((401, b""), (401, b""))

        with self.assertRaises(SendError):
            self._sender(http).send(_response())
        self.assertEqual(len(http.calls), 2)
        self.oauth.refresh.assert_called_once()
        self.token_store.write.assert_not_called()

    def test_refresh_returning_same_access_token_is_not_written(self):
        self.oauth.refresh.return_value = OAuthToken("access-1", refresh_token="refresh-1", expiry=_future())
        http = FakeHttp((401, b""), (202, b""))
        self._sender(http).send(_response())

        self.token_store.write.assert_not_called()

    def test_unauthorized_without_refresh_token(self):
        self.token_store.read.return_value = OAuthToken("access-1")
        http = FakeHttp((401, b""))

        with self.assertRaises(SendError) as ctx:
            self._sender(http).send(_response())
        self.assertIn("401", str(ctx.exception))
        self.oauth.refresh.assert_not_called()

    def test_refresh_failure(self):
        self.oauth.refresh.side_effect = OAuthError("invalid_grant", status=400, error_code="invalid_grant")
        http = FakeHttp((401, b""))

        with self.assertRaises(SendError):
            self._sender(http).send(_response())
        self.token_store.write.assert_not_called()

    def test_profile_failure(self):
        self.user_id_reader.read.side_effect = ProfileLookupError("profile response unexpected status code: 401")
        http = FakeHttp()

        with self.assertRaises(SendError) as ctx:
            self._sender(http).send(_response())
        self.assertIn("failed to retrieve user id", str(ctx.exception))
        self.assertEqual(http.calls, [])
        self.token_store.read.assert_not_called()
        self.token_store.write.assert_not_called()

    def test_missing_access_token(self):
        self.token_store.read.return_value = None
        http = FakeHttp()

        with self.assertRaises(SendError) as ctx:
            self._sender(http).send(_response())
        self.assertEqual(str(ctx.exception), "missing access token")
        self.assertEqual(http.calls, [])

    def test_token_store_failure(self):
        self.token_store.read.side_effect = TokenStoreError("failed to retrieve from s3")

        with self.assertRaises(SendError) as ctx:
            self._sender(FakeHttp()).send(_response())
        self.assertIn("failed to retrieve access token", str(ctx.exception))

    def test_unexpected_status(self):
        http = FakeHttp((500, b"oops"))

        with self.assertRaises(SendError) as ctx:
            self._sender(http).send(_response())
        self.assertIn("event response unexpected status code: 500", str(ctx.exception))
        self.token_store.write.assert_not_called()

    def test_transport_failure(self):
        http = FakeHttp(urllib.error.URLError("connection refused"))

        with self.assertRaises(SendError):
            self._sender(http).send(_response())

    def test_persist_failure_after_delivery(self):
        self.token_store.write.side_effect = TokenStoreError("failed to upload to s3")
        http = FakeHttp((401, b""), (202, b""))

        with self.assertRaises(TokenPersistError):
            self._sender(http).send(_response())
        self.assertEqual(len(http.calls), 2)

    def test_response_without_bearer_token(self):
        resp = ResponseBuilder().deferred_response(_request())

        with self.assertRaises(SendError):
            self._sender(FakeHttp()).send(resp)
        self.user_id_reader.read.assert_not_called()


if __name__ == "__main__":
    unittest.main()
