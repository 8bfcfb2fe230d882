"""homeskill_shared.oauth — OAuth tokens and the Login with Amazon token endpoint.

Supports the two grants the skill needs:
    - authorization_code: the AcceptGrant directive hands over a code that is
      exchanged for an access/refresh token pair.
    - refresh_token: an expired access token is renewed before an event post.

Tokens are stored as JSON documents of the shape
``{"access_token", "token_type", "refresh_token", "expiry"}``.
"""

from __future__ import annotations

import datetime as dt
import logging
import urllib.error
import urllib.parse
from dataclasses import dataclass
from typing import Any, Dict, Optional

from homeskill_shared.config import LWA_TOKEN_URL
from homeskill_shared.errors import OAuthError, SerializationError
from homeskill_shared.http_utils import HttpRequester, _http_request
from homeskill_shared.serialization import _format_time, _loads, _now_utc, _parse_time

logger = logging.getLogger(__name__)

# A token is treated as expired this long before its actual expiry.
EXPIRY_DELTA = dt.timedelta(seconds=10)


@dataclass
class OAuthToken:
    access_token: str
    token_type: str = "Bearer"
    refresh_token: str = ""
    expiry: Optional[dt.datetime] = None

    def expired(self, now: Optional[dt.datetime] = None) -> bool:
        if self.expiry is None:
            return False
        return (now or _now_utc()) >= self.expiry - EXPIRY_DELTA

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": self.token_type,
        }
        if self.refresh_token:
            doc["refresh_token"] = self.refresh_token
        if self.expiry is not None:
            doc["expiry"] = _format_time(self.expiry)
        return doc

    @classmethod
    def from_dict(cls, data: Any) -> "OAuthToken":
        if not isinstance(data, dict) or not data.get("access_token"):
            raise SerializationError("token document is missing access_token")
        return cls(
            access_token=str(data["access_token"]),
            token_type=str(data.get("token_type") or "Bearer"),
            refresh_token=str(data.get("refresh_token") or ""),
            expiry=_parse_time(data.get("expiry")),
        )


class OAuthClient:
    """Client-credential holder for grant exchange and refresh calls."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = LWA_TOKEN_URL,
        http_request: Optional[HttpRequester] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self._http_request = http_request or _http_request

    def exchange(self, code: str) -> OAuthToken:
        """Exchange an authorization code for a token pair."""
        return self._retrieve({"grant_type": "authorization_code", "code": code})

    def refresh(self, token: OAuthToken) -> OAuthToken:
        """Trade the refresh token for a new access token.

        The provider may omit the refresh token from its answer, in which case
        the previous one stays valid and is carried over.
        """
        if not token.refresh_token:
            raise OAuthError("token expired and refresh token is not set")
        fresh = self._retrieve({"grant_type": "refresh_token", "refresh_token": token.refresh_token})
        if not fresh.refresh_token:
            fresh.refresh_token = token.refresh_token
        return fresh

    def _retrieve(self, params: Dict[str, str]) -> OAuthToken:
        form = dict(params)
        form["client_id"] = self.client_id
        form["client_secret"] = self.client_secret
        body = urllib.parse.urlencode(form).encode("utf-8")
        try:
            status, raw = self._http_request(
                "POST",
                self.token_url,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                data=body,
            )
        except (urllib.error.URLError, OSError) as exc:
            raise OAuthError(f"oauth2: cannot fetch token: {exc}") from exc

        try:
            doc = _loads(raw) if raw else {}
        except SerializationError:
            doc = {}
        if not isinstance(doc, dict):
            doc = {}

        if status < 200 or status > 299:
            error_code = str(doc.get("error") or "")
            detail = str(doc.get("error_description") or raw[:200].decode("utf-8", errors="replace"))
            message = f"oauth2: cannot fetch token: {status}"
            if error_code:
                message += f" {error_code}"
            if detail:
                message += f": {detail}"
            raise OAuthError(message, status=status, error_code=error_code)
        if not doc.get("access_token"):
            raise OAuthError("oauth2: server response missing access_token", status=status)

        expiry = None
        expires_in = doc.get("expires_in")
        if isinstance(expires_in, (int, float)) and expires_in > 0:
            expiry = _now_utc() + dt.timedelta(seconds=int(expires_in))
        logger.info("[TOKEN] %s grant succeeded", params["grant_type"])
        return OAuthToken(
            access_token=str(doc["access_token"]),
            token_type=str(doc.get("token_type") or "Bearer"),
            refresh_token=str(doc.get("refresh_token") or ""),
            expiry=expiry,
        )
