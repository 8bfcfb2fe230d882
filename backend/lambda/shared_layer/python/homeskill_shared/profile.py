"""homeskill_shared.profile — Resolves a bearer token to the user's stable id.

The profile endpoint also returns the user's name and email. Only the user id
is kept.
"""

from __future__ import annotations

import urllib.error
from typing import Optional

from homeskill_shared.config import LWA_PROFILE_URL
from homeskill_shared.errors import ProfileLookupError, SerializationError
from homeskill_shared.http_utils import HttpRequester, _accepted, _bearer_headers, _http_request
from homeskill_shared.serialization import _loads


class ProfileUserIDReader:
    def __init__(self, http_request: Optional[HttpRequester] = None, profile_url: str = LWA_PROFILE_URL):
        self._http_request = http_request or _http_request
        self.profile_url = profile_url

    def read(self, bearer_token: str) -> str:
        try:
            status, body = self._http_request("GET", self.profile_url, headers=_bearer_headers(bearer_token))
        except (urllib.error.URLError, OSError) as exc:
            raise ProfileLookupError(f"failed to perform profile request: {exc}") from exc

        if not _accepted(status):
            raise ProfileLookupError(f"profile response unexpected status code: {status}")

        try:
            profile = _loads(body)
        except SerializationError as exc:
            raise ProfileLookupError(f"failed to unmarshal profile data: {exc}") from exc

        user_id = profile.get("user_id") if isinstance(profile, dict) else None
        if not user_id:
            raise ProfileLookupError("profile response has no user_id")
        return str(user_id)

    __call__ = read
