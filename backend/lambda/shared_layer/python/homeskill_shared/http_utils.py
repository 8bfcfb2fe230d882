"""homeskill_shared.http_utils — Outbound HTTP calls for profile lookup, OAuth and events.

Error statuses come back as a normal (status, body) result so callers decide
which statuses they accept. Every other failure (malformed URL, DNS, refused
connection, timeout, truncated body) raises urllib.error.URLError / OSError
for the caller to wrap.
"""

from __future__ import annotations

import http.client
import logging
import urllib.error
import urllib.request
from typing import Callable, Dict, Optional, Tuple

from homeskill_shared.config import HTTP_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

HttpRequester = Callable[..., Tuple[int, bytes]]


def _http_request(
    method: str,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    data: Optional[bytes] = None,
    timeout: float = HTTP_TIMEOUT_SECONDS,
) -> Tuple[int, bytes]:
    """Perform a request and return (status, body), reading the body to the end."""
    try:
        req = urllib.request.Request(url, method=method, data=data, headers=headers or {})
    except ValueError as exc:
        raise urllib.error.URLError(f"invalid url {url!r}: {exc}") from exc

    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return resp.status, resp.read()
    except urllib.error.HTTPError as exc:
        try:
            body = exc.read()
        except (http.client.HTTPException, OSError) as read_exc:
            raise urllib.error.URLError(f"failed to read {method} {url} body: {read_exc}") from read_exc
        logger.debug("%s %s returned %s", method, url, exc.code)
        return exc.code, body
    except (http.client.HTTPException, ValueError) as exc:
        raise urllib.error.URLError(f"failed to read {method} {url} response: {exc!r}") from exc


def _bearer_headers(token: str, content_type: str = "application/json") -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": content_type,
    }


def _accepted(status: int) -> bool:
    return status in (200, 202)
