"""homeskill_shared.debug — Optional logging wrappers around handlers and token stores.

Nothing here changes behavior; wrap a handler to see what it received and what
it answered. Credential fields are masked before anything is logged.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional

from homeskill_shared.router import Handler
from homeskill_shared.types import Request, Response

logger = logging.getLogger(__name__)

_SECRET_KEYS = frozenset({"token", "code", "access_token", "refresh_token", "client_secret"})


def _redact(doc: Any) -> Any:
    if isinstance(doc, dict):
        return {k: ("***" if k in _SECRET_KEYS and v else _redact(v)) for k, v in doc.items()}
    if isinstance(doc, list):
        return [_redact(v) for v in doc]
    return doc


def _dump(doc: Any) -> str:
    return json.dumps(_redact(doc), indent=2, default=str)


def request_debug_handler(handler: Handler) -> Handler:
    """Log the request before handing it on."""

    def handle(req: Request) -> Optional[Response]:
        logger.info("Debug request:\n%s", _dump(req.to_dict()))
        return handler(req)

    return handle


def response_debug_handler(handler: Handler) -> Handler:
    """Log the response, or the failure, of the wrapped handler."""

    def handle(req: Request) -> Optional[Response]:
        try:
            resp = handler(req)
        except Exception as exc:
            logger.info("Debug response: handler failed: %s", exc)
            raise
        logger.info("Debug response:\n%s", _dump(resp.to_dict() if resp is not None else None))
        return resp

    return handle


def debug_handler(handler: Handler) -> Handler:
    """Log both the request and the response of handler."""
    return response_debug_handler(request_debug_handler(handler))


def debug_lambda_request_handler(handler: Handler) -> Callable[[Dict[str, Any], Any], Optional[Dict[str, Any]]]:
    """Lambda entry adapter that logs the raw event before decoding it."""

    def lambda_handler(event: Dict[str, Any], context: Any) -> Optional[Dict[str, Any]]:
        logger.info("Debug request:\n%s", _dump(event))
        req = Request.from_dict(event)
        resp = response_debug_handler(handler)(req)
        return resp.to_dict() if resp is not None else None

    return lambda_handler


class DebugTokenStore:
    """Logs reads and writes of tokens; the tokens themselves are never logged."""

    def __init__(self, token_store):
        self.token_store = token_store

    def write(self, user_id: str, token) -> None:
        logger.info("Writing token for %s", user_id)
        self.token_store.write(user_id, token)

    def read(self, user_id: str):
        logger.info("Reading token for %s", user_id)
        return self.token_store.read(user_id)
