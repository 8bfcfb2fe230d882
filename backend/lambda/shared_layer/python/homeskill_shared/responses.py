"""homeskill_shared.responses — Builds protocol-compliant response envelopes.

Every variant that is given a request copies its correlation token and endpoint
identity/scope into the event. Variants without request context leave the
event endpoint out entirely.
"""

from __future__ import annotations

import uuid
from typing import Any, Callable, Dict, Optional

from homeskill_shared.serialization import _dumps
from homeskill_shared.types import (
    NAMESPACE_ALEXA,
    NAMESPACE_AUTHORIZATION,
    NAMESPACE_DISCOVERY,
    PAYLOAD_VERSION,
    ContextProperty,
    DiscoverEndpoint,
    Event,
    Header,
    Request,
    Response,
    ResponseContext,
    ResponseEndpoint,
    Scope,
)


def uuid_message_id() -> str:
    """Generate a uuid suitable for use as a message id."""
    return str(uuid.uuid4())


def _endpoint_of(req: Request) -> ResponseEndpoint:
    scope = req.endpoint.scope
    return ResponseEndpoint(
        endpoint_id=req.endpoint.endpoint_id,
        scope=Scope(type=scope.type, token=scope.token),
    )


def _checked(payload: Any) -> Any:
    # Raises SerializationError now instead of when the response is sent.
    _dumps(payload)
    return payload


class ResponseBuilder:
    """Creates responses stamped with fresh message ids.

    `message_id` should return a unique id per call; it defaults to a random
    UUID and can be replaced with a fixed generator in tests.
    """

    def __init__(self, message_id: Optional[Callable[[], str]] = None):
        self.message_id = message_id or uuid_message_id

    def _header(self, namespace: str, name: str, req: Optional[Request] = None) -> Header:
        return Header(
            namespace=namespace,
            name=name,
            message_id=self.message_id(),
            correlation_token=req.header.correlation_token if req is not None else "",
            payload_version=PAYLOAD_VERSION,
        )

    def deferred_response(self, req: Request) -> Response:
        """Acknowledge a directive whose result will be posted to the event gateway later."""
        return Response(
            event=Event(header=self._header(NAMESPACE_ALEXA, "DeferredResponse", req), payload={}),
        )

    def discover_response(self, *endpoints: DiscoverEndpoint) -> Response:
        """Describe the available endpoints and their capabilities."""
        payload = _checked({"endpoints": [e.to_dict() for e in endpoints]})
        return Response(
            event=Event(header=self._header(NAMESPACE_DISCOVERY, "Discover.Response"), payload=payload),
        )

    def basic_error_response(self, req: Request, error_type: str, message: str) -> Response:
        payload = _checked({"type": error_type, "message": message})
        return self.custom_error_response(req, payload)

    def custom_error_response(self, req: Request, payload: Dict[str, Any]) -> Response:
        return Response(
            event=Event(
                header=self._header(req.header.namespace, "ErrorResponse", req),
                endpoint=_endpoint_of(req),
                payload=_checked(payload),
            ),
        )

    def state_report_response(self, req: Request, *properties: ContextProperty) -> Response:
        """Answer a ReportState directive with the current property values."""
        return Response(
            event=Event(
                header=self._header(NAMESPACE_ALEXA, "StateReport", req),
                endpoint=_endpoint_of(req),
                payload={},
            ),
            context=ResponseContext(properties=list(properties)),
        )

    def basic_response(self, req: Request, *properties: ContextProperty) -> Response:
        return Response(
            event=Event(
                header=self._header(NAMESPACE_ALEXA, "Response", req),
                endpoint=_endpoint_of(req),
                payload={},
            ),
            context=ResponseContext(properties=list(properties)),
        )

    def accept_grant_response(self) -> Response:
        return Response(
            event=Event(header=self._header(NAMESPACE_AUTHORIZATION, "AcceptGrant.Response"), payload={}),
        )
