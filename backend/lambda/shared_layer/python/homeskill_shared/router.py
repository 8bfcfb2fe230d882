"""homeskill_shared.router — Routes directives to handlers.

A handler is any callable taking a Request and returning a Response, or None
when the directive produces no response. Routers are handlers themselves, so
they nest: a NamespaceMux entry can be an EndpointMux, a name router, or a
debug wrapper around either.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from homeskill_shared.errors import HandlingError, UnexpectedDirective, UnroutedEndpoint, UnroutedNamespace
from homeskill_shared.types import Request, Response

logger = logging.getLogger(__name__)

Handler = Callable[[Request], Optional[Response]]


class NamespaceMux:
    """Dispatches on the exact header namespace. No prefix or wildcard matching."""

    def __init__(self) -> None:
        self._handlers: Dict[str, Handler] = {}

    def register(self, namespace: str, handler: Handler) -> None:
        self._handlers[namespace] = handler

    def namespaces(self) -> List[str]:
        return sorted(self._handlers)

    def dispatch(self, req: Request) -> Optional[Response]:
        handler = self._handlers.get(req.header.namespace)
        if handler is None:
            raise UnroutedNamespace(req.header.namespace)
        logger.debug("routing %s.%s (%s)", req.header.namespace, req.header.name, req.header.message_id)
        return handler(req)

    __call__ = dispatch


class EndpointMux:
    """Dispatches on the directive's endpoint id."""

    def __init__(self) -> None:
        self._handlers: Dict[str, Handler] = {}

    def register(self, endpoint_id: str, handler: Handler) -> None:
        self._handlers[endpoint_id] = handler

    def dispatch(self, req: Request) -> Optional[Response]:
        endpoint_id = req.endpoint.endpoint_id
        handler = self._handlers.get(endpoint_id)
        if handler is None:
            raise UnroutedEndpoint(endpoint_id)
        try:
            return handler(req)
        except Exception as exc:
            raise HandlingError(f"EndpointMux: failed to handle {endpoint_id}: {exc}") from exc

    __call__ = dispatch


def _name_router(controller: str, routes: Dict[str, Handler]) -> Handler:
    def route(req: Request) -> Optional[Response]:
        handler = routes.get(req.header.name)
        if handler is None:
            raise UnexpectedDirective(f"{controller}: unexpected name: {req.header.name}")
        return handler(req)

    return route


def power_controller_handler(turn_on: Handler, turn_off: Handler) -> Handler:
    """Route TurnOn / TurnOff directives."""
    return _name_router("PowerControllerHandler", {"TurnOn": turn_on, "TurnOff": turn_off})


def percentage_controller_handler(set_pct: Handler, adjust_pct: Handler) -> Handler:
    """Route SetPercentage / AdjustPercentage directives."""
    return _name_router(
        "PercentageControllerHandler",
        {"SetPercentage": set_pct, "AdjustPercentage": adjust_pct},
    )


def scene_controller_handler(activate: Handler, deactivate: Handler) -> Handler:
    """Route Activate / Deactivate directives."""
    return _name_router("SceneControllerHandler", {"Activate": activate, "Deactivate": deactivate})
