"""homeskill_shared.types — Smart home skill API requests and responses.

These mirror the smart home skill message reference:
https://developer.amazon.com/docs/smarthome/smart-home-skill-api-message-reference.html

Every type converts to and from its JSON document shape. Optional fields left
empty are omitted from the document rather than sent blank.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from homeskill_shared.errors import SerializationError
from homeskill_shared.serialization import _format_time, _parse_time

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

NAMESPACE_ALEXA = "Alexa"
NAMESPACE_AUTHORIZATION = "Alexa.Authorization"
NAMESPACE_DISCOVERY = "Alexa.Discovery"
NAMESPACE_POWER_CONTROLLER = "Alexa.PowerController"
NAMESPACE_PERCENTAGE_CONTROLLER = "Alexa.PercentageController"
NAMESPACE_SCENE_CONTROLLER = "Alexa.SceneController"
NAMESPACE_TEMPERATURE_SENSOR = "Alexa.TemperatureSensor"

INTERFACE_POWER_CONTROLLER = NAMESPACE_POWER_CONTROLLER
INTERFACE_PERCENTAGE_CONTROLLER = NAMESPACE_PERCENTAGE_CONTROLLER
INTERFACE_TEMPERATURE_SENSOR = NAMESPACE_TEMPERATURE_SENSOR

DISPLAY_CATEGORY_DOOR = "DOOR"
DISPLAY_CATEGORY_SWITCH = "SWITCH"
DISPLAY_CATEGORY_TEMPERATURE_SENSOR = "TEMPERATURE_SENSOR"
DISPLAY_CATEGORY_OTHER = "OTHER"

TEMPERATURE_SCALE_FAHRENHEIT = "FAHRENHEIT"
TEMPERATURE_SCALE_CELSIUS = "CELSIUS"

PAYLOAD_VERSION = "3"


def _require_dict(value: Any, what: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise SerializationError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _empty_payload() -> Dict[str, Any]:
    return {}


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@dataclass
class Header:
    namespace: str
    name: str
    message_id: str
    correlation_token: str = ""
    payload_version: str = PAYLOAD_VERSION

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "namespace": self.namespace,
            "name": self.name,
            "messageId": self.message_id,
        }
        if self.correlation_token:
            doc["correlationToken"] = self.correlation_token
        doc["payloadVersion"] = self.payload_version
        return doc

    @classmethod
    def from_dict(cls, data: Any) -> "Header":
        data = _require_dict(data, "header")
        return cls(
            namespace=str(data.get("namespace") or ""),
            name=str(data.get("name") or ""),
            message_id=str(data.get("messageId") or ""),
            correlation_token=str(data.get("correlationToken") or ""),
            payload_version=str(data.get("payloadVersion") or ""),
        )


@dataclass
class Scope:
    type: str = ""
    token: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "token": self.token}

    @classmethod
    def from_dict(cls, data: Any) -> "Scope":
        data = _require_dict(data, "scope")
        return cls(type=str(data.get("type") or ""), token=str(data.get("token") or ""))


@dataclass
class RequestEndpoint:
    scope: Scope = field(default_factory=Scope)
    endpoint_id: str = ""
    cookie: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"scope": self.scope.to_dict()}
        if self.endpoint_id:
            doc["endpointId"] = self.endpoint_id
        if self.cookie:
            doc["cookie"] = dict(self.cookie)
        return doc

    @classmethod
    def from_dict(cls, data: Any) -> "RequestEndpoint":
        data = _require_dict(data, "endpoint")
        cookie = _require_dict(data.get("cookie"), "cookie")
        return cls(
            scope=Scope.from_dict(data.get("scope")),
            endpoint_id=str(data.get("endpointId") or ""),
            cookie={str(k): str(v) for k, v in cookie.items()},
        )


@dataclass
class Request:
    """An inbound directive. Its identity is header.message_id."""

    header: Header
    endpoint: RequestEndpoint = field(default_factory=RequestEndpoint)
    payload: Any = field(default_factory=_empty_payload)

    @property
    def namespace(self) -> str:
        return self.header.namespace

    @property
    def name(self) -> str:
        return self.header.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "directive": {
                "header": self.header.to_dict(),
                "endpoint": self.endpoint.to_dict(),
                "payload": self.payload,
            }
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Request":
        data = _require_dict(data, "request")
        directive = data.get("directive")
        if not isinstance(directive, dict):
            raise SerializationError("request is missing its directive")
        payload = directive.get("payload")
        return cls(
            header=Header.from_dict(directive.get("header")),
            endpoint=RequestEndpoint.from_dict(directive.get("endpoint")),
            payload={} if payload is None else payload,
        )


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


@dataclass
class ResponseEndpoint:
    endpoint_id: str = ""
    cookie: Dict[str, str] = field(default_factory=dict)
    scope: Scope = field(default_factory=Scope)

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {}
        if self.endpoint_id:
            doc["endpointId"] = self.endpoint_id
        if self.cookie:
            doc["cookie"] = dict(self.cookie)
        doc["scope"] = self.scope.to_dict()
        return doc

    @classmethod
    def from_dict(cls, data: Any) -> "ResponseEndpoint":
        data = _require_dict(data, "endpoint")
        cookie = _require_dict(data.get("cookie"), "cookie")
        return cls(
            endpoint_id=str(data.get("endpointId") or ""),
            cookie={str(k): str(v) for k, v in cookie.items()},
            scope=Scope.from_dict(data.get("scope")),
        )


@dataclass
class ContextProperty:
    """A reported property value with its sample time and uncertainty."""

    namespace: str
    name: str
    value: Any
    time_of_sample: dt.datetime
    uncertainty_in_milliseconds: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "namespace": self.namespace,
            "name": self.name,
            "value": self.value,
            "timeOfSample": _format_time(self.time_of_sample),
            "uncertaintyInMilliseconds": int(self.uncertainty_in_milliseconds),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ContextProperty":
        data = _require_dict(data, "property")
        sampled = _parse_time(data.get("timeOfSample"))
        return cls(
            namespace=str(data.get("namespace") or ""),
            name=str(data.get("name") or ""),
            value=data.get("value"),
            time_of_sample=sampled or dt.datetime.fromtimestamp(0, dt.timezone.utc),
            uncertainty_in_milliseconds=int(data.get("uncertaintyInMilliseconds") or 0),
        )


@dataclass
class ResponseContext:
    properties: List[ContextProperty] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        if not self.properties:
            return {}
        return {"properties": [p.to_dict() for p in self.properties]}

    @classmethod
    def from_dict(cls, data: Any) -> "ResponseContext":
        data = _require_dict(data, "context")
        return cls(properties=[ContextProperty.from_dict(p) for p in data.get("properties") or []])


@dataclass
class Event:
    header: Header
    endpoint: Optional[ResponseEndpoint] = None
    payload: Any = field(default_factory=_empty_payload)

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"header": self.header.to_dict()}
        if self.endpoint is not None:
            doc["endpoint"] = self.endpoint.to_dict()
        doc["payload"] = self.payload
        return doc

    @classmethod
    def from_dict(cls, data: Any) -> "Event":
        data = _require_dict(data, "event")
        endpoint = data.get("endpoint")
        payload = data.get("payload")
        return cls(
            header=Header.from_dict(data.get("header")),
            endpoint=ResponseEndpoint.from_dict(endpoint) if endpoint is not None else None,
            payload={} if payload is None else payload,
        )


@dataclass
class Response:
    event: Event
    context: Optional[ResponseContext] = None

    @property
    def properties(self) -> List[ContextProperty]:
        return list(self.context.properties) if self.context else []

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {}
        if self.context is not None:
            doc["context"] = self.context.to_dict()
        doc["event"] = self.event.to_dict()
        return doc

    @classmethod
    def from_dict(cls, data: Any) -> "Response":
        data = _require_dict(data, "response")
        context = data.get("context")
        return cls(
            event=Event.from_dict(data.get("event")),
            context=ResponseContext.from_dict(context) if context is not None else None,
        )


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


@dataclass
class DiscoverProperty:
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name}


@dataclass
class DiscoverProperties:
    supported: List[DiscoverProperty] = field(default_factory=list)
    proactively_reported: bool = False
    retrievable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {}
        if self.supported:
            doc["supported"] = [p.to_dict() for p in self.supported]
        doc["proactivelyReported"] = self.proactively_reported
        doc["retrievable"] = self.retrievable
        return doc


@dataclass
class DiscoverCapability:
    interface: str
    type: str = "AlexaInterface"
    version: str = PAYLOAD_VERSION
    properties: Optional[DiscoverProperties] = None

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "type": self.type,
            "interface": self.interface,
            "version": self.version,
        }
        if self.properties is not None:
            doc["properties"] = self.properties.to_dict()
        return doc


@dataclass
class DiscoverEndpoint:
    endpoint_id: str
    friendly_name: str
    manufacturer_name: str = ""
    description: str = ""
    display_categories: List[str] = field(default_factory=list)
    capabilities: List[DiscoverCapability] = field(default_factory=list)
    cookie: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "endpointId": self.endpoint_id,
            "manufacturerName": self.manufacturer_name,
            "friendlyName": self.friendly_name,
            "description": self.description,
            "displayCategories": list(self.display_categories),
        }
        if self.cookie:
            doc["cookie"] = dict(self.cookie)
        doc["capabilities"] = [c.to_dict() for c in self.capabilities]
        return doc


# ---------------------------------------------------------------------------
# Directive payloads
# ---------------------------------------------------------------------------


@dataclass
class AcceptGrantPayload:
    grant_type: str
    code: str
    grantee_type: str
    grantee_token: str

    @classmethod
    def from_dict(cls, data: Any) -> "AcceptGrantPayload":
        data = _require_dict(data, "payload")
        grant = _require_dict(data.get("grant"), "grant")
        grantee = _require_dict(data.get("grantee"), "grantee")
        code = str(grant.get("code") or "")
        if not code:
            raise SerializationError("AcceptGrant payload is missing grant.code")
        return cls(
            grant_type=str(grant.get("type") or ""),
            code=code,
            grantee_type=str(grantee.get("type") or ""),
            grantee_token=str(grantee.get("token") or ""),
        )


@dataclass
class TemperatureValue:
    value: float
    scale: str = TEMPERATURE_SCALE_FAHRENHEIT

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "scale": self.scale}


def _int_field(data: Dict[str, Any], key: str) -> int:
    raw = data.get(key)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise SerializationError(f"payload field {key!r} must be a number")
    return int(raw)


@dataclass
class SetPercentagePayload:
    percentage: int

    @classmethod
    def from_dict(cls, data: Any) -> "SetPercentagePayload":
        return cls(percentage=_int_field(_require_dict(data, "payload"), "percentage"))


@dataclass
class AdjustPercentagePayload:
    percentage_delta: int

    @classmethod
    def from_dict(cls, data: Any) -> "AdjustPercentagePayload":
        return cls(percentage_delta=_int_field(_require_dict(data, "payload"), "percentageDelta"))
