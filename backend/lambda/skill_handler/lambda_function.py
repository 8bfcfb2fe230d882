"""skill_handler/lambda_function.py

Smart home skill Lambda. Answers discovery and temperature state reports
directly, stores credentials on AcceptGrant, and defers power and percentage
directives: those are relayed to the SQS FIFO queue and acknowledged with a
DeferredResponse, and the sqs_agent posts the real response to the event
gateway once it has handled them.

Routes (by directive namespace):
    Alexa                      ReportState for the temperature sensor
    Alexa.Discovery            static endpoint list
    Alexa.Authorization        AcceptGrant token exchange
    Alexa.PowerController      relayed to SQS
    Alexa.PercentageController relayed to SQS

Environment variables:
    SQS_QUEUE_URL        relay queue (FIFO)
    S3_TOKEN_BUCKET      token bucket
    AUTH_CLIENT_ID       Login with Amazon client id
    AUTH_CLIENT_SECRET   Login with Amazon client secret
    SKILL_DEBUG          log requests and responses when set
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from homeskill_shared.config import (
    AUTH_CLIENT_ID,
    AUTH_CLIENT_SECRET,
    S3_TOKEN_BUCKET,
    SKILL_DEBUG,
    SQS_QUEUE_URL,
)
from homeskill_shared.debug import DebugTokenStore, debug_lambda_request_handler
from homeskill_shared.handlers import authorization_handler, deferred_relay_handler, static_discovery_handler
from homeskill_shared.oauth import OAuthClient
from homeskill_shared.profile import ProfileUserIDReader
from homeskill_shared.relay import SQSRelayPublisher
from homeskill_shared.responses import ResponseBuilder
from homeskill_shared.router import NamespaceMux
from homeskill_shared.serialization import _now_utc
from homeskill_shared.token_store import S3TokenStore
from homeskill_shared.types import (
    DISPLAY_CATEGORY_OTHER,
    DISPLAY_CATEGORY_SWITCH,
    DISPLAY_CATEGORY_TEMPERATURE_SENSOR,
    INTERFACE_PERCENTAGE_CONTROLLER,
    INTERFACE_POWER_CONTROLLER,
    INTERFACE_TEMPERATURE_SENSOR,
    NAMESPACE_ALEXA,
    NAMESPACE_AUTHORIZATION,
    NAMESPACE_DISCOVERY,
    NAMESPACE_PERCENTAGE_CONTROLLER,
    NAMESPACE_POWER_CONTROLLER,
    NAMESPACE_TEMPERATURE_SENSOR,
    ContextProperty,
    DiscoverCapability,
    DiscoverEndpoint,
    DiscoverProperties,
    DiscoverProperty,
    Request,
    Response,
    TemperatureValue,
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logger = logging.getLogger()
logger.setLevel(logging.INFO)

MANUFACTURER_NAME = "Homeskill"
TEMPERATURE_F = 75.0


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


def _capability(interface: str, prop: str, proactively_reported: bool) -> DiscoverCapability:
    return DiscoverCapability(
        interface=interface,
        properties=DiscoverProperties(
            supported=[DiscoverProperty(name=prop)],
            proactively_reported=proactively_reported,
            retrievable=True,
        ),
    )


def endpoints() -> List[DiscoverEndpoint]:
    return [
        DiscoverEndpoint(
            endpoint_id="temp-sensor-1",
            friendly_name="Home Temperature",
            description="Temp monitor",
            manufacturer_name=MANUFACTURER_NAME,
            display_categories=[DISPLAY_CATEGORY_TEMPERATURE_SENSOR],
            capabilities=[_capability(INTERFACE_TEMPERATURE_SENSOR, "temperature", False)],
        ),
        DiscoverEndpoint(
            endpoint_id="switch-1",
            friendly_name="Fan",
            description="Power switch for fan",
            manufacturer_name=MANUFACTURER_NAME,
            display_categories=[DISPLAY_CATEGORY_SWITCH],
            capabilities=[_capability(INTERFACE_POWER_CONTROLLER, "powerState", True)],
        ),
        DiscoverEndpoint(
            endpoint_id="window-1",
            friendly_name="Window",
            description="Window opener",
            manufacturer_name=MANUFACTURER_NAME,
            display_categories=[DISPLAY_CATEGORY_OTHER],
            capabilities=[_capability(INTERFACE_PERCENTAGE_CONTROLLER, "percentage", True)],
        ),
    ]


class TempReader:
    """Reports a fixed temperature."""

    def __init__(self, temperature: float, builder: ResponseBuilder, now=_now_utc):
        self.temperature = temperature
        self.builder = builder
        self.now = now

    def get_temperature(self, req: Request) -> Response:
        return self.builder.state_report_response(
            req,
            ContextProperty(
                namespace=NAMESPACE_TEMPERATURE_SENSOR,
                name="temperature",
                value=TemperatureValue(self.temperature).to_dict(),
                time_of_sample=self.now(),
                uncertainty_in_milliseconds=60000,
            ),
        )


# ---------------------------------------------------------------------------
# Wiring (module-level for container reuse)
# ---------------------------------------------------------------------------


def build_mux(
    relayer=None,
    token_store=None,
    user_id_reader=None,
    oauth_client: Optional[OAuthClient] = None,
    builder: Optional[ResponseBuilder] = None,
) -> NamespaceMux:
    builder = builder or ResponseBuilder()
    relayer = relayer or SQSRelayPublisher(SQS_QUEUE_URL)
    token_store = token_store or DebugTokenStore(S3TokenStore(S3_TOKEN_BUCKET))
    user_id_reader = user_id_reader or ProfileUserIDReader()
    oauth_client = oauth_client or OAuthClient(AUTH_CLIENT_ID, AUTH_CLIENT_SECRET)

    temp_reader = TempReader(TEMPERATURE_F, builder)
    relay = deferred_relay_handler(relayer, builder)

    mux = NamespaceMux()
    mux.register(NAMESPACE_POWER_CONTROLLER, relay)
    mux.register(NAMESPACE_PERCENTAGE_CONTROLLER, relay)
    mux.register(NAMESPACE_DISCOVERY, static_discovery_handler(builder, *endpoints()))
    mux.register(NAMESPACE_ALEXA, temp_reader.get_temperature)
    mux.register(
        NAMESPACE_AUTHORIZATION,
        authorization_handler(oauth_client, user_id_reader, token_store, builder),
    )
    return mux


_mux: Optional[NamespaceMux] = None


def _get_mux() -> NamespaceMux:
    global _mux
    if _mux is None:
        _mux = build_mux()
    return _mux


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------


def lambda_handler(event: Dict[str, Any], context: Any) -> Optional[Dict[str, Any]]:
    mux = _get_mux()
    if SKILL_DEBUG:
        return debug_lambda_request_handler(mux)(event, context)

    req = Request.from_dict(event)
    logger.info("[START] %s.%s %s", req.header.namespace, req.header.name, req.header.message_id)
    try:
        resp = mux.dispatch(req)
    except Exception as exc:
        logger.error("[ERROR] %s.%s failed: %s", req.header.namespace, req.header.name, exc)
        raise
    answer = resp.event.header.name if resp is not None else "nothing"
    logger.info(
        "[END] %s.%s answered with %s",
        req.header.namespace,
        req.header.name,
        answer,
    )
    return resp.to_dict() if resp is not None else None
