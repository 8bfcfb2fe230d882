"""test_responses.py — ResponseBuilder envelopes and request/response documents."""

from __future__ import annotations

import datetime as dt
import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "python"))

from homeskill_shared.errors import SerializationError
from homeskill_shared.responses import ResponseBuilder, uuid_message_id
from homeskill_shared.types import (
    NAMESPACE_POWER_CONTROLLER,
    ContextProperty,
    DiscoverCapability,
    DiscoverEndpoint,
    Header,
    Request,
    RequestEndpoint,
    Response,
    Scope,
)

MESSAGE_ID = "843cf5d3-1923-4508-bc5e-8d30da3e593b"
SAMPLED_AT = dt.datetime(2018, 8, 20, 5, 57, 0, tzinfo=dt.timezone.utc)


def _request(namespace=NAMESPACE_POWER_CONTROLLER, name="TurnOn", correlation_token="corr-1"):
    return Request(
        header=Header(
            namespace=namespace,
            name=name,
            message_id="msg-in-1",
            correlation_token=correlation_token,
        ),
        endpoint=RequestEndpoint(
            scope=Scope(type="BearerToken", token="bearer-1"),
            endpoint_id="switch-1",
            cookie={"room": "den"},
        ),
    )


def _builder():
    return ResponseBuilder(message_id=lambda: MESSAGE_ID)


class ResponseBuilderTests(unittest.TestCase):
    def test_deferred_response_copies_correlation_token(self):
        resp = _builder().deferred_response(_request())
        doc = resp.to_dict()

        self.assertNotIn("context", doc)
        self.assertEqual(doc["event"]["header"], {
            "namespace": "Alexa",
            "name": "DeferredResponse",
            "messageId": MESSAGE_ID,
            "correlationToken": "corr-1",
            "payloadVersion": "3",
        })
        self.assertNotIn("endpoint", doc["event"])
        self.assertEqual(doc["event"]["payload"], {})

    def test_basic_response_copies_endpoint_identity(self):
        prop = ContextProperty(
            namespace=NAMESPACE_POWER_CONTROLLER,
            name="powerState",
            value="ON",
            time_of_sample=SAMPLED_AT,
            uncertainty_in_milliseconds=500,
        )
        resp = _builder().basic_response(_request(), prop)
        doc = resp.to_dict()

        self.assertEqual(list(doc), ["context", "event"])
        self.assertEqual(doc["event"]["header"]["name"], "Response")
        self.assertEqual(doc["event"]["header"]["correlationToken"], "corr-1")
        self.assertEqual(doc["event"]["endpoint"], {
            "endpointId": "switch-1",
            "scope": {"type": "BearerToken", "token": "bearer-1"},
        })
        self.assertEqual(doc["context"]["properties"][0]["timeOfSample"], "2018-08-20T05:57:00Z")
        self.assertEqual(resp.properties, [prop])

    def test_state_report_without_properties_has_empty_context(self):
        doc = _builder().state_report_response(_request(name="ReportState")).to_dict()
        self.assertEqual(doc["context"], {})
        self.assertEqual(doc["event"]["header"]["name"], "StateReport")

    def test_every_response_gets_a_fresh_message_id(self):
        builder = ResponseBuilder()
        first = builder.deferred_response(_request())
        second = builder.deferred_response(_request())
        self.assertNotEqual(first.event.header.message_id, second.event.header.message_id)

    def test_error_response_keeps_request_namespace(self):
        resp = _builder().basic_error_response(_request(), "ENDPOINT_UNREACHABLE", "offline")
        doc = resp.to_dict()
        self.assertEqual(doc["event"]["header"]["namespace"], NAMESPACE_POWER_CONTROLLER)
        self.assertEqual(doc["event"]["header"]["name"], "ErrorResponse")
        self.assertEqual(doc["event"]["payload"], {"type": "ENDPOINT_UNREACHABLE", "message": "offline"})
        self.assertEqual(doc["event"]["header"]["correlationToken"], "corr-1")

    def test_custom_error_response_rejects_unserializable_payload(self):
        with self.assertRaises(SerializationError):
            _builder().custom_error_response(_request(), {"detail": object()})

    def test_discover_response(self):
        endpoint = DiscoverEndpoint(
            endpoint_id="switch-1",
            friendly_name="Fan",
            manufacturer_name="Homeskill",
            description="Power switch for fan",
            display_categories=["SWITCH"],
            capabilities=[DiscoverCapability(interface=NAMESPACE_POWER_CONTROLLER)],
        )
        doc = _builder().discover_response(endpoint).to_dict()

        self.assertEqual(doc["event"]["header"]["namespace"], "Alexa.Discovery")
        self.assertEqual(doc["event"]["header"]["name"], "Discover.Response")
        self.assertNotIn("correlationToken", doc["event"]["header"])
        self.assertNotIn("endpoint", doc["event"])
        self.assertEqual(doc["event"]["payload"]["endpoints"][0]["capabilities"], [
            {"type": "AlexaInterface", "interface": NAMESPACE_POWER_CONTROLLER, "version": "3"},
        ])

    def test_accept_grant_response(self):
        doc = _builder().accept_grant_response().to_dict()
        self.assertEqual(doc, {
            "event": {
                "header": {
                    "namespace": "Alexa.Authorization",
                    "name": "AcceptGrant.Response",
                    "messageId": MESSAGE_ID,
                    "payloadVersion": "3",
                },
                "payload": {},
            }
        })

    def test_uuid_message_id(self):
        self.assertEqual(len(uuid_message_id()), 36)


class DocumentTests(unittest.TestCase):
    def test_request_from_dict(self):
        req = Request.from_dict({
            "directive": {
                "header": {
                    "namespace": "Alexa.PercentageController",
                    "name": "SetPercentage",
                    "payloadVersion": "3",
                    "messageId": "abc",
                    "correlationToken": "xyz",
                },
                "endpoint": {
                    "scope": {"type": "BearerToken", "token": "t"},
                    "endpointId": "window-1",
                    "cookie": {},
                },
                "payload": {"percentage": 74},
            }
        })
        self.assertEqual(req.namespace, "Alexa.PercentageController")
        self.assertEqual(req.name, "SetPercentage")
        self.assertEqual(req.header.correlation_token, "xyz")
        self.assertEqual(req.endpoint.endpoint_id, "window-1")
        self.assertEqual(req.payload, {"percentage": 74})

    def test_request_without_directive_is_rejected(self):
        with self.assertRaises(SerializationError):
            Request.from_dict({"header": {}})

    def test_request_document_survives_the_queue(self):
        req = _request()
        self.assertEqual(Request.from_dict(req.to_dict()), req)

    def test_response_from_dict(self):
        original = _builder().basic_response(_request())
        parsed = Response.from_dict(original.to_dict())
        self.assertEqual(parsed.event.header, original.event.header)
        self.assertEqual(parsed.event.endpoint.scope.token, "bearer-1")


if __name__ == "__main__":
    unittest.main()
