"""homeskill_shared.errors — Exception kinds raised across the skill and the deferred agent."""
from __future__ import annotations

from typing import Optional


class SkillError(Exception):
    """Base class for every failure raised by homeskill_shared."""


class UnroutedNamespace(SkillError):
    """No handler is registered for the directive's namespace."""

    def __init__(self, namespace: str):
        super().__init__(f"NamespaceMux: unhandled namespace: {namespace}")
        self.namespace = namespace


class UnroutedEndpoint(SkillError):
    """No handler is registered for the directive's endpoint id."""

    def __init__(self, endpoint_id: str):
        super().__init__(f"EndpointMux: unhandled endpoint: {endpoint_id}")
        self.endpoint_id = endpoint_id


class UnexpectedDirective(SkillError):
    """A controller received a directive name it does not implement."""


class SerializationError(SkillError):
    """A request, response, payload or token could not be encoded or decoded."""


class PublishError(SkillError):
    """The relay queue rejected or failed to accept a directive."""


class QueueError(SkillError):
    """Receiving from or deleting on the relay queue failed."""


class MessageHandlingError(QueueError):
    """A received message could not be decoded or handled; its batch is aborted."""

    def __init__(self, message: str, message_id: Optional[str] = None):
        super().__init__(message)
        self.message_id = message_id


class HandlingError(SkillError):
    """The deferred directive itself failed; no response was produced."""


class SendError(SkillError):
    """The directive was handled but its response could not be delivered."""


class TokenPersistError(SkillError):
    """The event was delivered but the refreshed token could not be stored."""


class TokenStoreError(SkillError):
    """Token storage failed for a reason other than the token being absent."""


class ProfileLookupError(SkillError):
    """The profile endpoint did not yield a user id for a bearer token."""


class OAuthError(SkillError):
    """The OAuth token endpoint rejected a grant exchange or refresh."""

    def __init__(self, message: str, status: Optional[int] = None, error_code: str = ""):
        super().__init__(message)
        self.status = status
        self.error_code = error_code
