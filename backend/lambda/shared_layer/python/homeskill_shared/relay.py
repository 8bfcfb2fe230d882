"""homeskill_shared.relay — Publishes directives to the SQS FIFO queue for deferred handling.

The request's message id doubles as the SQS deduplication id, so a platform
retry of the same directive inside the queue's deduplication window is
dropped by SQS. Duplicate detection is left to the queue entirely.
"""

from __future__ import annotations

import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from homeskill_shared.aws_clients import _get_sqs
from homeskill_shared.config import RELAY_MESSAGE_GROUP_ID
from homeskill_shared.errors import PublishError, SerializationError
from homeskill_shared.serialization import _dumps
from homeskill_shared.types import Request

logger = logging.getLogger(__name__)


class SQSRelayPublisher:
    """Relays a request by sending it, as JSON, to an SQS FIFO queue."""

    def __init__(self, queue_url: str, sqs=None, group_id: str = RELAY_MESSAGE_GROUP_ID):
        self.queue_url = queue_url
        self.group_id = group_id
        self._sqs = sqs

    @property
    def sqs(self):
        if self._sqs is None:
            self._sqs = _get_sqs()
        return self._sqs

    def relay(self, req: Request) -> Optional[str]:
        """Queue the request; returns the SQS message id."""
        try:
            body = _dumps(req.to_dict())
        except SerializationError as exc:
            raise SerializationError(f"sqsrelay: failed to marshal request: {exc}") from exc

        try:
            resp = self.sqs.send_message(
                QueueUrl=self.queue_url,
                MessageBody=body,
                MessageGroupId=self.group_id,
                MessageDeduplicationId=req.header.message_id,
            )
        except (BotoCoreError, ClientError) as exc:
            raise PublishError(f"sqsrelay: failed to send request to sqs: {exc}") from exc

        message_id = (resp or {}).get("MessageId")
        logger.info(
            "[RELAY] queued %s.%s directive %s as %s",
            req.header.namespace,
            req.header.name,
            req.header.message_id,
            message_id,
        )
        return message_id

    __call__ = relay
