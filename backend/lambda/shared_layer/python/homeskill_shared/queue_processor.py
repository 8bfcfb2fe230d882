"""homeskill_shared.queue_processor — Long-polls the relay queue and hands messages to the deferred handler.

Messages of a batch are handled one at a time in receive order. A message is
deleted only after its handling returned; a crash in between means the
message is delivered again, so handlers must tolerate repeats.

A decode or handling failure aborts the rest of the batch: the failed message
and the ones after it stay on the queue until their visibility timeout ends.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from homeskill_shared.aws_clients import _get_sqs
from homeskill_shared.config import DELETE_ON_SEND_ERROR, QUEUE_MAX_MESSAGES, QUEUE_WAIT_TIME_SECONDS
from homeskill_shared.errors import (
    MessageHandlingError,
    QueueError,
    SendError,
    SerializationError,
    SkillError,
    TokenPersistError,
)
from homeskill_shared.serialization import _loads
from homeskill_shared.types import Request

logger = logging.getLogger(__name__)


class QueueProcessor:
    """Reads and handles SQS messages produced by SQSRelayPublisher.

    `delete_on_send_error` decides what happens when a directive was handled
    but its response could not be delivered (SendError), or was delivered but
    the refreshed token could not be stored (TokenPersistError). Off: the
    message stays queued and the whole directive is handled again on
    redelivery. On: the failure is logged and the message is deleted.
    """

    def __init__(
        self,
        handler,
        queue_url: str,
        sqs=None,
        wait_time_seconds: int = QUEUE_WAIT_TIME_SECONDS,
        max_messages: int = QUEUE_MAX_MESSAGES,
        delete_on_send_error: bool = DELETE_ON_SEND_ERROR,
    ):
        self.handler = handler
        self.queue_url = queue_url
        self.wait_time_seconds = wait_time_seconds
        self.max_messages = max(1, min(10, int(max_messages)))
        self.delete_on_send_error = delete_on_send_error
        self._sqs = sqs

    @property
    def sqs(self):
        if self._sqs is None:
            self._sqs = _get_sqs()
        return self._sqs

    def process(self, stop_event: threading.Event) -> None:
        """Receive and handle messages until stop_event is set.

        Raises QueueError when receiving, decoding, handling or deleting fails;
        restarting is up to the caller (see run_until_stopped).
        """
        while not stop_event.is_set():
            try:
                resp = self.sqs.receive_message(
                    QueueUrl=self.queue_url,
                    WaitTimeSeconds=self.wait_time_seconds,
                    MaxNumberOfMessages=self.max_messages,
                )
            except (BotoCoreError, ClientError) as exc:
                raise QueueError(f"failed to read from sqs: {exc}") from exc

            for msg in resp.get("Messages") or []:
                self._process_message(msg)

    def _process_message(self, msg: Dict[str, Any]) -> None:
        sqs_id = msg.get("MessageId")
        receipt_handle = msg.get("ReceiptHandle")
        if not receipt_handle:
            raise MessageHandlingError(f"message {sqs_id} has no receipt handle", message_id=sqs_id)
        try:
            req = Request.from_dict(_loads(msg.get("Body") or ""))
        except SerializationError as exc:
            raise MessageHandlingError(f"failed to read message {sqs_id}: {exc}", message_id=sqs_id) from exc

        try:
            self.handler.handle_request(req)
        except (SendError, TokenPersistError) as exc:
            if not self.delete_on_send_error:
                raise MessageHandlingError(
                    f"failed to handle request {req.header.message_id}: {exc}", message_id=sqs_id
                ) from exc
            logger.error(
                "[ERROR] directive %s was handled but not completed, deleting anyway: %s",
                req.header.message_id,
                exc,
            )
        except Exception as exc:
            raise MessageHandlingError(
                f"failed to handle request {req.header.message_id}: {exc}", message_id=sqs_id
            ) from exc

        try:
            self.sqs.delete_message(QueueUrl=self.queue_url, ReceiptHandle=receipt_handle)
        except (BotoCoreError, ClientError) as exc:
            raise QueueError(f"failed to delete message {sqs_id}: {exc}") from exc
        logger.info("handled and deleted %s.%s directive %s", req.header.namespace, req.header.name, req.header.message_id)


def run_until_stopped(
    processor: QueueProcessor,
    stop_event: threading.Event,
    retry_delay: Optional[float] = None,
) -> None:
    """Keep the processor running, waiting `retry_delay` seconds after each failure.

    The delay defaults to the processor's long-poll wait. Setting stop_event
    ends the wait at once; an in-flight receive/handle/delete is allowed to
    finish first.
    """
    delay = processor.wait_time_seconds if retry_delay is None else retry_delay
    while not stop_event.is_set():
        try:
            processor.process(stop_event)
        except Exception as exc:
            if stop_event.is_set():
                logger.info("Terminating: %s", exc)
                break
            if isinstance(exc, SkillError):
                logger.error("[ERROR] Failed to process queue: %s", exc)
            else:
                logger.exception("[ERROR] Unexpected failure processing queue: %s", exc)
            stop_event.wait(delay)
