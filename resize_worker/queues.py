"""
Queue service access over SQS.

Receiving a message hides it for the visibility timeout; it is only removed
by an explicit delete with its receipt handle.
"""

from __future__ import annotations

import logging
from typing import List

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .exceptions import QueueError
from .job import QueueHandle, RawMessage

logger = logging.getLogger(__name__)

MAX_RECEIVE_COUNT = 10


def build_sqs_client(settings: Settings):
    settings.require_aws()
    session = boto3.session.Session()
    return session.client(
        service_name="sqs",
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        region_name=settings.aws_region,
        endpoint_url=settings.aws_endpoint_url,
    )


class SqsQueueClient:
    def __init__(self, client):
        self._client = client

    def resolve(self, name: str) -> QueueHandle:
        try:
            url = self._client.get_queue_url(QueueName=name)["QueueUrl"]
        except (BotoCoreError, ClientError) as exc:
            raise QueueError(f"Cannot resolve queue {name}: {exc}") from exc
        return QueueHandle(name=name, url=url)

    def receive(
        self,
        queue: QueueHandle,
        max_count: int = MAX_RECEIVE_COUNT,
        visibility_timeout: int = 120,
    ) -> List[RawMessage]:
        try:
            resp = self._client.receive_message(
                QueueUrl=queue.url,
                MaxNumberOfMessages=max_count,
                VisibilityTimeout=visibility_timeout,
            )
        except (BotoCoreError, ClientError) as exc:
            raise QueueError(f"Receive from {queue.name} failed: {exc}") from exc
        return [
            RawMessage(
                message_id=m["MessageId"],
                body=m["Body"],
                receipt_handle=m["ReceiptHandle"],
            )
            for m in resp.get("Messages", [])
        ]

    def delete(self, queue: QueueHandle, message: RawMessage) -> None:
        try:
            self._client.delete_message(QueueUrl=queue.url, ReceiptHandle=message.receipt_handle)
        except (BotoCoreError, ClientError) as exc:
            raise QueueError(f"Delete of {message.message_id} from {queue.name} failed: {exc}") from exc
