"""
Object store access over S3 (or any S3-compatible endpoint).

The store holds no per-job state; one instance is shared by every worker.
"""

from __future__ import annotations

import logging

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .exceptions import FetchError, StoreError

logger = logging.getLogger(__name__)


def build_s3_client(settings: Settings):
    settings.require_aws()
    session = boto3.session.Session()
    return session.client(
        service_name="s3",
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        region_name=settings.aws_region,
        endpoint_url=settings.aws_endpoint_url,
        config=BotoConfig(signature_version="s3v4"),
    )


class S3ObjectStore:
    """Get/put named blobs by bucket and key."""

    def __init__(self, client):
        self._client = client

    def get(self, bucket: str, key: str) -> bytes:
        try:
            resp = self._client.get_object(Bucket=bucket, Key=key)
            return resp["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            raise FetchError(f"Failed to get {bucket}/{key}: {exc}") from exc

    def put(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        try:
            self._client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(f"Failed to put {bucket}/{key}: {exc}") from exc
        logger.debug("Stored %d bytes at %s/%s", len(data), bucket, key)
