"""
High-level resize pipeline.

`process_operation` is the main entry point used by both the queue workers
and the HTTP API. It keeps orchestration simple:
fetch source -> resize -> store JPEG, followed by one completion log line.
"""

from __future__ import annotations

import logging

from .job import Operation
from .transform import DEFAULT_JPEG_QUALITY, OUTPUT_CONTENT_TYPE, resize_image_bytes

logger = logging.getLogger(__name__)


def process_operation(
    operation: Operation,
    store,
    worker_id: int = 0,
    quality: int = DEFAULT_JPEG_QUALITY,
) -> None:
    """
    Run one operation against the object store.

    Raises:
        FetchError, TransformError, StoreError: on the failing phase. The
            completion line is logged either way.
    """
    status = "failed"
    try:
        source = store.get(operation.source.bucket, operation.source.key)
        output = resize_image_bytes(
            source,
            operation.width,
            operation.height,
            operation.method,
            quality=quality,
        )
        store.put(
            operation.destination.bucket,
            operation.destination.key,
            output,
            OUTPUT_CONTENT_TYPE,
        )
        status = "ok"
    finally:
        logger.info("[job] worker=%d %s status=%s", worker_id, operation.describe(), status)
