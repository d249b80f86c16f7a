"""
FastAPI layer running a single resize job inline.

Endpoints:
 - GET /health
 - POST /   (body: one job payload; executed as worker 0)
"""

from __future__ import annotations

from functools import lru_cache
import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from . import config
from .exceptions import JobDecodeError, JobError
from .job import Operation
from .pipeline import process_operation
from .storage import S3ObjectStore, build_s3_client

logger = logging.getLogger(__name__)

app = FastAPI(title="Resize Worker", version="0.1.0")


class ResizeResponse(BaseModel):
    status: str
    bucket: str
    key: str


@lru_cache()
def get_object_store() -> S3ObjectStore:
    return S3ObjectStore(build_s3_client(config.get_settings()))


def get_quality() -> int:
    return config.get_settings().jpeg_quality


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/", response_model=ResizeResponse)
async def handle_message(
    request: Request,
    store=Depends(get_object_store),
    quality: int = Depends(get_quality),
):
    body = await request.body()
    try:
        operation = Operation.from_payload(body)
    except JobDecodeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        await run_in_threadpool(process_operation, operation, store, 0, quality)
    except JobError as exc:
        logger.error("Inline job %s failed: %s", operation.describe(), exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return ResizeResponse(status="ok", bucket=operation.destination.bucket, key=operation.destination.key)
