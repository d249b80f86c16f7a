"""
Job descriptors: the wire payload and the queue message it arrives in.

Payload format::

    {"from": {"bucket": "b1", "key": "a.png"},
     "to": {"bucket": "b2", "key": "a.jpg"},
     "method": "Bilinear", "width": 100, "height": 50}

Unknown fields are ignored; a missing or unrecognized method resolves to
Lanczos3.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import JobDecodeError
from .transform import DEFAULT_METHOD, ResizeMethod, resolve_method


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    bucket: str
    key: str

    def __str__(self) -> str:
        return f"{self.bucket}/{self.key}"


class Operation(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source: Location = Field(..., alias="from")
    destination: Location = Field(..., alias="to")
    method: ResizeMethod = DEFAULT_METHOD
    width: int = Field(0, ge=0, strict=True)
    height: int = Field(0, ge=0, strict=True)

    @field_validator("method", mode="before")
    @classmethod
    def default_unknown_method(cls, v) -> ResizeMethod:
        return resolve_method(v)

    @classmethod
    def from_payload(cls, payload: Union[str, bytes]) -> "Operation":
        """
        Decode a JSON job payload.

        Raises:
            JobDecodeError: when the payload is not JSON or fails validation.
        """
        try:
            return cls.model_validate_json(payload)
        except ValidationError as exc:
            raise JobDecodeError(f"invalid job payload: {exc}") from exc

    def describe(self) -> str:
        return f"{self.source} -> {self.destination} ({self.width}x{self.height}) {self.method.value}"


@dataclass(frozen=True)
class QueueHandle:
    """A resolved source queue."""

    name: str
    url: str


@dataclass(frozen=True)
class RawMessage:
    message_id: str
    body: str
    receipt_handle: str


@dataclass(frozen=True)
class Job:
    """A received message paired with the queue it must be deleted from."""

    message: RawMessage
    queue: QueueHandle
