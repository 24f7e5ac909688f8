"""Shared response envelopes for the scribe API."""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """JSON envelope wrapping every successful response."""

    data: T


class StatusMessage(BaseModel):
    """Plain acknowledgement payload for actions without a resource body."""

    status: str
    detail: str | None = None
