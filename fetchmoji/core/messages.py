"""
Inference worker message protocol.

Inbound:  {"type": "preload", "noCache"?}, {"type": "dispose"}, {"text": str, "noCache"?}
Outbound: {"status": "initiate" | "ready" | "complete" | "disposed" | "error", ...}
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class PreloadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["preload"] = "preload"
    no_cache: Optional[bool] = Field(default=False, alias="noCache")


class DisposeRequest(BaseModel):
    type: Literal["dispose"] = "dispose"


class EmbedRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    no_cache: Optional[bool] = Field(default=False, alias="noCache")


WorkerRequest = Union[PreloadRequest, DisposeRequest, EmbedRequest]


class WorkerMessage(BaseModel):
    """Any message posted by the worker; unknown fields are kept."""
    model_config = ConfigDict(extra="allow")

    status: Optional[str] = None
    embedding: Optional[List[float]] = None
    error: Optional[str] = None


def parse_request(data: dict) -> WorkerRequest:
    """Parse an inbound worker message."""
    if data.get("type") == "preload":
        return PreloadRequest.model_validate(data)
    if data.get("type") == "dispose":
        return DisposeRequest.model_validate(data)
    return EmbedRequest.model_validate(data)


def parse_message(data) -> WorkerMessage:
    """Parse an outbound worker message."""
    if isinstance(data, WorkerMessage):
        return data
    return WorkerMessage.model_validate(data or {})


def request_payload(request: WorkerRequest) -> dict:
    """Serialize a request with its wire field names."""
    return request.model_dump(by_alias=True)
