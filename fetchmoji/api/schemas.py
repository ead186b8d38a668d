"""
Request/response models for the HTTP API.
"""

from typing import List

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str
    db_ready: bool
    row_count: int


class SearchHit(BaseModel):
    rank: int
    emoji: str
    content: str
    distance: float


class SearchResponse(BaseModel):
    query: str
    results: List[SearchHit]


class ErrorResponse(BaseModel):
    error: str
    message: str
