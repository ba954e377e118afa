"""
Pydantic models for the collection service.

Request bodies carry a collection (JSON array or object) plus the name of a
registered callable; responses share one envelope.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .config import get_settings

Collection = Union[List[Any], Dict[str, Any]]


class PredicateOperation(str, Enum):
    """Operations that take a collection and one named callable."""
    FILTER = "filter"
    REJECT = "reject"
    MAP = "map"
    EVERY = "every"
    SOME = "some"


class CollectionRequest(BaseModel):
    """Collection plus an optional callable name"""
    collection: Collection = Field(
        ...,
        description="JSON array (sequence) or object (mapping) to process"
    )
    callable: Optional[str] = Field(
        None,
        description="Name of a registered predicate, transform or reducer",
        examples=["is_even"]
    )

    @field_validator('callable')
    @classmethod
    def validate_callable(cls, v):
        """Strip whitespace; an empty name means 'use the default'"""
        if v is None:
            return v
        v = v.strip()
        return v or None

    @model_validator(mode='after')
    def check_collection_size(self):
        """Reject collections larger than the configured limit"""
        limit = get_settings().max_collection_size
        if len(self.collection) > limit:
            raise ValueError(
                f"Collection has {len(self.collection)} items; the limit is {limit}"
            )
        return self


class ReduceRequest(CollectionRequest):
    """Reduce with a named reducer and an optional seed"""
    callable: str = Field(
        ...,
        description="Name of a registered reducer",
        examples=["add"]
    )
    seed: Optional[Any] = Field(
        None,
        description="Starting accumulator; when omitted the first element is used"
    )

    @property
    def has_seed(self) -> bool:
        return "seed" in self.model_fields_set


class SortByRequest(CollectionRequest):
    """Sort by a field name or by a registered transform"""
    key: Optional[str] = Field(
        None,
        description="Field to sort objects by; takes precedence over callable"
    )


class PluckRequest(CollectionRequest):
    """Read one field from every item"""
    key: str = Field(..., min_length=1, description="Field to read")


class ShuffleRequest(CollectionRequest):
    """Shuffle a sequence"""
    collection: List[Any] = Field(..., description="Sequence to shuffle")
    seed: Optional[int] = Field(
        None,
        description="RNG seed for a reproducible order; overrides the configured seed"
    )


class CollectionResponse(BaseModel):
    """Result envelope for every collection operation"""
    ok: bool = Field(True, description="Request success status")
    operation: str = Field(..., description="Operation that produced the result")
    result: Any = Field(None, description="Operation result")
    input_size: int = Field(..., ge=0, description="Number of elements in the input")
    processing_time_ms: float = Field(..., ge=0, description="Processing time in milliseconds")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ok": True,
                "operation": "filter",
                "result": [2, 4, 6],
                "input_size": 6,
                "processing_time_ms": 0.04
            }
        }
    )


class CallablesResponse(BaseModel):
    """Registered callable names by kind"""
    callables: Dict[str, List[str]] = Field(..., description="Names grouped by kind")


class CacheInfo(BaseModel):
    """Memoization cache counters"""
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    size: int = Field(..., ge=0)


class StatsResponse(BaseModel):
    """Service statistics"""
    uptime_seconds: float = Field(..., ge=0, description="Service uptime in seconds")
    requests_processed: int = Field(..., ge=0, description="Collection requests handled")
    caches: Dict[str, CacheInfo] = Field(..., description="Memoization caches by function")


class HealthCheckResponse(BaseModel):
    """Health probe result."""
    status: str = Field(..., description="Health status")
    timestamp: datetime = Field(..., description="Health check timestamp")
    checks: Dict[str, bool] = Field(..., description="Individual health check results")
    version: Optional[str] = Field(None, description="Application version")


class ErrorResponse(BaseModel):
    """Standard error envelope."""
    ok: bool = Field(False, description="Request success status")
    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    error_type: Optional[str] = Field(None, description="Error type/category")
    details: Optional[Dict[str, Any]] = Field(None, description="Error details")
    timestamp: datetime = Field(..., description="Error timestamp")
