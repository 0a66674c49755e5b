"""Models for the ArM5 tools sequence API."""

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from datetime import datetime


MAP_OPERATIONS = {"add", "multiply", "square", "negate", "index"}
PREDICATES = {"even", "odd", "gt", "lt", "eq", "divisible_by", "any"}
OPERAND_REQUIRED = {"add", "multiply", "gt", "lt", "eq", "divisible_by"}
MAX_FLAT_MAP_COUNT = 10000


class SequenceOperation(BaseModel):
    """One lazy chain operation (map, filter, take, drop, flat_map)."""
    type: Literal["map", "filter", "take", "drop", "flat_map"] = Field(
        ...,
        description="Chain operation to apply"
    )
    operation: Optional[str] = Field(
        None,
        description="Mapper name for map operations"
    )
    predicate: Optional[str] = Field(
        None,
        description="Predicate name for filter operations"
    )
    operand: Optional[Union[int, float]] = Field(
        None,
        description="Operand used by the mapper or predicate"
    )
    count: Optional[int] = Field(
        None,
        description="Element count for take, drop and flat_map",
        ge=0
    )

    @model_validator(mode='after')
    def validate_operation_fields(self):
        """Each operation type needs its own arguments."""
        if self.type == "map":
            if self.operation not in MAP_OPERATIONS:
                raise ValueError(f"map requires operation in {sorted(MAP_OPERATIONS)}")
            if self.operation in OPERAND_REQUIRED and self.operand is None:
                raise ValueError(f"map operation '{self.operation}' requires an operand")
        elif self.type == "filter":
            _check_predicate(self.predicate, self.operand)
        elif self.type in ("take", "drop") and self.count is None:
            raise ValueError(f"{self.type} requires a count")
        elif self.type == "flat_map" and self.count is not None and self.count > MAX_FLAT_MAP_COUNT:
            raise ValueError(f"flat_map count must not exceed {MAX_FLAT_MAP_COUNT}")
        return self

    def to_op(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class SequenceQuery(BaseModel):
    """Short-circuiting terminal query (find, some, every)."""
    type: Literal["find", "some", "every"] = Field(..., description="Query kind")
    predicate: str = Field(..., description="Predicate name")
    operand: Optional[Union[int, float]] = Field(None, description="Predicate operand")

    @model_validator(mode='after')
    def validate_predicate(self):
        _check_predicate(self.predicate, self.operand)
        return self

    def to_op(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


def _check_predicate(predicate: Optional[str], operand: Optional[Union[int, float]]) -> None:
    if predicate not in PREDICATES:
        raise ValueError(f"predicate must be one of {sorted(PREDICATES)}")
    if predicate in OPERAND_REQUIRED and operand is None:
        raise ValueError(f"predicate '{predicate}' requires an operand")
    if predicate == "divisible_by" and operand == 0:
        raise ValueError("divisible_by operand must not be zero")


class SequenceRequest(BaseModel):
    """Range source plus the lazy pipeline to run over it."""
    start: int = Field(0, description="First element of the range")
    end: int = Field(..., description="Range end (exclusive)")
    step: int = Field(1, description="Range step")
    operations: List[SequenceOperation] = Field(
        default_factory=list,
        description="Chain operations applied in order"
    )
    query: Optional[SequenceQuery] = Field(
        None,
        description="Optional terminal query; without it the elements are returned"
    )
    limit: int = Field(
        100,
        description="Maximum number of elements returned without a query",
        ge=0,
        le=10000
    )

    @field_validator('step')
    @classmethod
    def validate_step(cls, v):
        """Zero step would never reach the end."""
        if v == 0:
            raise ValueError("step must not be zero")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "start": 1,
                "end": 100,
                "operations": [
                    {"type": "filter", "predicate": "even"},
                    {"type": "map", "operation": "multiply", "operand": 3},
                    {"type": "take", "count": 5}
                ],
                "query": None,
                "limit": 100
            }
        }
    )


class SequenceResponse(BaseModel):
    """Result of a sequence evaluation."""
    ok: bool = Field(True, description="Request success status")
    values: Optional[List[Any]] = Field(None, description="Produced elements (no query)")
    count: Optional[int] = Field(None, description="Number of produced elements", ge=0)
    query: Optional[str] = Field(None, description="Query kind, if one was run")
    answer: Optional[Any] = Field(None, description="Query answer")
    operations_applied: List[str] = Field(..., description="Operation types in order")
    pulled: int = Field(..., description="Elements pulled from the range", ge=0)
    source_closed: bool = Field(..., description="Whether the range source was closed")
    processing_time_ms: float = Field(..., description="Evaluation time in milliseconds", ge=0)


class StatusResponse(BaseModel):
    """Standard status response"""
    ok: bool = Field(True, description="Request success status")
    message: str = Field(..., description="Status message")
    timestamp: datetime = Field(..., description="Response timestamp")


class HealthCheckResponse(BaseModel):
    """Health probe result."""
    status: str = Field(..., description="Health status")
    timestamp: datetime = Field(..., description="Health check timestamp")
    checks: Dict[str, bool] = Field(
        ...,
        description="Individual health check results"
    )


class ErrorResponse(BaseModel):
    """Standard error envelope."""
    ok: bool = Field(False, description="Request success status")
    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    timestamp: str = Field(
        ...,
        description="Error timestamp in ISO format"
    )
