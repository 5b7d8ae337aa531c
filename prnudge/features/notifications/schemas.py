"""Pydantic schemas for tick results."""

from typing import List, Optional

from pydantic import BaseModel, Field

from prnudge.features.schedules.schemas import ExecutionResult


class TickSummary(BaseModel):
    """Aggregate outcome of one notification tick."""

    success: bool = Field(..., description="False only when the tick itself failed")
    schedules_processed: int = Field(0, description="Due schedules executed this tick")
    schedules_failed: int = Field(0, description="Executions that ended in error")
    schedules_partial: int = Field(0, description="Executions that partially failed")
    execution_time_ms: int = 0
    error: Optional[str] = None
    results: List[ExecutionResult] = Field(default_factory=list)
