"""Orchestration output models."""

from pydantic import BaseModel, Field

from tripcore.models.budget import BudgetAllocation, ReconciliationReport
from tripcore.models.segment import Segment
from tripcore.models.suggestions import HiddenGem


class DailySummary(BaseModel):
    """Per-day cost breakdown, rounded to whole currency units."""

    day_number: int
    activity_cost: int = 0
    local_transport_cost: int = 0
    travel_cost: int = 0
    stay_cost: int = 0
    total_day_cost: int = 0
    segment_count: int = 0


class OrchestrationResult(BaseModel):
    """Terminal output of a single orchestration run."""

    allocation: BudgetAllocation
    segments: list[Segment] = Field(default_factory=list)
    daily_summary: list[DailySummary] = Field(default_factory=list)
    hidden_gems: list[HiddenGem] = Field(default_factory=list)
    reconciliation: ReconciliationReport
    feasibility_issues: list[str] = Field(default_factory=list)
