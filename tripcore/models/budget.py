"""Budget allocation and reconciliation models."""

from pydantic import BaseModel, Field

from tripcore.models.common import BudgetCategory, BudgetTier, TravelStyle


class AllocationOptions(BaseModel):
    """Inputs that select and shape the ratio table."""

    travel_style: TravelStyle = TravelStyle.city_explorer
    budget_tier: BudgetTier = BudgetTier.mid_range
    total_days: int = Field(default=1, ge=0)
    total_nights: int = Field(default=0, ge=0)
    travelers: int = Field(default=1, ge=1)
    has_own_vehicle: bool = False


class AllocationMeta(BaseModel):
    """Record of how an allocation was computed."""

    table: str
    ratios: dict[BudgetCategory, float]
    options: AllocationOptions
    warnings: list[str] = Field(default_factory=list)


class BudgetAllocation(BaseModel):
    """Per-category envelopes with mutable remaining balances.

    Invariant: the envelope sum never exceeds `total_budget` at creation.
    `remaining` only ever moves toward zero and never below it.
    """

    total_budget: float
    intercity: int = 0
    accommodation: int = 0
    local_transport: int = 0
    activity: int = 0
    buffer: int = 0
    upgrade_pool: int | None = None
    activity_per_day: int = 0
    accommodation_per_night: int = 0
    remaining: dict[BudgetCategory, float] = Field(default_factory=dict)
    meta: AllocationMeta | None = None

    def envelope(self, category: BudgetCategory) -> int:
        value = getattr(self, category.value)
        return value or 0

    def envelope_sum(self) -> int:
        return sum(self.envelope(c) for c in BudgetCategory)

    def remaining_for(self, category: BudgetCategory) -> float:
        return self.remaining.get(category, 0)


class CategoryViolation(BaseModel):
    """A category whose actual spend exceeds its envelope."""

    category: BudgetCategory
    envelope: float
    actual: float
    overshoot: float


class ReconciliationReport(BaseModel):
    """Comparison of actual segment costs against the allocation."""

    balanced: bool
    total: float = 0
    budget: float = 0
    overshoot: float = 0
    buffer_remaining: float = 0
    category_totals: dict[BudgetCategory, float] = Field(default_factory=dict)
    violations: list[CategoryViolation] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "ReconciliationReport":
        return cls(balanced=True)
