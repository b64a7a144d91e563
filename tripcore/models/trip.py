"""Trip input model."""

from pydantic import BaseModel, Field, field_validator

from tripcore.models.common import (
    BudgetTier,
    BudgetType,
    OwnVehicle,
    TravelPreference,
    TravelStyle,
)


class TripLeg(BaseModel):
    """A stay of `days` days at one location."""

    location: str
    days: int = Field(..., ge=0)


class DayLocation(BaseModel):
    """Location assigned to a single trip day."""

    day_number: int = Field(..., ge=1)
    location: str


class Trip(BaseModel):
    """Trip parameters supplied by the caller. Read-only to the engine."""

    id: str
    destination: str
    start_location: str | None = None
    return_location: str | None = None
    travelers: int = Field(default=1, ge=1)
    currency: str = "USD"
    budget: float = 0
    budget_tier: BudgetTier = BudgetTier.mid_range
    travel_style: TravelStyle = TravelStyle.city_explorer
    own_vehicle: OwnVehicle = OwnVehicle.none
    travel_preference: TravelPreference = TravelPreference.any
    budget_type: BudgetType = BudgetType.flexible
    legs: list[TripLeg] = Field(default_factory=list)
    departure_time: str | None = None
    return_departure_time: str | None = None

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.strip().upper() or "USD"

    @property
    def has_own_vehicle(self) -> bool:
        return self.own_vehicle != OwnVehicle.none

    @property
    def effective_legs(self) -> list[TripLeg]:
        """Legs, or a single one-day leg at the destination when none are given."""
        if self.legs:
            return self.legs
        return [TripLeg(location=self.destination, days=1)]

    @property
    def total_days(self) -> int:
        return sum(leg.days for leg in self.effective_legs)

    @property
    def total_nights(self) -> int:
        return max(0, self.total_days - 1)

    def day_locations(self) -> list[DayLocation]:
        """Expand legs into one entry per day, numbered from 1."""
        result: list[DayLocation] = []
        day = 0
        for leg in self.effective_legs:
            for _ in range(leg.days):
                day += 1
                result.append(DayLocation(day_number=day, location=leg.location))
        return result

    def has_outbound(self) -> bool:
        """True when the trip starts somewhere other than its destination."""
        if not self.start_location or not self.destination:
            return False
        return self.start_location.strip().lower() != self.destination.strip().lower()
