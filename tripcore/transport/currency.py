"""Effective currency multiplier = exchange rate x cost-of-living index."""

from tripcore.transport.tables import (
    COST_OF_LIVING_BUCKETS,
    COST_OF_LIVING_INDEX,
    EXCHANGE_RATES,
)


def exchange_rate(currency: str) -> float:
    """Units of `currency` per USD; unknown currencies are treated as USD."""
    return float(EXCHANGE_RATES.get((currency or "USD").upper(), 1))


def infer_cost_of_living(rate: float) -> float:
    """Infer a cost-of-living index from the exchange-rate magnitude.

    Buckets (rate upper bound -> index): <2 -> 1.0, <10 -> 0.75, <50 -> 0.55,
    <200 -> 0.4, <2000 -> 0.3, otherwise 0.25.
    """
    for upper, index in COST_OF_LIVING_BUCKETS:
        if rate < upper:
            return index
    return COST_OF_LIVING_BUCKETS[-1][1]


def cost_of_living_index(currency: str) -> float:
    code = (currency or "USD").upper()
    if code in COST_OF_LIVING_INDEX:
        return COST_OF_LIVING_INDEX[code]
    if code not in EXCHANGE_RATES:
        return 1.0
    return infer_cost_of_living(exchange_rate(code))


def effective_multiplier(currency: str) -> float:
    """Multiplier converting a USD base price into a local-currency estimate."""
    return exchange_rate(currency) * cost_of_living_index(currency)
