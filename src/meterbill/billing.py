"""Fold readings through a tariff plan into a bill."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence

from .models import Direction, MonetaryEntry, Reading
from .tariffs import PlanContractError, TariffPlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bill:
    """The bill for one plan over a billing period."""

    plan_name: str
    days: float
    energy: MonetaryEntry
    standing_charge: MonetaryEntry
    final: MonetaryEntry

    def to_dict(self) -> dict:
        return {
            "plan": self.plan_name,
            "days": self.days,
            "energy": {"kind": self.energy.kind.value, "amount": self.energy.amount},
            "standing_charge": self.standing_charge.amount,
            "final": {"kind": self.final.kind.value, "amount": self.final.amount},
            "amount_owed": self.final.signed,
        }


def compute_total(plan: TariffPlan, readings: Iterable[Reading]) -> MonetaryEntry:
    """Net the price of every reading, in input order, starting from a zero debit."""
    total = MonetaryEntry.debit(0.0)
    for reading in readings:
        entry = plan.price_for_single_reading(reading)
        result = total + entry
        logger.debug("%s + %s = %s", total, entry, result)
        total = result
    return total


def compute_bill(plan: TariffPlan, readings: Sequence[Reading], days: float) -> Bill:
    """Compute the final bill: energy total plus standing charge for ``days``.

    ``days`` is taken as given. It is not checked against the span of the
    readings.
    """
    energy = compute_total(plan, readings)
    standing = plan.standing_charge_for_n_days(days)
    if not standing.is_debit:
        raise PlanContractError(f"Plan {plan.name!r} returned a credit standing charge")

    final = energy + standing
    logger.info("%s: energy %s, standing %s, final %s", plan.name, energy, standing, final)
    return Bill(
        plan_name=plan.name,
        days=days,
        energy=energy,
        standing_charge=standing,
        final=final,
    )


def compare_plans(
    plans: Iterable[TariffPlan], readings: Sequence[Reading], days: float
) -> list[Bill]:
    """Bill the same readings under each plan, keeping plan order."""
    return [compute_bill(plan, readings, days) for plan in plans]


def cheapest(bills: Sequence[Bill]) -> Bill | None:
    """The bill with the lowest amount owed."""
    if not bills:
        return None
    return min(bills, key=lambda b: b.final.signed)


def summarize_readings(readings: Sequence[Reading]) -> dict:
    """Count readings and total kWh per direction."""
    import_kwh = 0.0
    export_kwh = 0.0
    first: datetime | None = None
    last: datetime | None = None

    for reading in readings:
        if reading.direction is Direction.IMPORT:
            import_kwh += reading.value
        else:
            export_kwh += reading.value
        if first is None or reading.timestamp < first:
            first = reading.timestamp
        if last is None or reading.timestamp > last:
            last = reading.timestamp

    span_days = None
    if first is not None and last is not None:
        span_days = (last - first).total_seconds() / 86400

    return {
        "count": len(readings),
        "import_kwh": import_kwh,
        "export_kwh": export_kwh,
        "first": first,
        "last": last,
        "span_days": span_days,
    }
