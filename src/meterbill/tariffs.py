"""Tariff plans, rate bands and plan loading."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, time
from pathlib import Path

import yaml

from .models import Direction, MonetaryEntry, Reading

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "plans.yaml"

DAYS_PER_YEAR = 365
SUNDAY = 6


class PlanContractError(AssertionError):
    """A plan broke one of the guarantees every plan must keep."""


def parse_time(time_str: str) -> time:
    """Parse HH:MM string to time object."""
    parts = time_str.split(":")
    return time(int(parts[0]), int(parts[1]))


def time_in_band(check_time: time, start: time, end: time) -> bool:
    """Check if a time falls within (start, end]."""
    return start < check_time <= end


def time_in_overnight_band(check_time: time, start: time, end: time) -> bool:
    """Check a band that runs past midnight, e.g. (23:00, 08:00]."""
    return check_time > start or check_time <= end


@dataclass(frozen=True)
class RateBand:
    """A time-of-day window with its import rate."""

    start: time
    end: time
    rate: float  # EUR per kWh

    def contains(self, check_time: time) -> bool:
        if self.start < self.end:
            return time_in_band(check_time, self.start, self.end)
        return time_in_overnight_band(check_time, self.start, self.end)


@dataclass(frozen=True)
class TariffPlan(ABC):
    """Pricing policy shared by all plans.

    Export is always credited at a flat rate. Import is debited at the rate
    picked by ``import_rate_for`` with the plan discount applied.
    """

    name: str
    export_rate: float
    discount: float  # fraction, 0.14 means 14% off import
    standing_charge_per_year: float

    kind = ""

    def __post_init__(self):
        if not 0 <= self.discount <= 1:
            raise ValueError(
                f"Plan {self.name!r}: discount must be between 0 and 1, got {self.discount}"
            )
        values = [
            ("export_rate", self.export_rate),
            ("standing_charge_per_year", self.standing_charge_per_year),
            *self.import_rates(),
        ]
        for label, value in values:
            if not value >= 0:
                raise ValueError(f"Plan {self.name!r}: {label} must not be negative, got {value}")

    def import_rates(self) -> list[tuple[str, float]]:
        """(field, rate) pairs for every import rate the plan can charge."""
        return []

    @abstractmethod
    def import_rate_for(self, timestamp: datetime) -> float:
        """Undiscounted import rate in EUR/kWh at the given interval end."""

    def price_for_single_reading(self, reading: Reading) -> MonetaryEntry:
        if reading.direction is Direction.EXPORT:
            return MonetaryEntry.credit(self.export_rate * reading.value)
        rate = self.import_rate_for(reading.timestamp)
        return MonetaryEntry.debit(rate * (1.0 - self.discount) * reading.value)

    def standing_charge_per_day(self) -> MonetaryEntry:
        return MonetaryEntry.debit(self.standing_charge_per_year / DAYS_PER_YEAR)

    def standing_charge_for_n_days(self, days: float) -> MonetaryEntry:
        if days < 0:
            raise ValueError(f"Billing period must not be negative, got {days} days")
        per_day = self.standing_charge_per_day()
        if not per_day.is_debit:
            raise PlanContractError(
                f"Plan {self.name!r} returned a credit standing charge: {per_day}"
            )
        return per_day.scaled(days)

    def describe_rates(self) -> list[tuple[str, str]]:
        """(label, value) pairs describing the import rates."""
        return []


@dataclass(frozen=True)
class FlatPlan(TariffPlan):
    """Single import rate at all times."""

    import_rate: float = 0.0

    kind = "flat"

    def import_rates(self) -> list[tuple[str, float]]:
        return [("import_rate", self.import_rate)]

    def import_rate_for(self, timestamp: datetime) -> float:
        return self.import_rate

    def describe_rates(self) -> list[tuple[str, str]]:
        return [("All day", f"{self.import_rate}")]


@dataclass(frozen=True)
class TimeOfUsePlan(TariffPlan):
    """Peak, night and standard import rates.

    Peak is checked before night, and standard covers every other time.
    """

    peak: RateBand | None = None
    night: RateBand | None = None
    standard_rate: float = 0.0

    kind = "time_of_use"

    def import_rates(self) -> list[tuple[str, float]]:
        rates = [("standard_rate", self.standard_rate)]
        return rates + _band_rates(peak=self.peak, night=self.night)

    def import_rate_for(self, timestamp: datetime) -> float:
        check_time = timestamp.time()
        if self.peak and self.peak.contains(check_time):
            return self.peak.rate
        if self.night and self.night.contains(check_time):
            return self.night.rate
        return self.standard_rate

    def describe_rates(self) -> list[tuple[str, str]]:
        rows = []
        if self.peak:
            rows.append((f"Peak {_band_label(self.peak)}", f"{self.peak.rate}"))
        if self.night:
            rows.append((f"Night {_band_label(self.night)}", f"{self.night.rate}"))
        rows.append(("Standard", f"{self.standard_rate}"))
        return rows


@dataclass(frozen=True)
class WeekdayPlan(TariffPlan):
    """Day-of-week dependent rates with a free Sunday window.

    Order: Sunday free window, weekday peak (Mon-Fri), night, then day rate.
    """

    free: RateBand | None = None
    peak: RateBand | None = None
    night: RateBand | None = None
    day_rate: float = 0.0

    kind = "weekday"

    def import_rates(self) -> list[tuple[str, float]]:
        rates = [("day_rate", self.day_rate)]
        return rates + _band_rates(peak=self.peak, night=self.night)

    def import_rate_for(self, timestamp: datetime) -> float:
        check_time = timestamp.time()
        weekday = timestamp.weekday()

        if self.free and weekday == SUNDAY and self.free.contains(check_time):
            return 0.0
        if self.peak and weekday < 5 and self.peak.contains(check_time):
            return self.peak.rate
        if self.night and self.night.contains(check_time):
            return self.night.rate
        return self.day_rate

    def describe_rates(self) -> list[tuple[str, str]]:
        rows = []
        if self.free:
            rows.append((f"Free Sunday {_band_label(self.free)}", "0.0"))
        if self.peak:
            rows.append((f"Peak Mon-Fri {_band_label(self.peak)}", f"{self.peak.rate}"))
        if self.night:
            rows.append((f"Night {_band_label(self.night)}", f"{self.night.rate}"))
        rows.append(("Day", f"{self.day_rate}"))
        return rows


def _band_label(band: RateBand) -> str:
    return f"({band.start:%H:%M}, {band.end:%H:%M}]"


def _band_rates(**bands: RateBand | None) -> list[tuple[str, float]]:
    return [(f"{label} rate", band.rate) for label, band in bands.items() if band]


DEFAULT_PLANS: list[TariffPlan] = [
    FlatPlan(
        name="home-electric-14",
        export_rate=0.21,
        discount=0.14,
        standing_charge_per_year=272.61,
        import_rate=0.3895,
    ),
    TimeOfUsePlan(
        name="smart-night-boost",
        export_rate=0.24,
        discount=0.10,
        standing_charge_per_year=230.58,
        peak=RateBand(time(17, 0), time(19, 0), 0.4327),
        night=RateBand(time(23, 0), time(8, 0), 0.2072),
        standard_rate=0.3516,
    ),
    WeekdayPlan(
        name="free-sundays",
        export_rate=0.185,
        discount=0.25,
        standing_charge_per_year=299.62,
        free=RateBand(time(9, 0), time(18, 0), 0.0),
        peak=RateBand(time(17, 0), time(19, 0), 0.5258),
        night=RateBand(time(23, 0), time(8, 0), 0.2684),
        day_rate=0.4178,
    ),
]


def _parse_band(data: dict | None, rate: float | None = None) -> RateBand | None:
    if data is None:
        return None
    # YAML reads unquoted 17:00 as the integer 1020
    if not isinstance(data["start"], str) or not isinstance(data["end"], str):
        raise ValueError(f"Band times must be quoted HH:MM strings, got {data!r}")
    start = parse_time(data["start"])
    end = parse_time(data["end"])
    # start == end would read as an overnight band covering the whole day
    if start == end:
        raise ValueError(f"Band start and end must differ, got {data['start']} for both")
    return RateBand(
        start=start,
        end=end,
        rate=float(data["rate"]) if rate is None else rate,
    )


def plan_from_dict(data: dict) -> TariffPlan:
    """Build a plan from one entry of the plans YAML."""
    kind = data.get("kind")
    try:
        common = {
            "name": data["name"],
            "export_rate": float(data["export_rate"]),
            "discount": float(data.get("discount", 0.0)),
            "standing_charge_per_year": float(data["standing_charge_per_year"]),
        }
        rates = data.get("rates", {})
        if kind == "flat":
            return FlatPlan(**common, import_rate=float(data["import_rate"]))
        if kind == "time_of_use":
            return TimeOfUsePlan(
                **common,
                peak=_parse_band(rates.get("peak")),
                night=_parse_band(rates.get("night")),
                standard_rate=float(rates["standard"]),
            )
        if kind == "weekday":
            return WeekdayPlan(
                **common,
                free=_parse_band(rates.get("free"), rate=0.0),
                peak=_parse_band(rates.get("peak")),
                night=_parse_band(rates.get("night")),
                day_rate=float(rates["day"]),
            )
    except KeyError as e:
        raise ValueError(f"Plan {data.get('name', '?')!r} is missing field {e}") from e

    raise ValueError(f"Unknown plan kind {kind!r} for plan {data.get('name', '?')!r}")


def get_config_path() -> Path | None:
    """Find the plans.yaml config file, if there is one."""
    candidates = [
        Path.cwd() / "config" / "plans.yaml",
        DEFAULT_CONFIG_PATH,
        Path.home() / ".config" / "meter-bill" / "plans.yaml",
    ]
    for path in candidates:
        if path.exists():
            return path
    return None


def load_plans_from_yaml(config_path: Path | None = None) -> list[TariffPlan]:
    """Load plan definitions from YAML config file."""
    path = config_path or get_config_path()
    if path is None:
        raise FileNotFoundError("Could not find config/plans.yaml")
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return [plan_from_dict(p) for p in data.get("plans", [])]


def load_plans(config_path: Path | None = None) -> list[TariffPlan]:
    """Load plans from config, falling back to the built-in plans."""
    if config_path is None and get_config_path() is None:
        return list(DEFAULT_PLANS)
    return load_plans_from_yaml(config_path)


def select_plans(plans: list[TariffPlan], names: list[str] | tuple[str, ...]) -> list[TariffPlan]:
    """Pick plans by name, keeping the order given. No names means all plans."""
    if not names:
        return list(plans)
    by_name = {plan.name: plan for plan in plans}
    unknown = [name for name in names if name not in by_name]
    if unknown:
        raise ValueError(
            f"Unknown plan(s): {', '.join(unknown)}. Available: {', '.join(by_name)}"
        )
    return [by_name[name] for name in names]
