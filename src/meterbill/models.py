"""Data models for meter readings and bill entries."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Direction(Enum):
    """Direction of energy flow for a reading."""

    IMPORT = "import"
    EXPORT = "export"


@dataclass(frozen=True)
class Reading:
    """A single smart-meter interval reading."""

    direction: Direction
    value: float  # kWh for the interval
    timestamp: datetime  # interval end time, naive local time
    mprn: str | None = None
    meter_serial_number: str | None = None


class EntryKind(Enum):
    CREDIT = "credit"
    DEBIT = "debit"


@dataclass(frozen=True)
class MonetaryEntry:
    """A money amount tagged as credit or debit.

    The amount is never negative; the sign lives in ``kind``. Adding two
    entries nets them: same kinds add up, opposite kinds subtract the smaller
    from the larger and keep the kind of the strictly larger one. Equal
    opposite amounts come out as a zero debit.
    """

    kind: EntryKind
    amount: float

    def __post_init__(self):
        if not self.amount >= 0:
            raise ValueError(f"Entry amount must not be negative, got {self.amount}")

    @classmethod
    def credit(cls, amount: float) -> "MonetaryEntry":
        return cls(EntryKind.CREDIT, amount)

    @classmethod
    def debit(cls, amount: float) -> "MonetaryEntry":
        return cls(EntryKind.DEBIT, amount)

    @property
    def is_credit(self) -> bool:
        return self.kind is EntryKind.CREDIT

    @property
    def is_debit(self) -> bool:
        return self.kind is EntryKind.DEBIT

    @property
    def signed(self) -> float:
        """Amount owed by the customer: positive for debit, negative for credit."""
        return -self.amount if self.is_credit else self.amount

    def scaled(self, factor: float) -> "MonetaryEntry":
        return MonetaryEntry(self.kind, self.amount * factor)

    def __add__(self, other: "MonetaryEntry") -> "MonetaryEntry":
        if not isinstance(other, MonetaryEntry):
            return NotImplemented
        if self.kind is other.kind:
            return MonetaryEntry(self.kind, self.amount + other.amount)

        credit, debit = (self, other) if self.is_credit else (other, self)
        if credit.amount > debit.amount:
            return MonetaryEntry.credit(credit.amount - debit.amount)
        return MonetaryEntry.debit(debit.amount - credit.amount)

    def __str__(self) -> str:
        return f"{self.kind.value.capitalize()}({self.amount:.4f})"


def combine(a: MonetaryEntry, b: MonetaryEntry) -> MonetaryEntry:
    """Net two entries together."""
    return a + b
