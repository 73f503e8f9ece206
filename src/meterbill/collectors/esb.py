"""ESB Networks smart-meter data importer.

Reads the HDF (harmonised downloadable file) CSV export of interval data.
CSV format:
    MPRN,Meter Serial Number,Read Value,Read Type,Read Date and End Time
    10308375697,34996871,0,Active Export Interval (kW),08-01-2024 03:30

Rows with an unknown read type, a bad value or a bad timestamp are dropped.
"""

import csv
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Iterable, Mapping

from ..models import Direction, Reading

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%d-%m-%Y %H:%M"

READ_TYPES = {
    "Active Import Interval (kW)": Direction.IMPORT,
    "Active Export Interval (kW)": Direction.EXPORT,
}

MPRN_COLUMN = "MPRN"
SERIAL_COLUMN = "Meter Serial Number"
VALUE_COLUMN = "Read Value"
TYPE_COLUMN = "Read Type"
TIMESTAMP_COLUMN = "Read Date and End Time"


def parse_row(row: Mapping[str, str]) -> Reading | None:
    """Turn one CSV row into a Reading, or None if the row can't be used."""
    direction = READ_TYPES.get((row.get(TYPE_COLUMN) or "").strip())
    if direction is None:
        return None

    try:
        value = float(row[VALUE_COLUMN])
        timestamp = datetime.strptime((row[TIMESTAMP_COLUMN] or "").strip(), TIMESTAMP_FORMAT)
    except (KeyError, TypeError, ValueError):
        return None

    if not math.isfinite(value) or value < 0:
        return None

    return Reading(
        direction=direction,
        value=value,
        timestamp=timestamp,
        mprn=row.get(MPRN_COLUMN),
        meter_serial_number=row.get(SERIAL_COLUMN),
    )


def parse_rows(rows: Iterable[Mapping[str, str]]) -> tuple[list[Reading], int]:
    """Parse rows in order. Returns (readings, number of rows skipped)."""
    readings = []
    skipped = 0
    for line_no, row in enumerate(rows, start=2):
        reading = parse_row(row)
        if reading is None:
            logger.debug("Skipping unparseable row %d: %r", line_no, dict(row))
            skipped += 1
            continue
        readings.append(reading)
    return readings, skipped


def parse_csv(csv_path: Path) -> tuple[list[Reading], int]:
    """Parse an HDF CSV export file.

    Returns (readings, number of rows skipped).
    """
    with open(csv_path, newline="") as f:
        reader = csv.DictReader(f)
        readings, skipped = parse_rows(reader)

    logger.info("Parsed %d readings from %s (%d skipped)", len(readings), csv_path, skipped)
    return readings, skipped
