"""Smart-meter bill comparison across electricity tariff plans."""
