"""Shared option enumerations that templates reference by name."""

from __future__ import annotations

from typing import Dict, List

from .models import OptionItem


def _items(*rows: tuple[str, str, str]) -> List[OptionItem]:
    return [OptionItem(value=value, label=label, description=description) for value, label, description in rows]


def _labels(*labels: str) -> List[OptionItem]:
    return [OptionItem(value=label, label=label) for label in labels]


SEVERITY_RATINGS = _items(
    ("1", "1 - Catastrophic", "Death or permanent disability"),
    ("2", "2 - Serious", "Major injury or damage"),
    ("3", "3 - Minor", "Non-serious injury"),
    ("4", "4 - Negligible", "No injury, minor inconvenience"),
)

PROBABILITY_RATINGS = _items(
    ("A", "A - Frequent", "Will occur repeatedly"),
    ("B", "B - Reasonably Probable", "Will occur eventually"),
    ("C", "C - Remote", "Could occur at some point"),
    ("D", "D - Extremely Improbable", "Very unlikely"),
)

STANDARD_HAZARD_CATEGORIES = _items(
    ("environmental", "Environmental Hazards", "Weather, terrain, wildlife, temperature"),
    ("overhead", "Overhead Hazards", "Power lines, structures, obstacles"),
    ("access_egress", "Access/Egress", "Slips, trips, water hazards"),
    ("ergonomic", "Ergonomic", "Awkward positions, repetitive tasks"),
    ("personal_limitations", "Personal Limitations", "Fatigue, distraction, training gaps"),
    ("equipment", "Equipment", "Malfunction, improper use"),
    ("vehicle", "Vehicle Hazards", "Driving, loading, terrain navigation"),
    ("chemical", "Chemical/Biological", "Fuel, batteries, contamination"),
)

RPAS_HAZARD_CATEGORIES = _items(
    ("airspace", "Airspace Hazards", "Controlled airspace, NOTAMs, TFRs, airport proximity"),
    ("rf_interference", "RF/Signal Hazards", "Interference, link loss, GPS denial, EMI"),
    ("flyaway", "Loss of Control", "Fly-away risk, GPS failure, compass interference"),
    ("battery_thermal", "Battery Hazards", "Thermal runaway, swelling, cold weather performance"),
    ("public_interaction", "Public/Bystanders", "Spectators, pedestrians, vehicle traffic"),
    ("manned_aircraft", "Manned Aircraft", "Helicopters, fixed-wing, emergency aircraft"),
    ("obstacle_collision", "Obstacle Collision", "Trees, buildings, powerlines, guy wires"),
    ("vlos_limitations", "VLOS Limitations", "Visual line of sight obstructions, lighting"),
    ("payload", "Payload Hazards", "Camera/sensor weight, balance, detachment"),
    ("ground_crew", "Ground Crew Safety", "Prop strike, hand launch/catch, rotor hazards"),
)

# "other" belongs to the full list only.
HAZARD_CATEGORIES = (
    STANDARD_HAZARD_CATEGORIES
    + RPAS_HAZARD_CATEGORIES
    + _items(("other", "Other", "Specify custom hazard type in description"))
)

CONTROL_TYPES = _items(
    ("elimination", "1. Elimination", "Remove the hazard entirely"),
    ("substitution", "2. Substitution", "Replace with less hazardous option"),
    ("engineering", "3. Engineering Controls", "Isolate people from hazard"),
    ("administrative", "4. Administrative Controls", "Change work procedures"),
    ("ppe", "5. PPE", "Personal protective equipment (last resort)"),
)

SUBSTANDARD_ACTS = _labels(
    "Operating equipment without authorization",
    "Failure to warn or secure",
    "Operating at improper speed",
    "Using defective equipment",
    "Failing to use PPE properly",
    "Improper lifting or positioning",
    "Failure to follow procedures",
    "Failure to identify hazards",
)

SUBSTANDARD_CONDITIONS = _labels(
    "Inadequate safety barriers or PPE",
    "Defective tools, equipment, or materials",
    "Poor housekeeping or clutter",
    "Exposure to hazardous substances",
    "Inadequate ventilation or lighting",
    "Extreme temperatures",
    "High noise levels",
    "Congested workspace",
)

PERSONAL_FACTORS = _labels(
    "Inadequate physical capability",
    "Inadequate mental capability",
    "Lack of knowledge or training",
    "Improper motivation",
    "Lack of safety awareness",
    "Fatigue or overwork",
    "Emotional strain or stress",
)

JOB_SYSTEM_FACTORS = _labels(
    "Inadequate leadership or supervision",
    "Deficient engineering or maintenance",
    "Inadequate tools or equipment",
    "Inadequate work standards",
    "Poor communication",
    "Lack of safety policies",
    "Inadequate purchasing controls",
)

NAMED_OPTIONS: Dict[str, List[OptionItem]] = {
    "SEVERITY_RATINGS": SEVERITY_RATINGS,
    "PROBABILITY_RATINGS": PROBABILITY_RATINGS,
    "HAZARD_CATEGORIES": HAZARD_CATEGORIES,
    "STANDARD_HAZARD_CATEGORIES": STANDARD_HAZARD_CATEGORIES,
    "RPAS_HAZARD_CATEGORIES": RPAS_HAZARD_CATEGORIES,
    "CONTROL_TYPES": CONTROL_TYPES,
    "SUBSTANDARD_ACTS": SUBSTANDARD_ACTS,
    "SUBSTANDARD_CONDITIONS": SUBSTANDARD_CONDITIONS,
    "PERSONAL_FACTORS": PERSONAL_FACTORS,
    "JOB_SYSTEM_FACTORS": JOB_SYSTEM_FACTORS,
}
