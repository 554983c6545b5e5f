from __future__ import annotations

from typing import Any, Dict, Tuple

from .models import RiskLevel

SEVERITIES = ("1", "2", "3", "4")
PROBABILITIES = ("A", "B", "C", "D")

# Severity 1 is catastrophic, probability A is frequent.
RISK_MATRIX: Dict[Tuple[str, str], RiskLevel] = {
    ("1", "A"): RiskLevel.CRITICAL,
    ("1", "B"): RiskLevel.CRITICAL,
    ("1", "C"): RiskLevel.HIGH,
    ("1", "D"): RiskLevel.MEDIUM,
    ("2", "A"): RiskLevel.CRITICAL,
    ("2", "B"): RiskLevel.HIGH,
    ("2", "C"): RiskLevel.MEDIUM,
    ("2", "D"): RiskLevel.LOW,
    ("3", "A"): RiskLevel.HIGH,
    ("3", "B"): RiskLevel.MEDIUM,
    ("3", "C"): RiskLevel.LOW,
    ("3", "D"): RiskLevel.LOW,
    ("4", "A"): RiskLevel.MEDIUM,
    ("4", "B"): RiskLevel.LOW,
    ("4", "C"): RiskLevel.LOW,
    ("4", "D"): RiskLevel.LOW,
}


def classify(severity: Any, probability: Any) -> RiskLevel:
    """Map a severity/probability pair onto the fixed 4x4 matrix.

    Anything outside the matrix (including missing answers) yields
    RiskLevel.UNKNOWN rather than raising.
    """
    if severity is None or probability is None or isinstance(severity, bool):
        return RiskLevel.UNKNOWN
    key = (str(severity).strip(), str(probability).strip().upper())
    return RISK_MATRIX.get(key, RiskLevel.UNKNOWN)


__all__ = ["PROBABILITIES", "RISK_MATRIX", "SEVERITIES", "classify"]
