import pytest

from common.form_engine.models import RiskLevel
from common.form_engine.options import PROBABILITY_RATINGS, SEVERITY_RATINGS
from common.form_engine.risk import PROBABILITIES, RISK_MATRIX, SEVERITIES, classify


EXPECTED = {
    "1A": "critical", "1B": "critical", "1C": "high", "1D": "medium",
    "2A": "critical", "2B": "high", "2C": "medium", "2D": "low",
    "3A": "high", "3B": "medium", "3C": "low", "3D": "low",
    "4A": "medium", "4B": "low", "4C": "low", "4D": "low",
}


@pytest.mark.parametrize("cell, level", sorted(EXPECTED.items()))
def test_matrix_cell(cell, level):
    severity, probability = cell[0], cell[1]
    assert classify(severity, probability) == RiskLevel(level)


def test_matrix_covers_every_axis_combination():
    assert set(RISK_MATRIX) == {(s, p) for s in SEVERITIES for p in PROBABILITIES}


@pytest.mark.parametrize(
    "severity, probability",
    [
        (None, "A"),
        ("1", None),
        (None, None),
        ("5", "A"),
        ("1", "E"),
        ("", ""),
        (True, "A"),
    ],
)
def test_unknown_inputs_classify_as_unknown(severity, probability):
    assert classify(severity, probability) == RiskLevel.UNKNOWN


def test_numeric_severity_and_lowercase_probability_are_accepted():
    assert classify(2, "b") == RiskLevel.HIGH


def test_rating_options_share_the_matrix_axes():
    assert tuple(o.value for o in SEVERITY_RATINGS) == SEVERITIES
    assert tuple(o.value for o in PROBABILITY_RATINGS) == PROBABILITIES
