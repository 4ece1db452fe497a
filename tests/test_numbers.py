import pytest

from gaze_ingest.errors import MalformedRowError
from gaze_ingest.utils.numbers import format_number, require_float, to_float


@pytest.mark.parametrize(
    "value,expected",
    [
        ("72", 72.0),
        (" 1.5 ", 1.5),
        ("1,5", 1.5),
        (3, 3.0),
        ("", None),
        ("  ", None),
        ("abc", None),
        ("inf", None),
        (None, None),
        (float("nan"), None),
    ],
)
def test_to_float(value, expected):
    assert to_float(value) == expected


def test_require_float_raises_malformed_row():
    assert require_float("0.5", "FPOGS") == 0.5
    with pytest.raises(MalformedRowError, match="FPOGS"):
        require_float("", "FPOGS")


@pytest.mark.parametrize(
    "value,expected",
    [
        (0.0, "0"),
        (-0.0, "0"),
        (72.0, "72"),
        (192, "192"),
        (0.06689, "0.06689"),
        (1.5741, "1.5741"),
        (-2.5, "-2.5"),
        (0.00001, "0.00001"),
        (1.2345e-05, "0.000012345"),
        (-0.000001, "-0.000001"),
        (1e-07, "1e-7"),
        (1.5e-09, "1.5e-9"),
    ],
)
def test_format_number(value, expected):
    assert format_number(value) == expected


def test_format_number_keeps_full_precision():
    assert format_number(0.1 + 0.2) == "0.30000000000000004"
