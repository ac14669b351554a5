from decimal import Decimal

import pytest

from src.site_payroll.site_payroll.common.validators import money, require_amount, require_int
from src.site_payroll.site_payroll.core.exceptions import ValidationError


@pytest.mark.parametrize(
    "value, expected",
    [
        ("10", Decimal("10.00")),
        (10, Decimal("10.00")),
        (0.1, Decimal("0.10")),
        ("2.005", Decimal("2.01")),
        (Decimal("7.5"), Decimal("7.50")),
    ],
)
def test_money_rounds_to_two_places(value, expected):
    assert money(value) == expected


@pytest.mark.parametrize(
    "value",
    ["NaN", "nan", "sNaN", "Infinity", "-Infinity", float("nan"), float("inf"), Decimal("NaN"), "1e40", "abc", None],
)
def test_money_rejects_non_finite_and_garbage(value):
    with pytest.raises(ValidationError) as exc:
        money(value)
    assert exc.value.code == "VALIDATION_ERROR"


def test_require_amount_rejects_nan_before_comparing():
    with pytest.raises(ValidationError):
        require_amount("NaN", "amount", positive=True)


@pytest.mark.parametrize("value, expected", [(7, 7), ("7", 7), (" 7 ", 7), ("-3", -3)])
def test_require_int_accepts_ints_and_digit_strings(value, expected):
    assert require_int(value, "user_id") == expected


@pytest.mark.parametrize("value", ["abc", "", "--5", "7.5", 7.0, True, None, [3], {"id": 3}])
def test_require_int_rejects_everything_else(value):
    with pytest.raises(ValidationError) as exc:
        require_int(value, "user_id")
    assert "user_id" in exc.value.message
