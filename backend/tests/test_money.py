from decimal import Decimal

import pytest

from canteen.errors import PrecisionError, ValidationError
from canteen.money import (
    MAX_AMOUNT_CENTS,
    bps_to_percent,
    format_cents,
    percent_of,
    percent_to_bps,
    round2,
    to_cents,
)


class TestToCents:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2.50", 250),
            ("2.5", 250),
            (10, 1000),
            (Decimal("0.01"), 1),
            ("-5.00", -500),
            (" 7.25 ", 725),
        ],
    )
    def test_accepts_whole_cents(self, value, expected):
        assert to_cents(value) == expected

    def test_float_noise_is_absorbed(self):
        assert to_cents(0.1 + 0.2) == 30

    def test_sub_cent_amount_is_rejected(self):
        with pytest.raises(PrecisionError):
            to_cents("2.505")

    @pytest.mark.parametrize("value", [True, None, "abc", "", [], "NaN", "Infinity"])
    def test_non_numbers_are_rejected(self, value):
        with pytest.raises(ValidationError):
            to_cents(value)

    def test_amount_cap(self):
        assert to_cents("9999999.99") == MAX_AMOUNT_CENTS
        with pytest.raises(ValidationError):
            to_cents("10000000.00")


class TestPercent:
    def test_percent_to_bps(self):
        assert percent_to_bps("12.5") == 1250
        assert percent_to_bps(0) == 0
        assert percent_to_bps(100) == 10_000

    def test_percent_out_of_range(self):
        with pytest.raises(ValidationError):
            percent_to_bps(101)
        with pytest.raises(ValidationError):
            percent_to_bps("-1")

    def test_percent_precision(self):
        with pytest.raises(PrecisionError):
            percent_to_bps("12.345")

    def test_bps_to_percent(self):
        assert bps_to_percent(1250) == Decimal("12.50")
        assert bps_to_percent(None) is None

    def test_percent_of_rounds_half_up(self):
        assert percent_of(1000, 1000) == 100
        # 10% of 5 cents is 0.5 cents
        assert percent_of(5, 1000) == 1
        # 15% of 3 cents is 0.45 cents
        assert percent_of(3, 1500) == 0


def test_round2_half_up():
    assert round2("2.345") == Decimal("2.35")
    assert round2("2.344") == Decimal("2.34")


def test_format_cents():
    assert format_cents(250) == "2.50"
    assert format_cents(-900) == "-9.00"
    assert format_cents(0) == "0.00"
