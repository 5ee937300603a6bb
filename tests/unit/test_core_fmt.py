import pytest
from decimal import Decimal

from zap_estimator.core import AmountDomainError, TOLERANCE, INFINITY
from zap_estimator.core.fmt import (
    to_decimal,
    fmt_dec,
    floor_units,
    require_units,
    apply_bps_floor,
    effective_rate,
    estimate_output,
    ratio_deviation,
    is_balanced,
)


# -----------------------------
# Conversions
# -----------------------------

def test_to_decimal_normalises_ints_and_strings():
    print("[to_decimal] int / str / Decimal passthrough")
    d = Decimal("1.5")
    assert to_decimal(d) is d
    assert to_decimal(3) == Decimal(3)
    assert to_decimal("0.0001") == TOLERANCE


def test_fmt_dec_is_stable():
    assert fmt_dec(Decimal(1)) == "1.000000000000000000E+0"
    assert fmt_dec(Decimal("123456"), places=3) == "1.235E+5"


# -----------------------------
# Grid helpers
# -----------------------------

def test_floor_units_floors_and_rejects_bad_values():
    print("[floor_units] 1.999 -> 1; negative and infinite raise")
    assert floor_units(Decimal("1.999")) == 1
    assert floor_units(Decimal("0")) == 0
    with pytest.raises(AmountDomainError):
        floor_units(Decimal("-0.5"))
    with pytest.raises(AmountDomainError):
        floor_units(INFINITY)


@pytest.mark.parametrize("bad", [-1, 1.5, True, "10", None])
def test_require_units_rejects_non_unit_values(bad):
    with pytest.raises(AmountDomainError):
        require_units("amount", bad)  # type: ignore[arg-type]


def test_require_units_accepts_large_ints():
    big = 10**30
    assert require_units("amount", big) == big


def test_apply_bps_floor():
    assert apply_bps_floor(1000, 9970, 10_000) == 997
    assert apply_bps_floor(999, 9950, 10_000) == 994
    assert apply_bps_floor(0, 9950, 10_000) == 0


# -----------------------------
# Ratio helpers
# -----------------------------

def test_effective_rate_and_estimate_output():
    rate = effective_rate(875, 1000)
    print("effective_rate(875/1000) ->", rate)
    assert rate == Decimal("0.875")
    assert estimate_output(1001, rate) == 875  # 875.875 floored
    assert estimate_output(0, rate) == 0
    with pytest.raises(AmountDomainError):
        effective_rate(1, 0)


def test_is_balanced_is_strict():
    print("[is_balanced] |r-1| < 0.0001 strictly")
    assert is_balanced(Decimal("1"))
    assert is_balanced(Decimal("1.00009"))
    assert is_balanced(Decimal("0.99991"))
    assert not is_balanced(Decimal("1.0001"))
    assert not is_balanced(INFINITY)
    assert not is_balanced(Decimal(0))
    assert ratio_deviation(INFINITY) == INFINITY
