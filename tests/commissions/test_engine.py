from decimal import Decimal

import pytest

from commissions.engine import (
    ApplicationMode,
    FlatFeeRate,
    PercentRate,
    ResolvedTier,
    compute_commission,
    rate_from_fields,
    resolve_commission,
    validate_tiers,
)
from core.exceptions import ConfigurationError


def _percent_tiers(*rows):
    return [
        ResolvedTier(level=index + 1, min_sessions=minimum, rate=PercentRate(Decimal(percent)))
        for index, (minimum, percent) in enumerate(rows)
    ]


STANDARD_TIERS = _percent_tiers((1, "25"), (11, "30"), (21, "35"))


def test_progressive_applies_reached_tier_to_every_session():
    result = compute_commission(25, Decimal("50"), STANDARD_TIERS, ApplicationMode.PROGRESSIVE)
    # 25 sessions * 50 * 35%
    assert result.amount == Decimal("437.50")
    assert result.tier_reached == 3


def test_graduated_applies_each_rate_to_its_bracket():
    result = compute_commission(25, Decimal("50"), STANDARD_TIERS, ApplicationMode.GRADUATED)
    # 10 * 12.50 + 10 * 15.00 + 5 * 17.50
    assert result.amount == Decimal("362.50")
    assert [(b.level, b.sessions) for b in result.brackets] == [(1, 10), (2, 10), (3, 5)]


def test_graduated_and_progressive_agree_inside_first_tier():
    for mode in (ApplicationMode.PROGRESSIVE, ApplicationMode.GRADUATED):
        assert resolve_commission(8, Decimal("50"), STANDARD_TIERS, mode) == Decimal("100.00")


def test_flat_fee_ignores_session_value():
    tiers = [ResolvedTier(level=1, min_sessions=1, rate=FlatFeeRate(Decimal("50")))]
    assert resolve_commission(8, Decimal("80"), tiers, ApplicationMode.FLAT) == Decimal("400.00")


def test_flat_mode_uses_first_tier_only():
    assert resolve_commission(25, Decimal("50"), STANDARD_TIERS, ApplicationMode.FLAT) == Decimal("312.50")


@pytest.mark.parametrize("mode", list(ApplicationMode))
def test_zero_sessions_earn_nothing(mode):
    result = compute_commission(0, Decimal("50"), STANDARD_TIERS, mode)
    assert result.amount == Decimal("0.00")
    assert result.tier_reached is None


def test_progressive_below_first_threshold_falls_back_to_first_tier():
    tiers = _percent_tiers((5, "20"), (10, "30"))
    assert resolve_commission(3, Decimal("100"), tiers, ApplicationMode.PROGRESSIVE) == Decimal("60.00")


def test_graduated_sessions_below_first_threshold_earn_nothing():
    tiers = _percent_tiers((5, "20"), (10, "30"))
    # sessions 5..9 at 20, sessions 10..12 at 30
    assert resolve_commission(12, Decimal("100"), tiers, ApplicationMode.GRADUATED) == Decimal("190.00")


def test_graduated_respects_explicit_max_and_gaps():
    tiers = [
        ResolvedTier(level=1, min_sessions=0, max_sessions=5, rate=PercentRate(Decimal("10"))),
        ResolvedTier(level=2, min_sessions=10, rate=PercentRate(Decimal("20"))),
    ]
    # sessions 1..5 at 10%, 6..9 in the gap, 10..12 at 20%
    assert resolve_commission(12, Decimal("100"), tiers, ApplicationMode.GRADUATED) == Decimal("110.00")


def test_mixed_rate_kinds_graduated():
    tiers = [
        ResolvedTier(level=1, min_sessions=1, rate=PercentRate(Decimal("50"))),
        ResolvedTier(level=2, min_sessions=4, rate=FlatFeeRate(Decimal("30"))),
    ]
    # 3 * 20 + 2 * 30
    assert resolve_commission(5, Decimal("40"), tiers, ApplicationMode.GRADUATED) == Decimal("120.00")


def test_graduated_rounds_half_up_to_the_cent():
    tiers = _percent_tiers((1, "33.33"))
    assert resolve_commission(1, Decimal("0.15"), tiers, ApplicationMode.GRADUATED) == Decimal("0.05")


def test_snapshot_is_json_ready():
    result = compute_commission(25, Decimal("50"), STANDARD_TIERS, ApplicationMode.GRADUATED)
    snapshot = result.snapshot(STANDARD_TIERS)
    assert snapshot["method"] == "GRADUATED"
    assert snapshot["commission"] == "362.50"
    assert snapshot["tiers"][0] == {
        "level": 1,
        "min": 1,
        "max": None,
        "type": "percentage",
        "percentage": "25",
        "flat_fee": None,
    }
    assert snapshot["brackets"][2] == {"level": 3, "sessions": 5, "amount": "87.50"}


def test_compute_requires_tiers_when_sessions_exist():
    with pytest.raises(ConfigurationError):
        compute_commission(3, Decimal("50"), [], ApplicationMode.PROGRESSIVE)


# ---------------------------------------------------------------------------
# Rates and validation
# ---------------------------------------------------------------------------

def test_rate_from_fields_exactly_one_kind():
    assert rate_from_fields(percent=Decimal("30")) == PercentRate(Decimal("30"))
    assert rate_from_fields(flat_fee="45") == FlatFeeRate(Decimal("45"))
    with pytest.raises(ConfigurationError):
        rate_from_fields(percent=Decimal("30"), flat_fee=Decimal("45"))
    with pytest.raises(ConfigurationError):
        rate_from_fields()


def test_validate_tiers_sorts_by_level():
    tiers = list(reversed(STANDARD_TIERS))
    assert [t.level for t in validate_tiers(tiers)] == [1, 2, 3]


@pytest.mark.parametrize(
    "tiers",
    [
        [],
        _percent_tiers((-1, "10")),
        _percent_tiers((1, "101")),
        _percent_tiers((1, "-5")),
        _percent_tiers((1, "10"), (1, "20")),
        _percent_tiers((10, "10"), (5, "20")),
        [ResolvedTier(level=1, min_sessions=1, rate=FlatFeeRate(Decimal("-1")))],
        [ResolvedTier(level=1, min_sessions=5, max_sessions=4, rate=PercentRate(Decimal("10")))],
        [
            ResolvedTier(level=1, min_sessions=1, max_sessions=10, rate=PercentRate(Decimal("10"))),
            ResolvedTier(level=2, min_sessions=10, rate=PercentRate(Decimal("20"))),
        ],
    ],
    ids=[
        "empty",
        "negative-threshold",
        "percent-above-100",
        "negative-percent",
        "duplicate-threshold",
        "descending-threshold",
        "negative-flat-fee",
        "max-below-min",
        "overlap",
    ],
)
def test_validate_tiers_rejects_malformed_tables(tiers):
    with pytest.raises(ConfigurationError):
        validate_tiers(tiers)
