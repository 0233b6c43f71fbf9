"""
Tests for shared commission helpers.

Covers:
- MonthPeriod parsing and bounds
- Tier lookup and monotonicity
- Money rounding and percent display
"""

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from leadflow.exceptions import ValidationError
from leadflow.models import LeadSource
from leadflow.services.commission import (
    MonthPeriod,
    format_percent,
    inbound_predicate_for,
    lookup_tier,
    money,
    mql_leads_are_inbound,
    no_inbound_leads,
)

SCENARIO_TIERS = [(0, Decimal("0")), (3, Decimal("500")), (6, Decimal("1000"))]


# ── MonthPeriod ───────────────────────────────────────────


class TestMonthPeriod:
    def test_parse(self):
        period = MonthPeriod.parse("2026-02")
        assert (period.year, period.month) == (2026, 2)
        assert str(period) == "2026-02"

    @pytest.mark.parametrize("value", ["", "2026", "2026-2", "26-02", "2026/02", "2026-13", None])
    def test_parse_rejects(self, value):
        with pytest.raises(ValidationError):
            MonthPeriod.parse(value)

    def test_bounds_cover_whole_month(self):
        period = MonthPeriod.parse("2024-02")
        assert period.start == datetime(2024, 2, 1, tzinfo=timezone.utc)
        assert period.end.date().day == 29
        assert (period.end.hour, period.end.minute, period.end.second) == (23, 59, 59)

    def test_previous_wraps_year(self):
        assert MonthPeriod(2026, 1).previous() == MonthPeriod(2025, 12)
        assert MonthPeriod(2026, 7).previous() == MonthPeriod(2026, 6)

    def test_containing(self):
        moment = datetime(2026, 10, 19, 8, 30, tzinfo=timezone.utc)
        assert MonthPeriod.containing(moment).label == "2026-10"


# ── Tier lookup ───────────────────────────────────────────


class TestLookupTier:
    @pytest.mark.parametrize(
        "active, expected",
        [
            (0, (0, Decimal("0"))),
            (2, (0, Decimal("0"))),
            (3, (3, Decimal("500"))),
            (4, (3, Decimal("500"))),
            (6, (6, Decimal("1000"))),
            (50, (6, Decimal("1000"))),
        ],
    )
    def test_highest_threshold_reached_wins(self, active, expected):
        assert lookup_tier(SCENARIO_TIERS, active) == expected

    def test_order_of_tiers_does_not_matter(self):
        shuffled = [SCENARIO_TIERS[2], SCENARIO_TIERS[0], SCENARIO_TIERS[1]]
        assert lookup_tier(shuffled, 4) == (3, Decimal("500"))

    def test_below_every_threshold_pays_nothing(self):
        assert lookup_tier([(2, Decimal("100"))], 1) == (None, Decimal("0"))

    def test_empty_table(self):
        assert lookup_tier([], 10) == (None, Decimal("0"))

    def test_monotonic_in_active_leads(self):
        amounts = [lookup_tier(SCENARIO_TIERS, n)[1] for n in range(0, 20)]
        assert amounts == sorted(amounts)


# ── Formatting ────────────────────────────────────────────


class TestFormatting:
    def test_money_rounds_half_up(self):
        assert money(Decimal("12.345")) == Decimal("12.35")
        assert money(Decimal("12.344")) == Decimal("12.34")
        assert str(money(0)) == "0.00"

    @pytest.mark.parametrize(
        "factor, display",
        [
            (Decimal("0.5"), "50%"),
            (Decimal("0.5000"), "50%"),
            (Decimal("1"), "100%"),
            (Decimal("0.375"), "37.5%"),
            (Decimal("0.2"), "20%"),
            (Decimal("0"), "0%"),
        ],
    )
    def test_format_percent(self, factor, display):
        assert format_percent(factor) == display


# ── Inbound detection ─────────────────────────────────────


class TestInboundPredicate:
    def test_default_mode_marks_nothing(self):
        lead = SimpleNamespace(source=LeadSource.MQL)
        assert inbound_predicate_for("none") is no_inbound_leads
        assert no_inbound_leads(lead) is False

    def test_mql_mode(self):
        assert inbound_predicate_for("mql") is mql_leads_are_inbound
        assert mql_leads_are_inbound(SimpleNamespace(source=LeadSource.MQL)) is True
        assert mql_leads_are_inbound(SimpleNamespace(source=LeadSource.SQL)) is False
