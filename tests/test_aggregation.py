"""Tests for per-agent aggregation and team metrics."""

import pytest

from arena.aggregation import (
    aggregate_by_agent,
    effort_score,
    efficiency_by_agent,
    safe_div,
    team_summary,
    win_rate,
)
from arena.records import SaleStatus


class TestSafeDiv:
    def test_zero_denominator_gives_default(self):
        assert safe_div(5, 0) == 0.0
        assert safe_div(5, 0, default=-1.0) == -1.0

    def test_divides(self):
        assert safe_div(9, 3) == 3.0


class TestWinRate:
    def test_zero_without_closed_deals(self):
        assert win_rate(0, 0) == 0

    def test_rounds_to_integer_percentage(self):
        assert win_rate(1, 2) == 33
        assert win_rate(2, 1) == 67

    def test_rounds_half_up(self):
        assert win_rate(1, 7) == 13
        assert win_rate(1, 1) == 50

    @pytest.mark.parametrize("won, lost", [(0, 5), (5, 0), (3, 4), (100, 1)])
    def test_within_bounds(self, won, lost):
        assert 0 <= win_rate(won, lost) <= 100


class TestAggregateByAgent:
    def test_one_entry_per_agent_in_first_seen_order(self, records):
        stats = aggregate_by_agent(records)
        assert [s.agent_name for s in stats] == ["Ana", "Luis"]

    def test_counts_and_revenue(self, records):
        ana, luis = aggregate_by_agent(records)
        assert ana.total_revenue == 1200.0
        assert (ana.won_count, ana.lost_count, ana.open_count, ana.lead_count) == (1, 1, 0, 2)
        assert ana.win_rate == 50
        assert luis.win_rate == 100
        assert luis.open_count == 1

    def test_open_records_only_give_zero_win_rate(self, make_record):
        (stats,) = aggregate_by_agent([make_record(status=SaleStatus.OPEN)])
        assert stats.win_rate == 0
        assert stats.total_revenue == 0.0

    def test_won_without_days_to_close_is_excluded_from_average(self, make_record):
        (stats,) = aggregate_by_agent([
            make_record("a", revenue=100.0, days_to_close=4.0),
            make_record("b", revenue=100.0, days_to_close=None),
        ])
        assert stats.avg_days_to_close == 4.0

    def test_no_timed_wins_average_is_zero(self, make_record):
        (stats,) = aggregate_by_agent([make_record(revenue=10.0)])
        assert stats.avg_days_to_close == 0.0

    def test_empty_input(self):
        assert aggregate_by_agent([]) == []

    def test_deterministic(self, records):
        assert aggregate_by_agent(records) == aggregate_by_agent(list(records))


class TestEfficiency:
    def test_effort_score_weights(self, make_record):
        record = make_record(calls_outgoing=10, whatsapp_answered=4, calls_incoming_failed=5)
        assert effort_score(record) == pytest.approx(10 + 2 - 1)

    def test_rows_sorted_by_revenue(self, records):
        rows = efficiency_by_agent(records)
        assert [r["agent"] for r in rows] == ["Ana", "Luis"]
        ana = rows[0]
        assert ana["effort_per_lead"] == pytest.approx((5 + 2 + 3 + 1) / 2)
        assert ana["revenue_per_lead"] == pytest.approx(600.0)
        assert ana["avg_ticket"] == pytest.approx(1200.0)

    def test_zero_effort_has_zero_revenue_per_effort(self, make_record):
        (row,) = efficiency_by_agent([make_record(revenue=500.0)])
        assert row["revenue_per_effort"] == 0.0


class TestTeamSummary:
    def test_summary(self, records):
        summary = team_summary(records)
        assert summary["total_leads"] == 4
        assert summary["won_count"] == 2
        assert summary["lost_count"] == 1
        assert summary["open_count"] == 1
        assert summary["total_revenue"] == 2000.0
        assert summary["avg_ticket"] == 1000.0
        assert summary["win_rate"] == 67
        assert summary["conversion_rate"] == pytest.approx(50.0)

    def test_empty_summary_is_all_zero(self):
        summary = team_summary([])
        assert summary["total_leads"] == 0
        assert summary["win_rate"] == 0
        assert summary["avg_ticket"] == 0.0
