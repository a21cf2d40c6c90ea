"""Tests for monthly snapshots."""
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from marketcalc.changelog import update_platform
from marketcalc.models import MonthlySnapshot
from marketcalc.profit_calculator import compute_result
from marketcalc.snapshots import (
    add_snapshot,
    capture_snapshot,
    compare_latest,
    delete_snapshot,
    snapshot_totals,
)

MARCH = datetime(2025, 3, 31, 18, 0, tzinfo=timezone.utc)
APRIL = datetime(2025, 4, 30, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def march(catalogue, platforms):
    return capture_snapshot(catalogue, platforms, 0, MARCH)


class TestCapture:
    def test_metadata(self, march):
        assert march.month == "2025-03"
        assert march.date == MARCH.isoformat()
        assert march.id.startswith(str(int(MARCH.timestamp() * 1000)) + "-")
        assert march.global_ads_percent == 0

    def test_same_instant_ids_differ(self, catalogue, platforms):
        first = capture_snapshot(catalogue, platforms, 0, MARCH)
        second = capture_snapshot(catalogue, platforms, 0, MARCH)
        assert first.id != second.id

    def test_one_entry_per_product_and_platform(self, march, catalogue, platforms):
        assert [sr.sku_id for sr in march.sku_results] == ["1", "2"]
        for sr in march.sku_results:
            assert [p.platform_id for p in sr.platforms] == [p.id for p in platforms]

    def test_values_match_calculator(self, march, fiber, rk_world):
        entry = march.sku_results[0].for_platform("rk_world")
        result = compute_result(fiber, rk_world)
        assert entry.profit == result.profit
        assert entry.margin == result.profit_margin
        assert entry.volume == 20
        assert entry.monthly_profit == result.monthly_profit

    def test_platform_config_recorded(self, march):
        assert march.platform_data["zepto"].commission_percent == 36
        assert march.platform_data["amazon_fba"].commission_percent is None

    def test_frozen_against_later_edits(self, march, catalogue, platforms):
        updated, _ = update_platform(platforms, "rk_world", "commissionPercent", 10)
        assert march.platform_data["rk_world"].commission_percent == 32
        later = capture_snapshot(catalogue, updated, 0, APRIL)
        before = march.sku_results[0].for_platform("rk_world").profit
        after = later.sku_results[0].for_platform("rk_world").profit
        assert after > before

    def test_dict_round_trip(self, march):
        assert MonthlySnapshot.from_dict(march.to_dict()) == march

    def test_empty_catalogue(self, platforms):
        snap = capture_snapshot([], platforms, 0, MARCH)
        assert snap.sku_results == ()
        assert snapshot_totals(snap) == {
            "skus": 0, "total_monthly_profit": 0, "avg_margin": 0.0, "losses": 0,
        }


class TestList:
    def test_add_prepends(self, march, catalogue, platforms):
        april = capture_snapshot(catalogue, platforms, 0, APRIL)
        snaps = add_snapshot(add_snapshot([], march), april)
        assert [s.month for s in snaps] == ["2025-04", "2025-03"]

    def test_delete(self, march):
        assert delete_snapshot([march], march.id) == []
        assert delete_snapshot([march], "missing") == [march]

    def test_totals(self, march):
        entries = [p for sr in march.sku_results for p in sr.platforms]
        totals = snapshot_totals(march)
        assert totals["skus"] == 2
        assert totals["total_monthly_profit"] == pytest.approx(
            sum(p.monthly_profit for p in entries))
        assert totals["losses"] == sum(1 for p in entries if p.profit < 0)


class TestCompare:
    def test_needs_two(self, march):
        assert compare_latest([]) is None
        assert compare_latest([march]) is None

    def test_config_and_result_deltas(self, march, catalogue, platforms):
        updated, _ = update_platform(platforms, "rk_world", "commissionPercent", 30)
        april = capture_snapshot(catalogue, updated, 5, APRIL)
        comparison = compare_latest([april, march])

        assert comparison.latest is april
        assert comparison.global_ads_change == 5
        changed = [c.platform_id for c in comparison.config_changes if c.changed]
        assert changed == ["rk_world"]
        assert len(comparison.deltas) == 2 * len(platforms)

        delta = next(d for d in comparison.deltas
                     if d.sku_id == "1" and d.platform_id == "rk_world")
        old = march.sku_results[0].for_platform("rk_world")
        new = april.sku_results[0].for_platform("rk_world")
        assert delta.profit_change == pytest.approx(new.profit - old.profit)
        assert delta.margin_change == pytest.approx(new.margin - old.margin)

    def test_new_sku_skipped(self, march, catalogue, platforms, fiber):
        extra = replace(fiber, id="9", name="New SKU")
        april = capture_snapshot([*catalogue, extra], platforms, 0, APRIL)
        comparison = compare_latest([april, march])
        assert all(d.sku_id != "9" for d in comparison.deltas)
