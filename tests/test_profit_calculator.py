"""Tests for profit_calculator: profit engine, break-even solver and simulator."""
import logging
from dataclasses import replace

import pytest

from marketcalc.config import config
from marketcalc.models import Platform, PlatformType, Product, get_platform
from marketcalc.profit_calculator import (
    BreakEvenOutOfRange,
    compute_all_results,
    compute_result,
    find_break_even_price,
    format_result,
    price_sweep,
    simulate,
)


def _reconstructed_profit(r):
    return r.net_received - r.product_cost - r.net_gst - r.ads_cost - r.return_cost


# ── Amazon end-to-end ──

class TestAmazonExample:
    @pytest.fixture
    def result(self, fiber, amazon):
        return compute_result(fiber, amazon, 0)

    def test_fees(self, result):
        assert result.commission == pytest.approx(62.91)
        assert result.closing_fee == 25
        assert result.shipping_fee == 42
        assert result.pick_and_pack_fee == 17
        assert result.total_platform_fees == pytest.approx(146.91)

    def test_gst(self, result):
        assert result.gst_output == pytest.approx(106.6271, abs=1e-4)
        assert result.gst_input_on_fees == pytest.approx(26.4438, abs=1e-4)
        assert result.net_gst == pytest.approx(80.1833, abs=1e-4)
        assert result.gst_input_on_cost == 0

    def test_profit(self, result):
        assert result.net_received == pytest.approx(525.6462, abs=1e-4)
        assert result.profit == pytest.approx(305.4629, abs=1e-4)
        assert result.profit_margin == pytest.approx(43.70, abs=0.01)

    def test_uses_product_defaults_without_override(self, result):
        assert result.selling_price == 699
        assert result.mrp == 799
        assert result.settlement is None
        assert result.monthly_volume == 0
        assert result.monthly_profit == 0


# ── Tax-inclusive fee platforms ──

class TestInclusiveFees:
    def test_sp_commission_override(self, fiber, rk_world):
        r = compute_result(fiber, rk_world)
        assert r.selling_price == 649
        assert r.commission == pytest.approx(207.68)
        assert r.gst_input_on_fees == pytest.approx(207.68 * 0.18 / 1.18)
        assert r.net_received == pytest.approx(441.32)
        assert r.profit == pytest.approx(234.0)
        assert r.profit_margin == pytest.approx(36.055, abs=0.01)

    def test_monthly_profit(self, fiber, rk_world):
        r = compute_result(fiber, rk_world)
        assert r.monthly_volume == 20
        assert r.monthly_profit == pytest.approx(r.profit * 20)

    def test_mrp_commission_with_returns(self, fiber, platforms):
        r = compute_result(fiber, get_platform(platforms, "zepto"))
        assert r.commission == pytest.approx(287.64)
        assert r.discount == pytest.approx(100)
        assert r.gst_input_on_fees == pytest.approx(387.64 * 0.18 / 1.18)
        assert r.net_received == pytest.approx(311.36)
        assert r.return_cost == pytest.approx(15.568)
        assert r.profit == pytest.approx(108.2964, abs=1e-4)

    def test_zero_commission(self, fiber, platforms):
        r = compute_result(fiber, get_platform(platforms, "meesho"))
        assert r.total_platform_fees == 0
        assert r.net_received == 699
        assert r.profit == pytest.approx(699 - 140 - 699 * 0.18 / 1.18)


# ── Fixed settlement ──

class TestFixedSettlement:
    def test_settlement_branch(self, fiber, myntra):
        r = compute_result(fiber, myntra)
        gst = 450 * 0.18 / 1.18
        assert r.settlement == 450
        assert r.commission_label == "Fixed Settlement"
        assert r.net_received == 450
        assert r.total_platform_fees == 0
        assert r.gst_output == pytest.approx(gst)
        assert r.net_gst == pytest.approx(gst)
        assert r.gst_input_on_fees == 0
        assert r.profit == pytest.approx(450 - gst - 140)
        assert r.profit_margin == pytest.approx((450 - gst - 140) / 450 * 100)

    def test_ads_and_returns_on_settlement(self, fiber, myntra):
        product = fiber.with_pricing("myntra", return_percent=10)
        r = compute_result(product, myntra, 5)
        assert r.ads_cost == pytest.approx(22.5)
        assert r.return_cost == pytest.approx(45)

    def test_zero_settlement_margin(self, fiber, myntra):
        product = fiber.with_pricing("myntra", settlement=0)
        r = compute_result(product, myntra)
        assert r.profit_margin == 0
        assert r.profit == pytest.approx(-140)

    def test_missing_settlement_falls_back(self, fiber, platforms, caplog):
        flipkart = get_platform(platforms, "flipkart")
        with caplog.at_level(logging.WARNING, logger="marketcalc.profit_calculator"):
            r = compute_result(fiber, flipkart)
        assert r.settlement is None
        assert r.total_platform_fees == 0
        assert r.profit == pytest.approx(699 - 140 - 699 * 0.18 / 1.18)
        assert "no settlement" in caplog.text


# ── Ads resolution ──

class TestAds:
    def test_global_rate(self, fiber, rk_world):
        assert compute_result(fiber, rk_world, 10).ads_cost == pytest.approx(64.9)

    def test_platform_rate_wins(self, fiber, rk_world):
        platform = replace(rk_world, ads_percent=5)
        assert compute_result(fiber, platform, 10).ads_cost == pytest.approx(32.45)

    def test_ads_reduce_profit(self, fiber, rk_world):
        assert compute_result(fiber, rk_world, 10).profit < compute_result(fiber, rk_world).profit


# ── Accounting rules ──

class TestAccountingRules:
    @pytest.mark.parametrize("sp", [0, 1, 149, 299, 300, 499.99, 500, 699, 1201, 5000])
    def test_profit_identity_all_platforms(self, fiber, platforms, sp):
        product = replace(fiber, selling_price=sp, platform_pricing={})
        product = product.with_pricing("myntra", settlement=sp)
        for r in compute_all_results(product, platforms, 7):
            assert r.profit == pytest.approx(_reconstructed_profit(r))

    @pytest.mark.parametrize("sp", [149, 450, 699, 1250])
    def test_exclusive_fee_input_credit(self, fiber, platforms, sp):
        product = replace(fiber, selling_price=sp, platform_pricing={})
        for pid in ("amazon_fba", "blinkit"):
            r = compute_result(product, get_platform(platforms, pid))
            assert r.gst_input_on_fees == pytest.approx(r.total_platform_fees * 0.18)

    @pytest.mark.parametrize("sp", [149, 450, 699, 1250])
    def test_inclusive_fee_input_credit(self, fiber, platforms, sp):
        product = replace(fiber, selling_price=sp, platform_pricing={})
        for p in platforms:
            if p.fees_excl_tax is False:
                r = compute_result(product, p)
                expected = (r.total_platform_fees + r.discount) * 0.18 / 1.18
                assert r.gst_input_on_fees == pytest.approx(expected)

    def test_zero_price_margin_is_zero(self, rk_world):
        product = Product(id="z", cost_price=50, gst_percent=18)
        r = compute_result(product, rk_world)
        assert r.profit_margin == 0
        assert r.profit == pytest.approx(-50)

    def test_malformed_numbers_do_not_raise(self, rk_world):
        product = Product(id="m", cost_price=None, gst_percent="abc", selling_price="500")
        r = compute_result(product, rk_world)
        assert r.product_cost == 0
        assert r.gst_output == 0
        assert r.selling_price == 500

    @pytest.mark.parametrize("ptype", [
        PlatformType.SP_COMMISSION, PlatformType.MRP_COMMISSION, PlatformType.FIXED_SETTLEMENT,
    ])
    def test_malformed_platform_numbers_do_not_raise(self, fiber, ptype):
        platform = Platform("x", "X", ptype, commission_percent="abc", ads_percent="n/a")
        r = compute_result(fiber, platform)
        assert r.commission == 0
        assert r.ads_cost == 0

    def test_string_commission_is_used(self, fiber):
        platform = Platform("x", "X", PlatformType.SP_COMMISSION, commission_percent="10")
        assert compute_result(fiber, platform).commission == pytest.approx(69.9)

    def test_commission_set_after_construction(self, fiber, rk_world):
        rk_world.commission_percent = "10"
        assert compute_result(fiber, rk_world).commission == pytest.approx(64.9)

    def test_zero_override_uses_default(self, fiber, rk_world):
        product = fiber.with_pricing("rk_world", selling_price=0, mrp=0)
        r = compute_result(product, rk_world)
        assert r.selling_price == 699
        assert r.mrp == 799

    def test_deterministic(self, fiber, platforms):
        assert compute_all_results(fiber, platforms, 3) == compute_all_results(fiber, platforms, 3)


class TestComputeAll:
    def test_order_preserved(self, fiber, platforms):
        results = compute_all_results(fiber, platforms)
        assert [r.platform_id for r in results] == [p.id for p in platforms]

    def test_empty(self, fiber):
        assert compute_all_results(fiber, []) == []


# ── Simulator ──

class TestSimulate:
    def test_matches_override(self, fiber, rk_world):
        simulated = simulate(fiber, rk_world, 599)
        expected = compute_result(fiber.with_pricing("rk_world", selling_price=599), rk_world)
        assert simulated == expected

    def test_does_not_mutate_product(self, fiber, rk_world):
        before = fiber.to_dict()
        simulate(fiber, rk_world, 599, 899)
        assert fiber.to_dict() == before

    def test_other_platforms_untouched(self, fiber, rk_world, platforms):
        simulate(fiber, rk_world, 599)
        zepto = get_platform(platforms, "zepto")
        assert compute_result(fiber, zepto).selling_price == 699

    def test_new_mrp(self, fiber, platforms):
        zepto = get_platform(platforms, "zepto")
        r = simulate(fiber, zepto, 699, 899)
        assert r.mrp == 899
        assert r.discount == pytest.approx(200)

    def test_mrp_falls_back_to_product_default(self, cheap_item, rk_world):
        assert simulate(cheap_item, rk_world, 179).mrp == 199

    def test_price_sweep(self, fiber, rk_world):
        results = price_sweep(fiber, rk_world, [499, 599, 699])
        assert [r.selling_price for r in results] == [499, 599, 699]
        assert results[0].profit < results[1].profit < results[2].profit


# ── Break-even ──

class TestBreakEven:
    def test_known_price(self, fiber, rk_world):
        # margin = 57.627 - 14000/sp on a 32% SP commission at 18% GST
        assert find_break_even_price(fiber, rk_world, 20) == 373

    @pytest.mark.parametrize("target", [0, 10, 20, 30, 40])
    def test_round_trip(self, fiber, rk_world, target):
        price = find_break_even_price(fiber, rk_world, target)
        margin = simulate(fiber, rk_world, price).profit_margin
        assert margin >= target
        assert margin == pytest.approx(target, abs=0.1)

    def test_amazon_round_trip(self, fiber, amazon):
        price = find_break_even_price(fiber, amazon, 30)
        assert simulate(fiber, amazon, price).profit_margin >= 30

    def test_unreachable_target_raises(self, fiber, rk_world):
        with pytest.raises(BreakEvenOutOfRange) as exc:
            find_break_even_price(fiber, rk_world, 60)
        assert exc.value.target_margin == 60
        assert exc.value.high == config.BREAK_EVEN_HIGH

    def test_fixed_settlement_is_price_independent(self, fiber, myntra):
        with pytest.raises(BreakEvenOutOfRange):
            find_break_even_price(fiber, myntra, 20)

    def test_non_strict_returns_boundary(self, fiber, rk_world):
        assert find_break_even_price(fiber, rk_world, 60, strict=False) == 10000

    def test_does_not_mutate_product(self, fiber, rk_world):
        before = fiber.to_dict()
        find_break_even_price(fiber, rk_world, 20)
        assert fiber.to_dict() == before

    def test_is_value_error(self):
        assert issubclass(BreakEvenOutOfRange, ValueError)


# ── Formatting ──

class TestFormatResult:
    def test_fee_platform(self, fiber, amazon):
        text = format_result(compute_result(fiber, amazon))
        assert "Amazon FBA" in text
        assert "Referral Fee (9%)" in text
        assert "₹305.46" in text
        assert "43.7%" in text

    def test_settlement_platform(self, fiber, myntra):
        text = format_result(compute_result(fiber, myntra))
        assert "Settlement:" in text
        assert "Monthly:" in text

    def test_loss_warning(self, cheap_item, amazon):
        r = compute_result(cheap_item, amazon)
        assert r.profit < 0
        assert "⚠️" in format_result(r)

    def test_custom_platform(self):
        p = Platform("shop", "Own Shop", PlatformType.ZERO_COMMISSION)
        text = format_result(compute_result(Product(id="a", selling_price=100), p))
        assert "Own Shop" in text
