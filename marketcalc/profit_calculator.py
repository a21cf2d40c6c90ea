"""Multi-Platform Profit Calculator.

Compute per-platform profitability for a product, including:
- Platform fee schedules (slabs, commission on SP or MRP, fixed settlement)
- GST output on the tax-inclusive selling price
- GST input credit on platform fees (tax-exclusive or tax-inclusive quotes)
- Ads spend and return provisioning
- Monthly projections
- Break-even price search and what-if price simulation

Every function is pure: inputs are never mutated and identical inputs
always give identical results.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

from marketcalc.config import config
from marketcalc.fees import fee_breakdown
from marketcalc.models import (
    CalculationResult,
    Platform,
    PlatformType,
    Product,
    to_float,
)

logger = logging.getLogger(__name__)


class BreakEvenOutOfRange(ValueError):
    """The target margin cannot be reached inside the search bracket."""

    def __init__(self, target_margin: float, low: float, high: float):
        self.target_margin = target_margin
        self.low = low
        self.high = high
        super().__init__(
            f"Target margin {target_margin}% is not reachable for prices "
            f"between {low:g} and {high:g}"
        )


def _extract_gst(amount: float, gst_rate: float) -> float:
    """GST contained in a tax-inclusive ``amount``."""
    if 1 + gst_rate == 0:
        return 0.0
    return amount * gst_rate / (1 + gst_rate)


def compute_result(
    product: Product,
    platform: Platform,
    global_ads_percent: float = 0.0,
) -> CalculationResult:
    """Calculate the full financial breakdown of ``product`` on ``platform``."""
    pricing = product.pricing_for(platform.id)
    mrp = (to_float(pricing.mrp) if pricing else 0) or to_float(product.mrp)
    sp = (to_float(pricing.selling_price) if pricing else 0) or to_float(product.selling_price)
    settlement = pricing.settlement if pricing else None
    return_percent = to_float(pricing.return_percent) if pricing else 0.0
    monthly_volume = to_float(pricing.monthly_volume) if pricing else 0.0
    ads_percent = to_float(platform.ads_percent) or to_float(global_ads_percent)
    gst_rate = to_float(product.gst_percent) / 100
    product_cost = to_float(product.cost_price)

    if platform.type == PlatformType.FIXED_SETTLEMENT:
        if settlement is not None:
            return _settlement_result(
                platform, mrp, sp, to_float(settlement), gst_rate, product_cost,
                ads_percent, return_percent, monthly_volume,
            )
        logger.warning(
            "compute_result: platform=%s has no settlement for product=%s, "
            "using commission formula", platform.id, product.id,
        )

    fees = fee_breakdown(platform, sp, mrp)
    total_fees = fees.total_platform_fees
    gst_output = _extract_gst(sp, gst_rate)

    if platform.fees_excl_tax:
        # seller pays GST on top of the fees and claims it back as input credit
        gst_input_on_fees = total_fees * gst_rate
        net_received = sp - total_fees - total_fees * gst_rate - fees.discount
    else:
        gst_input_on_fees = _extract_gst(total_fees + fees.discount, gst_rate)
        net_received = sp - total_fees - fees.discount

    net_gst = gst_output - gst_input_on_fees
    ads_cost = sp * ads_percent / 100
    return_cost = net_received * return_percent / 100
    profit = net_received - product_cost - net_gst - ads_cost - return_cost
    margin = profit / sp * 100 if sp > 0 else 0.0

    return CalculationResult(
        platform_id=platform.id,
        platform_name=platform.name,
        mrp=mrp,
        selling_price=sp,
        settlement=None,
        commission=fees.commission,
        commission_label=fees.commission_label,
        discount=fees.discount,
        shipping_fee=fees.shipping_fee,
        storage_fee=fees.storage_fee,
        closing_fee=fees.closing_fee,
        pick_and_pack_fee=fees.pick_and_pack_fee,
        total_platform_fees=total_fees,
        net_received=net_received,
        product_cost=product_cost,
        gst_output=gst_output,
        gst_input_on_cost=0.0,
        gst_input_on_fees=gst_input_on_fees,
        net_gst=net_gst,
        ads_cost=ads_cost,
        return_cost=return_cost,
        profit=profit,
        profit_margin=margin,
        monthly_volume=monthly_volume,
        monthly_profit=profit * monthly_volume,
    )


def _settlement_result(
    platform: Platform,
    mrp: float,
    sp: float,
    settlement: float,
    gst_rate: float,
    product_cost: float,
    ads_percent: float,
    return_percent: float,
    monthly_volume: float,
) -> CalculationResult:
    gst_output = _extract_gst(settlement, gst_rate)
    ads_cost = settlement * ads_percent / 100
    return_cost = settlement * return_percent / 100
    profit = settlement - gst_output - product_cost - ads_cost - return_cost
    margin = profit / settlement * 100 if settlement > 0 else 0.0
    return CalculationResult(
        platform_id=platform.id,
        platform_name=platform.name,
        mrp=mrp,
        selling_price=sp,
        settlement=settlement,
        commission=0.0,
        commission_label="Fixed Settlement",
        discount=0.0,
        shipping_fee=0.0,
        storage_fee=0.0,
        closing_fee=0.0,
        pick_and_pack_fee=0.0,
        total_platform_fees=0.0,
        net_received=settlement,
        product_cost=product_cost,
        gst_output=gst_output,
        gst_input_on_cost=0.0,
        gst_input_on_fees=0.0,
        net_gst=gst_output,
        ads_cost=ads_cost,
        return_cost=return_cost,
        profit=profit,
        profit_margin=margin,
        monthly_volume=monthly_volume,
        monthly_profit=profit * monthly_volume,
    )


def compute_all_results(
    product: Product,
    platforms: Iterable[Platform],
    global_ads_percent: float = 0.0,
) -> list[CalculationResult]:
    """One result per platform, in the order given."""
    return [compute_result(product, p, global_ads_percent) for p in platforms]


def _margin_at(product: Product, platform: Platform, price: float,
               global_ads_percent: float) -> float:
    trial = product.with_pricing(
        platform.id, selling_price=price, mrp=max(price, to_float(product.mrp))
    )
    return compute_result(trial, platform, global_ads_percent).profit_margin


def find_break_even_price(
    product: Product,
    platform: Platform,
    target_margin_percent: float,
    global_ads_percent: float = 0.0,
    strict: bool = True,
) -> int:
    """Lowest whole selling price reaching ``target_margin_percent`` on ``platform``.

    Bisects the configured price bracket for a fixed number of iterations.
    With ``strict`` (the default) a target that the bracket cannot satisfy
    raises ``BreakEvenOutOfRange``; otherwise the bracket edge is returned.
    """
    low, high = config.BREAK_EVEN_LOW, config.BREAK_EVEN_HIGH
    target = to_float(target_margin_percent)

    if strict:
        if _margin_at(product, platform, high, global_ads_percent) < target:
            raise BreakEvenOutOfRange(target, low, high)
        if _margin_at(product, platform, low, global_ads_percent) >= target:
            raise BreakEvenOutOfRange(target, low, high)

    lo, hi = low, high
    for _ in range(config.BREAK_EVEN_ITERATIONS):
        mid = (lo + hi) / 2
        if _margin_at(product, platform, mid, global_ads_percent) < target:
            lo = mid
        else:
            hi = mid

    price = math.ceil(hi)
    logger.debug(
        "find_break_even_price: product=%s platform=%s target=%s price=%s",
        product.id, platform.id, target, price,
    )
    return price


def simulate(
    product: Product,
    platform: Platform,
    new_selling_price: float,
    new_mrp: Optional[float] = None,
    global_ads_percent: float = 0.0,
) -> CalculationResult:
    """Evaluate ``product`` on ``platform`` as if it sold at ``new_selling_price``."""
    pricing = product.pricing_for(platform.id)
    mrp = new_mrp or (pricing.mrp if pricing else 0) or product.mrp
    trial = product.with_pricing(platform.id, selling_price=new_selling_price, mrp=mrp)
    return compute_result(trial, platform, global_ads_percent)


def price_sweep(
    product: Product,
    platform: Platform,
    prices: Iterable[float],
    global_ads_percent: float = 0.0,
) -> list[CalculationResult]:
    """Simulate a list of candidate prices on one platform."""
    return [simulate(product, platform, price, None, global_ads_percent) for price in prices]


def format_result(result: CalculationResult) -> str:
    """Format a calculation result as readable text."""
    lines = [f"═══ {result.platform_name} ═══"]
    if result.settlement is not None:
        lines.append(f"Settlement:          ₹{result.settlement:.2f}")
    else:
        lines.extend([
            f"MRP:                 ₹{result.mrp:.2f}",
            f"Selling Price:       ₹{result.selling_price:.2f}",
            "",
            "Platform Fees:",
            f"  {result.commission_label + ':':<19}₹{result.commission:.2f}",
        ])
        for label, value in (
            ("Closing Fee:", result.closing_fee),
            ("Shipping:", result.shipping_fee),
            ("Pick & Pack:", result.pick_and_pack_fee),
            ("Storage:", result.storage_fee),
            ("Discount:", result.discount),
        ):
            if value:
                lines.append(f"  {label:<19}₹{value:.2f}")
        lines.append(f"  {'Total Fees:':<19}₹{result.total_platform_fees:.2f}")
    lines.extend([
        "─" * 30,
        f"Net Received:        ₹{result.net_received:.2f}",
        f"Product Cost:        ₹{result.product_cost:.2f}",
        f"GST Output:          ₹{result.gst_output:.2f}",
        f"GST Input (fees):    ₹{result.gst_input_on_fees:.2f}",
        f"Net GST:             ₹{result.net_gst:.2f}",
        f"Ads:                 ₹{result.ads_cost:.2f}",
        f"Returns:             ₹{result.return_cost:.2f}",
        "─" * 30,
        f"Profit:              ₹{result.profit:.2f}",
        f"Margin:              {result.profit_margin:.1f}%",
    ])
    if result.monthly_volume:
        lines.append(
            f"Monthly:             ₹{result.monthly_profit:.2f} "
            f"({result.monthly_volume:g} units)"
        )
    if result.profit < 0:
        lines.append("\n⚠️ Selling at a loss on this platform")
    return "\n".join(lines)
