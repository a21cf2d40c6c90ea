"""Per-platform fee schedules.

Each schedule maps a selling price (and where relevant the MRP and the
configured commission) to a ``FeeBreakdown``. Fixed-settlement platforms
have no schedule; the profit calculator handles them directly.
"""

from __future__ import annotations

from typing import Callable

from marketcalc.models import FeeBreakdown, Platform, PlatformType, to_float


# Amazon FBA referral slabs: (upper bound exclusive, rate %)
AMAZON_REFERRAL_SLABS = ((300, 0), (500, 5))
AMAZON_REFERRAL_TOP_RATE = 9
AMAZON_CLOSING_FEE_LOW = 12
AMAZON_CLOSING_FEE_HIGH = 25
AMAZON_CLOSING_FEE_THRESHOLD = 500
AMAZON_SHIPPING_FEE = 42
AMAZON_PICK_AND_PACK_FEE = 17

# Blinkit commission slabs: (low inclusive, high inclusive, rate %)
BLINKIT_COMMISSION_SLABS = (
    (0, 500, 2),
    (501, 700, 6),
    (701, 900, 13),
    (901, 1200, 16),
)
BLINKIT_TOP_RATE = 18
BLINKIT_SHIPPING_FEE = 50
BLINKIT_STORAGE_RATE = 0.19


def _fmt_rate(rate: float) -> str:
    return f"{rate:g}"


def amazon_fba(sp: float, mrp: float = 0.0) -> FeeBreakdown:
    """Amazon FBA: referral slab, closing fee, flat shipping and pick & pack."""
    rate = AMAZON_REFERRAL_TOP_RATE
    for upper, slab_rate in AMAZON_REFERRAL_SLABS:
        if sp < upper:
            rate = slab_rate
            break
    closing = (AMAZON_CLOSING_FEE_LOW if sp < AMAZON_CLOSING_FEE_THRESHOLD
               else AMAZON_CLOSING_FEE_HIGH)
    return FeeBreakdown(
        commission=sp * rate / 100,
        commission_label=f"Referral Fee ({_fmt_rate(rate)}%)",
        closing_fee=closing,
        shipping_fee=AMAZON_SHIPPING_FEE,
        pick_and_pack_fee=AMAZON_PICK_AND_PACK_FEE,
    )


def blinkit_rate(sp: float) -> float:
    for low, high, rate in BLINKIT_COMMISSION_SLABS:
        if low <= sp <= high:
            return rate
    return BLINKIT_TOP_RATE


def blinkit(sp: float) -> FeeBreakdown:
    """Blinkit: commission slab, flat shipping and storage at 19% of SP."""
    rate = blinkit_rate(sp)
    return FeeBreakdown(
        commission=sp * rate / 100,
        commission_label=f"Commission ({_fmt_rate(rate)}%)",
        shipping_fee=BLINKIT_SHIPPING_FEE,
        storage_fee=sp * BLINKIT_STORAGE_RATE,
    )


def sp_commission(sp: float, commission_percent: float) -> FeeBreakdown:
    return FeeBreakdown(
        commission=sp * commission_percent / 100,
        commission_label=f"Commission ({_fmt_rate(commission_percent)}%)",
    )


def zero_commission(sp: float) -> FeeBreakdown:
    return sp_commission(sp, 0)


def mrp_commission(sp: float, mrp: float, commission_percent: float) -> FeeBreakdown:
    """Commission charged on MRP; the MRP-to-SP gap is deducted as a discount."""
    return FeeBreakdown(
        commission=mrp * commission_percent / 100,
        commission_label=f"Commission ({_fmt_rate(commission_percent)}% on MRP)",
        discount=mrp - sp,
    )


FeeSchedule = Callable[[Platform, float, float], FeeBreakdown]

FEE_SCHEDULES: dict[PlatformType, FeeSchedule] = {
    PlatformType.AMAZON_FBA: lambda p, sp, mrp: amazon_fba(sp, mrp),
    PlatformType.BLINKIT: lambda p, sp, mrp: blinkit(sp),
    PlatformType.SP_COMMISSION: lambda p, sp, mrp: sp_commission(sp, to_float(p.commission_percent)),
    PlatformType.MRP_COMMISSION: lambda p, sp, mrp: mrp_commission(sp, mrp, to_float(p.commission_percent)),
    PlatformType.ZERO_COMMISSION: lambda p, sp, mrp: zero_commission(sp),
    # only reached when no settlement is configured
    PlatformType.FIXED_SETTLEMENT: lambda p, sp, mrp: sp_commission(sp, to_float(p.commission_percent)),
}


def fee_breakdown(platform: Platform, sp: float, mrp: float) -> FeeBreakdown:
    """Dispatch to the fee schedule for ``platform.type``."""
    return FEE_SCHEDULES[platform.type](platform, sp, mrp)


PLATFORM_TYPE_LABELS = {
    PlatformType.AMAZON_FBA: "Amazon FBA (slab fees)",
    PlatformType.BLINKIT: "Blinkit (slab + shipping + storage)",
    PlatformType.SP_COMMISSION: "Commission on SP",
    PlatformType.MRP_COMMISSION: "Commission on MRP (discount deducted)",
    PlatformType.ZERO_COMMISSION: "Zero Commission",
    PlatformType.FIXED_SETTLEMENT: "Fixed Settlement",
}
