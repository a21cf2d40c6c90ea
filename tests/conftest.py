"""Shared fixtures: a small catalogue priced on the default platforms."""
import pytest

from marketcalc.models import (
    AppSettings,
    PlatformPricing,
    Product,
    default_platforms,
    get_platform,
)


@pytest.fixture
def platforms():
    return default_platforms()


@pytest.fixture
def amazon(platforms):
    return get_platform(platforms, "amazon_fba")


@pytest.fixture
def rk_world(platforms):
    return get_platform(platforms, "rk_world")


@pytest.fixture
def myntra(platforms):
    return get_platform(platforms, "myntra")


@pytest.fixture
def fiber():
    """Hair fibre SKU: cost 140, 18% GST, MRP 799, SP 699."""
    return Product(
        id="1",
        name="Hair Building Fiber",
        sku="GL-HBF-S-BLK-561",
        cost_price=140,
        gst_percent=18,
        weight=180,
        mrp=799,
        selling_price=699,
        platform_pricing={
            "rk_world": PlatformPricing(mrp=799, selling_price=649, monthly_volume=20),
            "zepto": PlatformPricing(mrp=799, selling_price=699, return_percent=5),
            "myntra": PlatformPricing(mrp=799, selling_price=699, settlement=450,
                                      monthly_volume=10),
        },
    )


@pytest.fixture
def cheap_item():
    """Low-priced SKU that loses money on most platforms."""
    return Product(
        id="2",
        name="Travel Comb",
        sku="GL-COMB-01",
        cost_price=90,
        gst_percent=18,
        mrp=199,
        selling_price=149,
    )


@pytest.fixture
def catalogue(fiber, cheap_item):
    return [fiber, cheap_item]


@pytest.fixture
def settings():
    return AppSettings(min_margin_alert=15)
