"""Entities shared by the calculator, analytics and storage layers.

Cost is always tax-exclusive; selling prices and settlements are
tax-inclusive. Payload keys use the camelCase names of the stored/synced
records so ``from_dict``/``to_dict`` round-trip with the sheet and store.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional
from uuid import uuid4


def to_float(value, default: float = 0.0) -> float:
    """Coerce a loosely-typed numeric input, falling back to ``default``."""
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return number


def timestamp_id(now) -> str:
    """Millisecond timestamp id; the random suffix keeps same-millisecond ids distinct."""
    return f"{int(now.timestamp() * 1000)}-{uuid4().hex[:8]}"


def to_optional_float(value) -> Optional[float]:
    """Like ``to_float`` but keeps "absent" distinct from zero."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_float(value)


class PlatformType(str, Enum):
    AMAZON_FBA = "amazon_fba"
    BLINKIT = "blinkit"
    SP_COMMISSION = "sp_commission"
    MRP_COMMISSION = "mrp_commission"
    ZERO_COMMISSION = "zero_commission"
    FIXED_SETTLEMENT = "fixed_settlement"

    @classmethod
    def coerce(cls, value) -> "PlatformType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return cls.SP_COMMISSION


COMMISSION_TYPES = (
    PlatformType.SP_COMMISSION,
    PlatformType.MRP_COMMISSION,
    PlatformType.ZERO_COMMISSION,
)


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

@dataclass
class PlatformPricing:
    """Per-platform price override for a product."""
    mrp: float = 0.0
    selling_price: float = 0.0
    settlement: Optional[float] = None
    return_percent: float = 0.0
    monthly_volume: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "PlatformPricing":
        data = data or {}
        return cls(
            mrp=to_float(data.get("mrp")),
            selling_price=to_float(data.get("sellingPrice")),
            settlement=to_optional_float(data.get("settlement")),
            return_percent=to_float(data.get("returnPercent")),
            monthly_volume=to_float(data.get("monthlyVolume")),
        )

    def to_dict(self) -> dict:
        data = {
            "mrp": self.mrp,
            "sellingPrice": self.selling_price,
            "returnPercent": self.return_percent,
            "monthlyVolume": self.monthly_volume,
        }
        if self.settlement is not None:
            data["settlement"] = self.settlement
        return data


@dataclass
class Product:
    """A SKU with its default pricing and per-platform overrides."""
    id: str
    name: str = ""
    sku: str = ""
    cost_price: float = 0.0
    gst_percent: float = 0.0
    weight: float = 0.0
    mrp: float = 0.0
    selling_price: float = 0.0
    notes: str = ""
    platform_pricing: dict[str, PlatformPricing] = field(default_factory=dict)

    def pricing_for(self, platform_id: str) -> Optional[PlatformPricing]:
        return self.platform_pricing.get(platform_id)

    def with_pricing(self, platform_id: str, **changes) -> "Product":
        """Return a copy whose override for ``platform_id`` has ``changes`` applied."""
        current = self.platform_pricing.get(platform_id) or PlatformPricing()
        pricing = dict(self.platform_pricing)
        pricing[platform_id] = replace(current, **changes)
        return replace(self, platform_pricing=pricing)

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "") or ""),
            sku=str(data.get("sku", "") or ""),
            cost_price=to_float(data.get("costPrice")),
            gst_percent=to_float(data.get("gstPercent")),
            weight=to_float(data.get("weight")),
            mrp=to_float(data.get("mrp")),
            selling_price=to_float(data.get("sellingPrice")),
            notes=str(data.get("notes", "") or ""),
            platform_pricing={
                str(pid): PlatformPricing.from_dict(pp)
                for pid, pp in (data.get("platformPricing") or {}).items()
            },
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "costPrice": self.cost_price,
            "gstPercent": self.gst_percent,
            "weight": self.weight,
            "mrp": self.mrp,
            "sellingPrice": self.selling_price,
            "notes": self.notes,
            "platformPricing": {
                pid: pp.to_dict() for pid, pp in self.platform_pricing.items()
            },
        }


# ---------------------------------------------------------------------------
# Platforms
# ---------------------------------------------------------------------------

@dataclass
class Platform:
    """A marketplace and the fee schedule it charges."""
    id: str
    name: str
    type: PlatformType = PlatformType.SP_COMMISSION
    commission_percent: Optional[float] = None
    ads_percent: float = 0.0
    fees_excl_tax: Optional[bool] = None

    def __post_init__(self):
        self.type = PlatformType.coerce(self.type)
        self.commission_percent = to_optional_float(self.commission_percent)
        self.ads_percent = to_float(self.ads_percent)

    @classmethod
    def from_dict(cls, data: dict) -> "Platform":
        excl = data.get("feesExclTax")
        if isinstance(excl, str):
            excl = {"true": True, "false": False}.get(excl.strip().lower())
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "") or ""),
            type=PlatformType.coerce(data.get("type")),
            commission_percent=to_optional_float(data.get("commissionPercent")),
            ads_percent=to_float(data.get("adsPercent")),
            fees_excl_tax=excl if excl is None else bool(excl),
        )

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "adsPercent": self.ads_percent,
        }
        if self.commission_percent is not None:
            data["commissionPercent"] = self.commission_percent
        if self.fees_excl_tax is not None:
            data["feesExclTax"] = self.fees_excl_tax
        return data


DEFAULT_PLATFORMS: tuple[Platform, ...] = (
    Platform("amazon_fba", "Amazon FBA", PlatformType.AMAZON_FBA, fees_excl_tax=True),
    Platform("rk_world", "RK World", PlatformType.SP_COMMISSION, 32, fees_excl_tax=False),
    Platform("blinkit", "Blinkit", PlatformType.BLINKIT, fees_excl_tax=True),
    Platform("zepto", "Zepto", PlatformType.MRP_COMMISSION, 36, fees_excl_tax=False),
    Platform("instamart", "Instamart", PlatformType.SP_COMMISSION, 35, fees_excl_tax=False),
    Platform("firstcry", "FirstCry", PlatformType.SP_COMMISSION, 35, fees_excl_tax=False),
    Platform("nykaa", "Nykaa", PlatformType.MRP_COMMISSION, 38, fees_excl_tax=False),
    Platform("meesho", "Meesho", PlatformType.ZERO_COMMISSION, 0, fees_excl_tax=False),
    Platform("myntra", "Myntra", PlatformType.FIXED_SETTLEMENT),
    Platform("flipkart", "Flipkart", PlatformType.FIXED_SETTLEMENT),
)


def default_platforms() -> list[Platform]:
    """Fresh, independently mutable copies of the built-in platforms."""
    return [replace(p) for p in DEFAULT_PLATFORMS]


def get_platform(platforms, platform_id: str) -> Platform:
    for platform in platforms:
        if platform.id == platform_id:
            return platform
    raise KeyError(f"Unknown platform: {platform_id}")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FeeBreakdown:
    commission: float = 0.0
    commission_label: str = ""
    closing_fee: float = 0.0
    shipping_fee: float = 0.0
    pick_and_pack_fee: float = 0.0
    discount: float = 0.0
    storage_fee: float = 0.0

    @property
    def total_platform_fees(self) -> float:
        # discount is not a fee; it is deducted separately
        return (self.commission + self.closing_fee + self.shipping_fee
                + self.pick_and_pack_fee + self.storage_fee)


@dataclass(frozen=True)
class CalculationResult:
    """Full per-platform financial breakdown for one product."""
    platform_id: str
    platform_name: str
    mrp: float
    selling_price: float
    settlement: Optional[float]
    commission: float
    commission_label: str
    discount: float
    shipping_fee: float
    storage_fee: float
    closing_fee: float
    pick_and_pack_fee: float
    total_platform_fees: float
    net_received: float
    product_cost: float
    gst_output: float
    gst_input_on_cost: float
    gst_input_on_fees: float
    net_gst: float
    ads_cost: float
    return_cost: float
    profit: float
    profit_margin: float
    monthly_volume: float
    monthly_profit: float

    def to_dict(self) -> dict:
        return {
            "platformId": self.platform_id,
            "platformName": self.platform_name,
            "mrp": self.mrp,
            "sellingPrice": self.selling_price,
            "settlement": self.settlement,
            "commission": self.commission,
            "commissionLabel": self.commission_label,
            "discount": self.discount,
            "shippingFee": self.shipping_fee,
            "storageFee": self.storage_fee,
            "closingFee": self.closing_fee,
            "pickAndPackFee": self.pick_and_pack_fee,
            "totalPlatformFees": self.total_platform_fees,
            "netReceived": self.net_received,
            "productCost": self.product_cost,
            "gstOutput": self.gst_output,
            "gstInputOnCost": self.gst_input_on_cost,
            "gstInputOnFees": self.gst_input_on_fees,
            "netGST": self.net_gst,
            "adsCost": self.ads_cost,
            "returnCost": self.return_cost,
            "profit": self.profit,
            "profitMargin": self.profit_margin,
            "monthlyVolume": self.monthly_volume,
            "monthlyProfit": self.monthly_profit,
        }


# ---------------------------------------------------------------------------
# Audit log, snapshots and settings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FeeChangeLog:
    id: str
    platform_id: str
    platform_name: str
    field: str
    old_value: float
    new_value: float
    date: str

    @classmethod
    def from_dict(cls, data: dict) -> "FeeChangeLog":
        return cls(
            id=str(data.get("id", "")),
            platform_id=str(data.get("platformId", "")),
            platform_name=str(data.get("platformName", "")),
            field=str(data.get("field", "")),
            old_value=to_float(data.get("oldValue")),
            new_value=to_float(data.get("newValue")),
            date=str(data.get("date", "")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "platformId": self.platform_id,
            "platformName": self.platform_name,
            "field": self.field,
            "oldValue": self.old_value,
            "newValue": self.new_value,
            "date": self.date,
        }


@dataclass(frozen=True)
class PlatformConfig:
    """Platform fee configuration in force when a snapshot was taken."""
    ads_percent: float = 0.0
    commission_percent: Optional[float] = None


@dataclass(frozen=True)
class PlatformSnapshot:
    platform_id: str
    profit: float
    margin: float
    volume: float
    monthly_profit: float


@dataclass(frozen=True)
class SkuSnapshot:
    sku_id: str
    sku_name: str
    sku_code: str
    platforms: tuple[PlatformSnapshot, ...] = ()

    def for_platform(self, platform_id: str) -> Optional[PlatformSnapshot]:
        for entry in self.platforms:
            if entry.platform_id == platform_id:
                return entry
        return None


@dataclass(frozen=True)
class MonthlySnapshot:
    id: str
    month: str
    date: str
    global_ads_percent: float
    platform_data: dict = field(default_factory=dict)
    sku_results: tuple[SkuSnapshot, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "MonthlySnapshot":
        platform_data = {
            str(pid): PlatformConfig(
                ads_percent=to_float(cfg.get("adsPercent")),
                commission_percent=to_optional_float(cfg.get("commissionPercent")),
            )
            for pid, cfg in (data.get("platformData") or {}).items()
        }
        sku_results = tuple(
            SkuSnapshot(
                sku_id=str(sr.get("skuId", "")),
                sku_name=str(sr.get("skuName", "")),
                sku_code=str(sr.get("skuCode", "")),
                platforms=tuple(
                    PlatformSnapshot(
                        platform_id=str(p.get("platformId", "")),
                        profit=to_float(p.get("profit")),
                        margin=to_float(p.get("margin")),
                        volume=to_float(p.get("volume")),
                        monthly_profit=to_float(p.get("monthlyProfit")),
                    )
                    for p in sr.get("platforms") or []
                ),
            )
            for sr in data.get("skuResults") or []
        )
        return cls(
            id=str(data.get("id", "")),
            month=str(data.get("month", "")),
            date=str(data.get("date", "")),
            global_ads_percent=to_float(data.get("globalAdsPercent")),
            platform_data=platform_data,
            sku_results=sku_results,
        )

    def to_dict(self) -> dict:
        platform_data = {}
        for pid, cfg in self.platform_data.items():
            entry = {"adsPercent": cfg.ads_percent}
            if cfg.commission_percent is not None:
                entry["commissionPercent"] = cfg.commission_percent
            platform_data[pid] = entry
        return {
            "id": self.id,
            "month": self.month,
            "date": self.date,
            "globalAdsPercent": self.global_ads_percent,
            "platformData": platform_data,
            "skuResults": [
                {
                    "skuId": sr.sku_id,
                    "skuName": sr.sku_name,
                    "skuCode": sr.sku_code,
                    "platforms": [
                        {
                            "platformId": p.platform_id,
                            "profit": p.profit,
                            "margin": p.margin,
                            "volume": p.volume,
                            "monthlyProfit": p.monthly_profit,
                        }
                        for p in sr.platforms
                    ],
                }
                for sr in self.sku_results
            ],
        }


@dataclass
class AppSettings:
    min_margin_alert: float = 15.0
    dark_mode: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "AppSettings":
        data = data or {}
        dark = data.get("darkMode", False)
        if isinstance(dark, str):
            dark = dark.strip().lower() == "true"
        return cls(
            min_margin_alert=to_float(data.get("minMarginAlert"), 15.0),
            dark_mode=bool(dark),
        )

    def to_dict(self) -> dict:
        return {"minMarginAlert": self.min_margin_alert, "darkMode": self.dark_mode}
