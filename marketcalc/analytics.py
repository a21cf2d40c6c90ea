"""Portfolio analytics over the product × platform matrix.

Features:
- Low-margin and loss alerts against the configured threshold
- Best / worst platform recommendation per product
- Profit heatmap with fixed colour bands
- Marketplace rollup (all products on one platform, with totals)
- Dashboard summary figures
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence

from marketcalc.models import AppSettings, CalculationResult, Platform, Product
from marketcalc.profit_calculator import compute_all_results, compute_result


class Severity(str, Enum):
    LOSS = "loss"
    LOW = "low"


class HeatmapMetric(str, Enum):
    PROFIT = "profit"
    MARGIN = "margin"
    MONTHLY_PROFIT = "monthlyProfit"


class HeatBand(str, Enum):
    STRONG = "strong"
    GOOD = "good"
    FAIR = "fair"
    THIN = "thin"
    NEUTRAL = "neutral"
    WEAK = "weak"
    LOSS = "loss"


# (lower bound inclusive, band), checked top-down
MARGIN_BANDS = (
    (30, HeatBand.STRONG),
    (20, HeatBand.GOOD),
    (10, HeatBand.FAIR),
    (0, HeatBand.THIN),
    (-10, HeatBand.WEAK),
)

# (lower bound exclusive, band) for per-unit and monthly profit
PROFIT_BANDS = (
    (100, HeatBand.STRONG),
    (50, HeatBand.GOOD),
    (0, HeatBand.FAIR),
)
PROFIT_WEAK_FLOOR = -50


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------

@dataclass
class Alert:
    product: Product
    platform: Platform
    result: CalculationResult
    severity: Severity

    @property
    def margin(self) -> float:
        return self.result.profit_margin


def derive_alerts(
    products: Iterable[Product],
    platforms: Sequence[Platform],
    settings: AppSettings,
    global_ads_percent: float = 0.0,
) -> list[Alert]:
    """All product/platform pairs whose margin is below the alert threshold, worst first."""
    alerts = []
    for product in products:
        for platform in platforms:
            result = compute_result(product, platform, global_ads_percent)
            if result.profit_margin < settings.min_margin_alert:
                severity = Severity.LOSS if result.profit < 0 else Severity.LOW
                alerts.append(Alert(product, platform, result, severity))
    alerts.sort(key=lambda a: a.result.profit_margin)
    return alerts


def filter_alerts(
    alerts: Iterable[Alert],
    platform_id: Optional[str] = None,
    severity: Optional[Severity] = None,
) -> list[Alert]:
    filtered = list(alerts)
    if platform_id:
        filtered = [a for a in filtered if a.platform.id == platform_id]
    if severity:
        filtered = [a for a in filtered if a.severity == Severity(severity)]
    return filtered


def alert_counts(alerts: Iterable[Alert]) -> dict[str, int]:
    counts = {Severity.LOSS.value: 0, Severity.LOW.value: 0}
    for alert in alerts:
        counts[alert.severity.value] += 1
    return counts


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

def best_and_worst(
    results: Sequence[CalculationResult],
) -> tuple[Optional[CalculationResult], Optional[CalculationResult]]:
    """Highest and lowest profit result; ties go to the first one seen."""
    if not results:
        return None, None
    best = worst = results[0]
    for result in results[1:]:
        if result.profit > best.profit:
            best = result
        if result.profit < worst.profit:
            worst = result
    return best, worst


@dataclass
class Recommendation:
    product_id: str
    best: Optional[CalculationResult] = None
    worst: Optional[CalculationResult] = None

    @property
    def profit_delta(self) -> float:
        if self.best is None or self.worst is None:
            return 0.0
        return self.best.profit - self.worst.profit

    def summary(self) -> str:
        if self.best is None:
            return "No platforms configured."
        lines = [
            f"🏆 Best: {self.best.platform_name} "
            f"(₹{self.best.profit:.2f}, {self.best.profit_margin:.1f}%)"
        ]
        if self.worst is not None and self.worst.platform_id != self.best.platform_id:
            lines.append(
                f"📉 Worst: {self.worst.platform_name} (₹{self.worst.profit:.2f}) "
                f"— Difference: ₹{self.profit_delta:.2f}"
            )
        return "\n".join(lines)


def product_recommendation(
    product: Product,
    platforms: Sequence[Platform],
    global_ads_percent: float = 0.0,
) -> Recommendation:
    results = compute_all_results(product, platforms, global_ads_percent)
    best, worst = best_and_worst(results)
    return Recommendation(product_id=product.id, best=best, worst=worst)


# ---------------------------------------------------------------------------
# Heatmap
# ---------------------------------------------------------------------------

def metric_value(result: CalculationResult, metric: HeatmapMetric) -> float:
    metric = HeatmapMetric(metric)
    if metric == HeatmapMetric.MARGIN:
        return result.profit_margin
    if metric == HeatmapMetric.MONTHLY_PROFIT:
        return result.monthly_profit
    return result.profit


def heat_band(value: float, metric: HeatmapMetric) -> HeatBand:
    """Colour band for a heatmap cell."""
    if HeatmapMetric(metric) == HeatmapMetric.MARGIN:
        for floor, band in MARGIN_BANDS:
            if value >= floor:
                return band
        return HeatBand.LOSS
    for floor, band in PROFIT_BANDS:
        if value > floor:
            return band
    if value == 0:
        return HeatBand.NEUTRAL
    if value > PROFIT_WEAK_FLOOR:
        return HeatBand.WEAK
    return HeatBand.LOSS


@dataclass
class HeatmapCell:
    platform_id: str
    value: float
    band: HeatBand
    is_best: bool
    result: CalculationResult


@dataclass
class HeatmapRow:
    product: Product
    cells: list[HeatmapCell] = field(default_factory=list)


@dataclass
class PlatformColumnSummary:
    platform_id: str
    avg_profit: float
    profitable: int
    total: int


@dataclass
class Heatmap:
    metric: HeatmapMetric
    rows: list[HeatmapRow] = field(default_factory=list)
    columns: list[PlatformColumnSummary] = field(default_factory=list)


def build_heatmap(
    products: Sequence[Product],
    platforms: Sequence[Platform],
    metric: HeatmapMetric = HeatmapMetric.PROFIT,
    global_ads_percent: float = 0.0,
) -> Heatmap:
    metric = HeatmapMetric(metric)
    heatmap = Heatmap(metric=metric)
    column_profits: dict[str, list[float]] = {p.id: [] for p in platforms}

    for product in products:
        results = compute_all_results(product, platforms, global_ads_percent)
        best, _ = best_and_worst(results)
        row = HeatmapRow(product=product)
        for result in results:
            value = metric_value(result, metric)
            row.cells.append(HeatmapCell(
                platform_id=result.platform_id,
                value=value,
                band=heat_band(value, metric),
                is_best=best is not None and result is best,
                result=result,
            ))
            column_profits[result.platform_id].append(result.profit)
        heatmap.rows.append(row)

    for platform in platforms:
        profits = column_profits[platform.id]
        heatmap.columns.append(PlatformColumnSummary(
            platform_id=platform.id,
            avg_profit=sum(profits) / len(profits) if profits else 0.0,
            profitable=sum(1 for p in profits if p > 0),
            total=len(profits),
        ))
    return heatmap


# ---------------------------------------------------------------------------
# Marketplace rollup
# ---------------------------------------------------------------------------

@dataclass
class MarketplaceRow:
    product: Product
    result: CalculationResult


@dataclass
class MarketplaceRollup:
    platform: Platform
    rows: list[MarketplaceRow] = field(default_factory=list)
    total_fees: float = 0.0
    total_net_received: float = 0.0
    total_net_gst: float = 0.0
    total_ads: float = 0.0
    total_profit: float = 0.0
    avg_margin: float = 0.0
    profitable_count: int = 0

    def summary(self) -> str:
        lines = [
            f"═══ {self.platform.name} ═══",
            f"{'SKU':<16} {'Price':>10} {'Fees':>10} {'Profit':>10} {'Margin':>8}",
            "─" * 58,
        ]
        for row in self.rows:
            r = row.result
            lines.append(
                f"{row.product.sku or row.product.name:<16} "
                f"{r.selling_price:>10.2f} {r.total_platform_fees + r.discount:>10.2f} "
                f"{r.profit:>10.2f} {r.profit_margin:>7.1f}%"
            )
        lines.extend([
            "─" * 58,
            f"Total profit: ₹{self.total_profit:.2f}",
            f"Average margin: {self.avg_margin:.1f}%",
            f"Profitable: {self.profitable_count}/{len(self.rows)}",
        ])
        return "\n".join(lines)


def marketplace_rollup(
    products: Iterable[Product],
    platform: Platform,
    global_ads_percent: float = 0.0,
    query: str = "",
) -> MarketplaceRollup:
    """Every product on one platform, most profitable first, with column totals."""
    q = query.strip().lower()
    rows = [
        MarketplaceRow(product, compute_result(product, platform, global_ads_percent))
        for product in products
        if not q or q in product.name.lower() or q in product.sku.lower()
    ]
    rows.sort(key=lambda r: r.result.profit, reverse=True)

    rollup = MarketplaceRollup(platform=platform, rows=rows)
    for row in rows:
        r = row.result
        rollup.total_fees += r.total_platform_fees + r.discount
        rollup.total_net_received += r.net_received
        rollup.total_net_gst += r.net_gst
        rollup.total_ads += r.ads_cost
        rollup.total_profit += r.profit
        if r.profit > 0:
            rollup.profitable_count += 1
    if rows:
        rollup.avg_margin = sum(r.result.profit_margin for r in rows) / len(rows)
    return rollup


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

@dataclass
class DashboardSummary:
    product_count: int
    platform_count: int
    total_monthly_profit: float
    low_margin_count: int


def dashboard_summary(
    products: Sequence[Product],
    platforms: Sequence[Platform],
    settings: AppSettings,
    global_ads_percent: float = 0.0,
) -> DashboardSummary:
    total_monthly = 0.0
    low = 0
    for product in products:
        for result in compute_all_results(product, platforms, global_ads_percent):
            total_monthly += result.monthly_profit
            if result.profit_margin < settings.min_margin_alert:
                low += 1
    return DashboardSummary(
        product_count=len(products),
        platform_count=len(platforms),
        total_monthly_profit=total_monthly,
        low_margin_count=low,
    )
