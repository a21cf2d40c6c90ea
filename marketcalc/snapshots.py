"""Monthly profit snapshots and month-over-month comparison."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence

from marketcalc.models import (
    MonthlySnapshot,
    Platform,
    PlatformConfig,
    PlatformSnapshot,
    Product,
    SkuSnapshot,
    timestamp_id,
)
from marketcalc.profit_calculator import compute_result


def capture_snapshot(
    products: Sequence[Product],
    platforms: Sequence[Platform],
    global_ads_percent: float = 0.0,
    now: Optional[datetime] = None,
) -> MonthlySnapshot:
    """Freeze current results and platform configuration."""
    now = now or datetime.now(timezone.utc)
    sku_results = []
    for product in products:
        entries = []
        for platform in platforms:
            result = compute_result(product, platform, global_ads_percent)
            entries.append(PlatformSnapshot(
                platform_id=platform.id,
                profit=result.profit,
                margin=result.profit_margin,
                volume=result.monthly_volume,
                monthly_profit=result.monthly_profit,
            ))
        sku_results.append(SkuSnapshot(
            sku_id=product.id,
            sku_name=product.name,
            sku_code=product.sku,
            platforms=tuple(entries),
        ))

    return MonthlySnapshot(
        id=timestamp_id(now),
        month=now.strftime("%Y-%m"),
        date=now.isoformat(),
        global_ads_percent=global_ads_percent,
        platform_data={
            p.id: PlatformConfig(ads_percent=p.ads_percent,
                                 commission_percent=p.commission_percent)
            for p in platforms
        },
        sku_results=tuple(sku_results),
    )


def add_snapshot(snapshots: Sequence[MonthlySnapshot],
                 snapshot: MonthlySnapshot) -> list[MonthlySnapshot]:
    return [snapshot, *snapshots]


def delete_snapshot(snapshots: Sequence[MonthlySnapshot],
                    snapshot_id: str) -> list[MonthlySnapshot]:
    return [s for s in snapshots if s.id != snapshot_id]


def snapshot_totals(snapshot: MonthlySnapshot) -> dict:
    """Headline figures shown for a stored snapshot."""
    entries = [p for sr in snapshot.sku_results for p in sr.platforms]
    return {
        "skus": len(snapshot.sku_results),
        "total_monthly_profit": sum(p.monthly_profit for p in entries),
        "avg_margin": sum(p.margin for p in entries) / len(entries) if entries else 0.0,
        "losses": sum(1 for p in entries if p.profit < 0),
    }


@dataclass
class ConfigChange:
    platform_id: str
    previous: Optional[PlatformConfig]
    latest: Optional[PlatformConfig]

    @property
    def changed(self) -> bool:
        return self.previous != self.latest


@dataclass
class ResultDelta:
    sku_id: str
    platform_id: str
    profit_change: float
    margin_change: float
    monthly_profit_change: float


@dataclass
class SnapshotComparison:
    latest: MonthlySnapshot
    previous: MonthlySnapshot
    config_changes: list[ConfigChange] = field(default_factory=list)
    deltas: list[ResultDelta] = field(default_factory=list)

    @property
    def global_ads_change(self) -> float:
        return self.latest.global_ads_percent - self.previous.global_ads_percent


def compare_latest(snapshots: Sequence[MonthlySnapshot]) -> Optional[SnapshotComparison]:
    """Diff the two most recent snapshots (list is newest first)."""
    if len(snapshots) < 2:
        return None
    latest, previous = snapshots[0], snapshots[1]
    comparison = SnapshotComparison(latest=latest, previous=previous)

    platform_ids = list(dict.fromkeys([*latest.platform_data, *previous.platform_data]))
    for pid in platform_ids:
        comparison.config_changes.append(ConfigChange(
            platform_id=pid,
            previous=previous.platform_data.get(pid),
            latest=latest.platform_data.get(pid),
        ))

    earlier = {sr.sku_id: sr for sr in previous.sku_results}
    for sku in latest.sku_results:
        before = earlier.get(sku.sku_id)
        if before is None:
            continue
        for entry in sku.platforms:
            old = before.for_platform(entry.platform_id)
            if old is None:
                continue
            comparison.deltas.append(ResultDelta(
                sku_id=sku.sku_id,
                platform_id=entry.platform_id,
                profit_change=entry.profit - old.profit,
                margin_change=entry.margin - old.margin,
                monthly_profit_change=entry.monthly_profit - old.monthly_profit,
            ))
    return comparison
