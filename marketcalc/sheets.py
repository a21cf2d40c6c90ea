"""Spreadsheet sync: row conversion and the HTTP client for the sheets API.

Each entity is stored as one sheet: a header row followed by data rows.
Per-platform columns follow the fixed ``PLATFORM_IDS`` order so existing
sheets keep their layout when platforms are reordered locally.
"""
import json
import logging
from typing import Optional

import requests

from marketcalc.config import config
from marketcalc.models import (
    AppSettings,
    FeeChangeLog,
    MonthlySnapshot,
    Platform,
    PlatformConfig,
    PlatformPricing,
    PlatformSnapshot,
    PlatformType,
    Product,
    SkuSnapshot,
    default_platforms,
    to_float,
    to_optional_float,
)

logger = logging.getLogger(__name__)

PLATFORM_IDS = [
    "amazon_fba", "rk_world", "blinkit", "zepto", "instamart",
    "firstcry", "nykaa", "meesho", "myntra", "flipkart",
]

SKU_BASE_COLUMNS = ["id", "name", "sku", "costPrice", "gstPercent", "weight",
                    "mrp", "sellingPrice", "notes"]
PRICING_FIELDS = ["mrp", "sp", "settlement", "returnPercent", "monthlyVolume"]
SNAPSHOT_FIELDS = ["profit", "margin", "volume", "monthlyProfit"]


class SyncError(Exception):
    """The sheets API could not be reached or rejected the request."""


def _cell(row: list, index: int) -> str:
    if index < len(row) and row[index] is not None:
        return str(row[index])
    return ""


# ── SKUs ──

def build_sku_header() -> list[str]:
    header = list(SKU_BASE_COLUMNS)
    for pid in PLATFORM_IDS:
        header.extend(f"{pid}_{f}" for f in PRICING_FIELDS)
    return header


def sku_to_row(product: Product) -> list:
    row = [product.id, product.name, product.sku, product.cost_price,
           product.gst_percent, product.weight, product.mrp,
           product.selling_price, product.notes or ""]
    for pid in PLATFORM_IDS:
        pp = product.pricing_for(pid) or PlatformPricing()
        row.extend([
            pp.mrp or 0,
            pp.selling_price or 0,
            pp.settlement if pp.settlement is not None else "",
            pp.return_percent or 0,
            pp.monthly_volume or 0,
        ])
    return row


def row_to_sku(row: list) -> Product:
    pricing = {}
    col = len(SKU_BASE_COLUMNS)
    for pid in PLATFORM_IDS:
        pricing[pid] = PlatformPricing(
            mrp=to_float(_cell(row, col)),
            selling_price=to_float(_cell(row, col + 1)),
            settlement=to_optional_float(_cell(row, col + 2)),
            return_percent=to_float(_cell(row, col + 3)),
            monthly_volume=to_float(_cell(row, col + 4)),
        )
        col += len(PRICING_FIELDS)
    return Product(
        id=_cell(row, 0),
        name=_cell(row, 1),
        sku=_cell(row, 2),
        cost_price=to_float(_cell(row, 3)),
        gst_percent=to_float(_cell(row, 4)),
        weight=to_float(_cell(row, 5)),
        mrp=to_float(_cell(row, 6)),
        selling_price=to_float(_cell(row, 7)),
        notes=_cell(row, 8),
        platform_pricing=pricing,
    )


# ── Platforms ──

def build_platform_header() -> list[str]:
    return ["id", "name", "type", "commissionPercent", "adsPercent", "feesExclTax"]


def platform_to_row(platform: Platform) -> list:
    return [
        platform.id, platform.name, platform.type.value,
        platform.commission_percent if platform.commission_percent is not None else "",
        platform.ads_percent,
        "true" if platform.fees_excl_tax else "false",
    ]


def row_to_platform(row: list) -> Platform:
    excl = {"true": True, "false": False}.get(_cell(row, 5))
    return Platform(
        id=_cell(row, 0),
        name=_cell(row, 1),
        type=PlatformType.coerce(_cell(row, 2) or "sp_commission"),
        commission_percent=to_optional_float(_cell(row, 3)),
        ads_percent=to_float(_cell(row, 4)),
        fees_excl_tax=excl,
    )


# ── Fee logs ──

def build_fee_log_header() -> list[str]:
    return ["id", "platformId", "platformName", "field", "oldValue", "newValue", "date"]


def fee_log_to_row(log: FeeChangeLog) -> list:
    return [log.id, log.platform_id, log.platform_name, log.field,
            log.old_value, log.new_value, log.date]


def row_to_fee_log(row: list) -> FeeChangeLog:
    return FeeChangeLog(
        id=_cell(row, 0),
        platform_id=_cell(row, 1),
        platform_name=_cell(row, 2),
        field=_cell(row, 3),
        old_value=to_float(_cell(row, 4)),
        new_value=to_float(_cell(row, 5)),
        date=_cell(row, 6),
    )


# ── Snapshots (metadata sheet + detail sheet) ──

def build_snapshot_header() -> list[str]:
    return ["id", "month", "date", "globalAdsPercent", "platformDataJSON"]


def build_snapshot_detail_header() -> list[str]:
    header = ["snapshotId", "skuId", "skuName", "skuCode"]
    for pid in PLATFORM_IDS:
        header.extend(f"{pid}_{f}" for f in SNAPSHOT_FIELDS)
    return header


def snapshot_to_meta_row(snapshot: MonthlySnapshot) -> list:
    return [snapshot.id, snapshot.month, snapshot.date, snapshot.global_ads_percent,
            json.dumps(snapshot.to_dict()["platformData"])]


def snapshot_to_detail_rows(snapshot: MonthlySnapshot) -> list[list]:
    rows = []
    for sr in snapshot.sku_results:
        row = [snapshot.id, sr.sku_id, sr.sku_name, sr.sku_code]
        for pid in PLATFORM_IDS:
            entry = sr.for_platform(pid)
            if entry is None:
                row.extend([0, 0, 0, 0])
            else:
                row.extend([entry.profit, entry.margin, entry.volume, entry.monthly_profit])
        rows.append(row)
    return rows


def rows_to_snapshots(meta_rows: list[list], detail_rows: list[list]) -> list[MonthlySnapshot]:
    """Join the two snapshot sheets (both including their header rows)."""
    details: dict[str, list[list]] = {}
    for row in detail_rows[1:]:
        details.setdefault(_cell(row, 0), []).append(row)

    snapshots = []
    for meta in meta_rows[1:]:
        snap_id = _cell(meta, 0)
        sku_results = []
        for dr in details.get(snap_id, []):
            entries = []
            col = 4
            for pid in PLATFORM_IDS:
                entries.append(PlatformSnapshot(
                    platform_id=pid,
                    profit=to_float(_cell(dr, col)),
                    margin=to_float(_cell(dr, col + 1)),
                    volume=to_float(_cell(dr, col + 2)),
                    monthly_profit=to_float(_cell(dr, col + 3)),
                ))
                col += len(SNAPSHOT_FIELDS)
            sku_results.append(SkuSnapshot(
                sku_id=_cell(dr, 1), sku_name=_cell(dr, 2), sku_code=_cell(dr, 3),
                platforms=tuple(entries),
            ))

        try:
            raw_platform_data = json.loads(_cell(meta, 4) or "{}")
        except json.JSONDecodeError:
            raw_platform_data = {}
        platform_data = {
            pid: PlatformConfig(
                ads_percent=to_float(cfg.get("adsPercent")),
                commission_percent=to_optional_float(cfg.get("commissionPercent")),
            )
            for pid, cfg in raw_platform_data.items()
        }
        snapshots.append(MonthlySnapshot(
            id=snap_id,
            month=_cell(meta, 1),
            date=_cell(meta, 2),
            global_ads_percent=to_float(_cell(meta, 3)),
            platform_data=platform_data,
            sku_results=tuple(sku_results),
        ))
    return snapshots


# ── Settings ──

def build_settings_header() -> list[str]:
    return ["minMarginAlert", "darkMode"]


def settings_to_row(settings: AppSettings) -> list:
    return [settings.min_margin_alert, "true" if settings.dark_mode else "false"]


def row_to_settings(row: list) -> AppSettings:
    return AppSettings(
        min_margin_alert=to_float(_cell(row, 0)) or 15.0,
        dark_mode=_cell(row, 1) == "true",
    )


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

class SheetsClient:
    """Client for the spreadsheet-backed sync API."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or config.SHEETS_API_URL).rstrip("/")
        self.timeout = timeout or config.SYNC_TIMEOUT
        self.session = session or requests.Session()

    def _request(self, method: str, resource: str, payload=None):
        if not self.base_url:
            raise SyncError("SHEETS_API_URL is not configured")
        url = f"{self.base_url}/{resource}"
        try:
            r = self.session.request(method, url, json=payload, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("SheetsClient: %s %s failed: %s", method, url, e)
            raise SyncError(f"{method} {resource} failed: {e}") from e
        if isinstance(data, dict) and data.get("error"):
            raise SyncError(data["error"])
        return data

    def pull_all(self) -> dict:
        """Fetch every entity set in one call."""
        data = self._request("GET", "sync")
        platforms = data.get("platforms") or []
        return {
            "products": [Product.from_dict(d) for d in data.get("skus") or []],
            "platforms": ([Platform.from_dict(d) for d in platforms]
                          if platforms else default_platforms()),
            "global_ads_percent": to_float(data.get("globalAdsPercent")),
            "fee_logs": [FeeChangeLog.from_dict(d) for d in data.get("feeChangeLogs") or []],
            "snapshots": [MonthlySnapshot.from_dict(d) for d in data.get("snapshots") or []],
            "settings": AppSettings.from_dict(data.get("settings") or {}),
        }

    def pull_into(self, store) -> dict:
        """Pull everything and overwrite the local ``EntityStore``."""
        data = self.pull_all()
        store.save_products(data["products"])
        store.save_platforms(data["platforms"])
        store.save_global_ads_percent(data["global_ads_percent"])
        store.save_fee_logs(data["fee_logs"])
        store.save_snapshots(data["snapshots"])
        store.save_settings(data["settings"])
        logger.info("SheetsClient: pulled %d products", len(data["products"]))
        return data

    def push_products(self, products: list[Product]):
        return self._request("PUT", "skus", [p.to_dict() for p in products])

    def push_platforms(self, platforms: list[Platform]):
        return self._request("PUT", "platforms", [p.to_dict() for p in platforms])

    def push_fee_logs(self, logs: list[FeeChangeLog]):
        return self._request("PUT", "fee-logs", [log.to_dict() for log in logs])

    def push_settings(self, settings: AppSettings):
        return self._request("PUT", "settings", settings.to_dict())

    def push_global_ads_percent(self, percent: float):
        return self._request("PUT", "ads-percent", {"value": percent})

    def add_snapshot(self, snapshot: MonthlySnapshot):
        return self._request("POST", "snapshots", snapshot.to_dict())

    def replace_snapshots(self, snapshots: list[MonthlySnapshot]):
        return self._request("PUT", "snapshots", [s.to_dict() for s in snapshots])
