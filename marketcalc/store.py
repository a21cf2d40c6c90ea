"""Redis-backed entity store (graceful fallback to in-memory)."""
import json
import logging
from typing import Optional

import redis

from marketcalc.config import config
from marketcalc.models import (
    AppSettings,
    FeeChangeLog,
    MonthlySnapshot,
    Platform,
    Product,
    default_platforms,
)

logger = logging.getLogger(__name__)

SKUS_KEY = "marketcalc:skus"
PLATFORMS_KEY = "marketcalc:platforms"
ADS_KEY = "marketcalc:ads_percent"
FEE_LOG_KEY = "marketcalc:fee_log"
SNAPSHOTS_KEY = "marketcalc:snapshots"
SETTINGS_KEY = "marketcalc:settings"


class EntityStore:
    """Products, platforms, settings, fee logs and snapshots as JSON documents."""

    def __init__(self, redis_url: Optional[str] = None, max_fee_logs: Optional[int] = None):
        self.max_fee_logs = max_fee_logs or config.MAX_FEE_LOGS
        self.redis = None
        self._memory: dict[str, str] = {}
        url = redis_url if redis_url is not None else config.REDIS_URL
        if url:
            try:
                client = redis.from_url(url, decode_responses=True)
                client.ping()
                self.redis = client
            except (redis.RedisError, ValueError) as e:
                logger.warning("EntityStore: redis unavailable at %s (%s), using memory", url, e)

    # ── raw access ──

    def _get_raw(self, key: str) -> Optional[str]:
        if self.redis:
            return self.redis.get(key)
        return self._memory.get(key)

    def _set_raw(self, key: str, value: str):
        if self.redis:
            self.redis.set(key, value)
        else:
            self._memory[key] = value

    def _get_json(self, key: str, fallback):
        data = self._get_raw(key)
        if not data:
            return fallback
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            logger.warning("EntityStore: corrupt JSON under %s, ignoring", key)
            return fallback

    def _set_json(self, key: str, value):
        self._set_raw(key, json.dumps(value, ensure_ascii=False))

    # ── products & platforms ──

    def get_products(self) -> list[Product]:
        return [Product.from_dict(d) for d in self._get_json(SKUS_KEY, [])]

    def save_products(self, products: list[Product]):
        self._set_json(SKUS_KEY, [p.to_dict() for p in products])

    def get_platforms(self) -> list[Platform]:
        data = self._get_json(PLATFORMS_KEY, None)
        if data is None:
            return default_platforms()
        return [Platform.from_dict(d) for d in data]

    def save_platforms(self, platforms: list[Platform]):
        self._set_json(PLATFORMS_KEY, [p.to_dict() for p in platforms])

    # ── global ads & settings ──

    def get_global_ads_percent(self) -> float:
        raw = self._get_raw(ADS_KEY)
        if not raw:
            return 0.0
        try:
            return float(raw)
        except ValueError:
            return 0.0

    def save_global_ads_percent(self, percent: float):
        self._set_raw(ADS_KEY, str(percent))

    def get_settings(self) -> AppSettings:
        data = self._get_json(SETTINGS_KEY, None)
        if data is None:
            return AppSettings(min_margin_alert=config.MIN_MARGIN_ALERT)
        return AppSettings.from_dict(data)

    def save_settings(self, settings: AppSettings):
        self._set_json(SETTINGS_KEY, settings.to_dict())

    # ── fee logs ──

    def get_fee_logs(self) -> list[FeeChangeLog]:
        return [FeeChangeLog.from_dict(d) for d in self._get_json(FEE_LOG_KEY, [])]

    def save_fee_logs(self, logs: list[FeeChangeLog]):
        self._set_json(FEE_LOG_KEY, [log.to_dict() for log in logs])

    def add_fee_log(self, log: FeeChangeLog):
        logs = self.get_fee_logs()
        logs.insert(0, log)
        self.save_fee_logs(logs[:self.max_fee_logs])

    # ── snapshots ──

    def get_snapshots(self) -> list[MonthlySnapshot]:
        return [MonthlySnapshot.from_dict(d) for d in self._get_json(SNAPSHOTS_KEY, [])]

    def save_snapshots(self, snapshots: list[MonthlySnapshot]):
        self._set_json(SNAPSHOTS_KEY, [s.to_dict() for s in snapshots])

    def add_snapshot(self, snapshot: MonthlySnapshot):
        snapshots = self.get_snapshots()
        snapshots.insert(0, snapshot)
        self.save_snapshots(snapshots)

    def get_stats(self) -> dict:
        return {
            "products": len(self.get_products()),
            "platforms": len(self.get_platforms()),
            "fee_logs": len(self.get_fee_logs()),
            "snapshots": len(self.get_snapshots()),
            "backend": "redis" if self.redis else "memory",
        }
