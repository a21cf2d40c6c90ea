"""Audit trail of platform fee configuration edits."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from numbers import Number
from typing import Iterable, Optional, Sequence, Union

from marketcalc.config import config
from marketcalc.models import FeeChangeLog, Platform, timestamp_id


def _is_number(value) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def record_field_change(
    logs: Sequence[FeeChangeLog],
    platform: Platform,
    field: str,
    old_value,
    new_value,
    now: Optional[datetime] = None,
) -> list[FeeChangeLog]:
    """Return ``logs`` with the change prepended, if it is a numeric change.

    Non-numeric fields and unchanged values leave the log untouched. The
    result is capped at ``config.MAX_FEE_LOGS`` entries, newest first.
    """
    if not (_is_number(old_value) and _is_number(new_value)) or old_value == new_value:
        return list(logs)
    now = now or datetime.now(timezone.utc)
    entry = FeeChangeLog(
        id=timestamp_id(now),
        platform_id=platform.id,
        platform_name=platform.name,
        field=field,
        old_value=float(old_value),
        new_value=float(new_value),
        date=now.isoformat(),
    )
    return [entry, *logs][:config.MAX_FEE_LOGS]


_FIELD_ALIASES = {
    "commissionPercent": "commission_percent",
    "adsPercent": "ads_percent",
    "feesExclTax": "fees_excl_tax",
}


def update_platform(
    platforms: Sequence[Platform],
    platform_ref: Union[int, str],
    field: str,
    value,
    logs: Sequence[FeeChangeLog] = (),
    now: Optional[datetime] = None,
) -> tuple[list[Platform], list[FeeChangeLog]]:
    """Apply one field edit to a platform and log it.

    ``platform_ref`` is a list index or a platform id. ``field`` accepts the
    attribute name or its stored camelCase key; the log records the key as
    it was given.
    """
    updated = list(platforms)
    if isinstance(platform_ref, int):
        index = platform_ref
    else:
        ids = [p.id for p in updated]
        if platform_ref not in ids:
            raise KeyError(f"Unknown platform: {platform_ref}")
        index = ids.index(platform_ref)

    old = updated[index]
    attr = _FIELD_ALIASES.get(field, field)
    if not hasattr(old, attr):
        raise AttributeError(f"Platform has no field {field!r}")
    old_value = getattr(old, attr)
    updated[index] = replace(old, **{attr: value})
    # numeric fields are coerced on construction
    new_value = getattr(updated[index], attr)
    return updated, record_field_change(logs, old, field, old_value, new_value, now)


def filter_logs(
    logs: Iterable[FeeChangeLog],
    platform_id: Optional[str] = None,
    field: Optional[str] = None,
) -> list[FeeChangeLog]:
    filtered = list(logs)
    if platform_id:
        filtered = [log for log in filtered if log.platform_id == platform_id]
    if field:
        filtered = [log for log in filtered if log.field == field]
    return filtered


def unique_fields(logs: Iterable[FeeChangeLog]) -> list[str]:
    """Distinct field names in first-seen order."""
    return list(dict.fromkeys(log.field for log in logs))


def summarize_logs(logs: Sequence[FeeChangeLog]) -> dict:
    return {
        "total": len(logs),
        "platforms": len({log.platform_id for log in logs}),
        "increases": sum(1 for log in logs if log.new_value > log.old_value),
        "decreases": sum(1 for log in logs if log.new_value < log.old_value),
    }


def format_log(log: FeeChangeLog) -> str:
    arrow = "⬆️" if log.new_value > log.old_value else "⬇️"
    try:
        ts = datetime.fromisoformat(log.date).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        ts = log.date
    return (f"{ts} {log.platform_name}: {log.field} "
            f"{log.old_value:g} → {log.new_value:g} {arrow}")
