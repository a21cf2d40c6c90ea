"""CSV export of result tables and CSV import of products."""
import csv
import io
import time
from typing import Iterable, Optional, Sequence

from marketcalc.analytics import Alert
from marketcalc.models import (
    CalculationResult,
    Platform,
    PlatformPricing,
    PlatformType,
    Product,
    to_float,
)

RESULT_HEADERS = [
    "Platform", "SP", "MRP", "Commission", "Platform Fees", "Net Received",
    "GST Output", "GST Input", "Net GST", "Product Cost", "Ads", "Returns",
    "Profit", "Margin %", "Monthly Vol", "Monthly Profit",
]

ALERT_HEADERS = ["Severity", "Product", "SKU", "Platform", "SP", "Profit", "Margin %"]

TEMPLATE_BASE_HEADERS = ["Name", "SKU", "Cost", "GST", "Weight", "MRP", "SP", "Notes"]


def _num(value: float) -> str:
    return f"{value:g}"


def export_csv(headers: Sequence[str], rows: Iterable[Sequence]) -> str:
    """Every cell quoted, rows separated by newlines."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([str(v) for v in row])
    return buf.getvalue().rstrip("\n")


def results_to_csv(results: Iterable[CalculationResult]) -> str:
    """Per-platform results for one product, most profitable first."""
    ordered = sorted(results, key=lambda r: r.profit, reverse=True)
    rows = [
        [
            r.platform_name, _num(r.selling_price), _num(r.mrp),
            f"{r.commission:.2f}", f"{r.total_platform_fees:.2f}", f"{r.net_received:.2f}",
            f"{r.gst_output:.2f}", f"{r.gst_input_on_cost + r.gst_input_on_fees:.2f}",
            f"{r.net_gst:.2f}", _num(r.product_cost), f"{r.ads_cost:.2f}",
            f"{r.return_cost:.2f}", f"{r.profit:.2f}", f"{r.profit_margin:.1f}",
            _num(r.monthly_volume), f"{r.monthly_profit:.2f}",
        ]
        for r in ordered
    ]
    return export_csv(RESULT_HEADERS, rows)


def alerts_to_csv(alerts: Iterable[Alert]) -> str:
    rows = [
        [
            a.severity.value, a.product.name, a.product.sku, a.platform.name,
            _num(a.result.selling_price), f"{a.result.profit:.2f}",
            f"{a.result.profit_margin:.1f}",
        ]
        for a in alerts
    ]
    return export_csv(ALERT_HEADERS, rows)


def parse_csv(text: str) -> list[dict[str, str]]:
    """Parse CSV text into dicts keyed by the header row; blank lines are skipped."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        return []
    reader = csv.reader(lines)
    headers = [h.strip() for h in next(reader)]
    records = []
    for values in reader:
        values = [v.strip() for v in values]
        records.append({h: values[i] if i < len(values) else "" for i, h in enumerate(headers)})
    return records


def _first(row: dict, *keys: str) -> str:
    for key in keys:
        if row.get(key):
            return row[key]
    return ""


def products_from_csv(text: str, platforms: Sequence[Platform],
                      id_seed: Optional[int] = None) -> list[Product]:
    """Build products from an import sheet laid out like ``template_csv``.

    Rows without a name and SKU are dropped. GST defaults to 18% when the
    column is missing or empty.
    """
    seed = id_seed if id_seed is not None else int(time.time() * 1000)
    products = []
    for i, row in enumerate(parse_csv(text)):
        default_mrp = to_float(row.get("MRP"))
        default_sp = to_float(_first(row, "SP", "Selling Price"))
        pricing = {}
        for p in platforms:
            settlement = None
            if p.type == PlatformType.FIXED_SETTLEMENT:
                settlement = to_float(row.get(f"{p.name}_Settlement"))
            pricing[p.id] = PlatformPricing(
                mrp=to_float(row.get(f"{p.name}_MRP")) or default_mrp,
                selling_price=to_float(row.get(f"{p.name}_SP")) or default_sp,
                settlement=settlement,
                return_percent=to_float(row.get(f"{p.name}_Return%")),
                monthly_volume=to_float(row.get(f"{p.name}_Volume")),
            )
        product = Product(
            id=str(seed + i),
            name=_first(row, "Name", "Product Name", "name"),
            sku=_first(row, "SKU", "sku", "SKU Code"),
            cost_price=to_float(_first(row, "Cost", "Cost Price", "cost")),
            gst_percent=to_float(_first(row, "GST", "GST%", "gst")) or 18.0,
            weight=to_float(_first(row, "Weight", "weight")),
            mrp=to_float(_first(row, "MRP", "mrp")),
            selling_price=to_float(_first(row, "SP", "Selling Price", "sp")),
            notes=_first(row, "Notes", "notes"),
            platform_pricing=pricing,
        )
        if product.name or product.sku:
            products.append(product)
    return products


def template_csv(products: Sequence[Product], platforms: Sequence[Platform]) -> str:
    """Import template, pre-filled with the given products."""
    headers = list(TEMPLATE_BASE_HEADERS)
    for p in platforms:
        if p.type == PlatformType.FIXED_SETTLEMENT:
            headers.append(f"{p.name}_Settlement")
        else:
            headers.extend([f"{p.name}_SP", f"{p.name}_MRP"])
        headers.extend([f"{p.name}_Return%", f"{p.name}_Volume"])

    rows = []
    for s in products:
        row = [s.name, s.sku, _num(s.cost_price), _num(s.gst_percent), _num(s.weight),
               _num(s.mrp), _num(s.selling_price), s.notes or ""]
        for p in platforms:
            pp = s.pricing_for(p.id) or PlatformPricing()
            if p.type == PlatformType.FIXED_SETTLEMENT:
                row.append(_num(pp.settlement or 0))
            else:
                row.extend([_num(pp.selling_price), _num(pp.mrp)])
            row.extend([_num(pp.return_percent), _num(pp.monthly_volume)])
        rows.append(row)
    return export_csv(headers, rows)
