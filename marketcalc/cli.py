"""CLI tool for the marketplace profit calculator.

Usage:
    python -m marketcalc.cli calc --products skus.json [--sku GL-1] [--ads 5]
    python -m marketcalc.cli breakeven --products skus.json --sku GL-1 --platform amazon_fba --margin 20
    python -m marketcalc.cli simulate --products skus.json --sku GL-1 --platform zepto --price 649 [--mrp 799]
    python -m marketcalc.cli alerts --products skus.json [--threshold 15] [--severity loss]
    python -m marketcalc.cli heatmap --products skus.json [--metric margin]
    python -m marketcalc.cli marketplace --products skus.json --platform blinkit [--search fiber]
    python -m marketcalc.cli platforms

Products are read from a JSON list of product records. Platforms default to
the built-in set; pass --platforms to load a JSON list instead.
"""
import argparse
import json
import sys


def _load_json(path):
    with open(path) as f:
        return json.load(f)


def _load_products(args):
    from marketcalc.models import Product
    return [Product.from_dict(d) for d in _load_json(args.products)]


def _load_platforms(args):
    from marketcalc.models import Platform, default_platforms
    if getattr(args, "platforms", None):
        return [Platform.from_dict(d) for d in _load_json(args.platforms)]
    return default_platforms()


def _find_product(products, ref):
    for p in products:
        if ref in (p.id, p.sku):
            return p
    print(f"❌ Unknown SKU: {ref}")
    print(f"Available: {', '.join(p.sku or p.id for p in products)}")
    sys.exit(1)


def _find_platform(platforms, platform_id):
    from marketcalc.models import get_platform
    try:
        return get_platform(platforms, platform_id)
    except KeyError:
        print(f"❌ Unknown platform: {platform_id}")
        print(f"Available: {', '.join(p.id for p in platforms)}")
        sys.exit(1)


def cmd_calc(args):
    """Profit on every platform for one or all products."""
    from marketcalc.analytics import product_recommendation
    from marketcalc.export import results_to_csv
    from marketcalc.profit_calculator import compute_all_results, format_result

    products = _load_products(args)
    platforms = _load_platforms(args)
    if args.sku:
        products = [_find_product(products, args.sku)]

    for product in products:
        results = compute_all_results(product, platforms, args.ads)
        print(f"📦 {product.name} ({product.sku})")
        for result in results:
            print(format_result(result))
            print()
        print(product_recommendation(product, platforms, args.ads).summary())
        print()
        if args.output:
            with open(args.output, "w") as f:
                f.write(results_to_csv(results))
            print(f"💾 Saved to {args.output}")


def cmd_breakeven(args):
    """Minimum selling price for a target margin."""
    from marketcalc.profit_calculator import BreakEvenOutOfRange, find_break_even_price, simulate

    products = _load_products(args)
    platforms = _load_platforms(args)
    product = _find_product(products, args.sku)
    platform = _find_platform(platforms, args.platform)

    try:
        price = find_break_even_price(product, platform, args.margin, args.ads)
    except BreakEvenOutOfRange as e:
        print(f"❌ {e}")
        sys.exit(1)
    result = simulate(product, platform, price, None, args.ads)
    print(f"🎯 {platform.name}: sell at ₹{price} for {args.margin:g}% margin")
    print(f"   Profit ₹{result.profit:.2f} | Margin {result.profit_margin:.1f}%")


def cmd_simulate(args):
    """What-if pricing on one platform."""
    from marketcalc.profit_calculator import compute_result, format_result, simulate

    products = _load_products(args)
    platforms = _load_platforms(args)
    product = _find_product(products, args.sku)
    platform = _find_platform(platforms, args.platform)

    current = compute_result(product, platform, args.ads)
    result = simulate(product, platform, args.price, args.mrp, args.ads)
    print(format_result(result))
    print()
    print(f"Δ Profit: ₹{result.profit - current.profit:+.2f} "
          f"| Δ Margin: {result.profit_margin - current.profit_margin:+.1f}%")


def cmd_alerts(args):
    """List product/platform pairs below the margin threshold."""
    from marketcalc.analytics import alert_counts, derive_alerts, filter_alerts
    from marketcalc.config import config
    from marketcalc.export import alerts_to_csv
    from marketcalc.models import AppSettings

    threshold = args.threshold if args.threshold is not None else config.MIN_MARGIN_ALERT
    settings = AppSettings(min_margin_alert=threshold)
    alerts = derive_alerts(_load_products(args), _load_platforms(args), settings, args.ads)
    counts = alert_counts(alerts)
    shown = filter_alerts(alerts, args.platform, args.severity)

    print(f"🚨 {counts['loss']} loss-making, {counts['low']} below {threshold:g}% margin")
    for a in shown:
        icon = "🔴" if a.severity.value == "loss" else "🟡"
        print(f"  {icon} {a.product.sku or a.product.name:<16} {a.platform.name:<12} "
              f"₹{a.result.profit:>9.2f} {a.result.profit_margin:>7.1f}%")
    print(f"Showing {len(shown)} of {len(alerts)} alerts")

    if args.output:
        with open(args.output, "w") as f:
            f.write(alerts_to_csv(shown))
        print(f"💾 Saved to {args.output}")


def cmd_heatmap(args):
    """Profit heatmap as a text grid."""
    from marketcalc.analytics import build_heatmap

    platforms = _load_platforms(args)
    heatmap = build_heatmap(_load_products(args), platforms, args.metric, args.ads)
    marks = {"strong": "██", "good": "▓▓", "fair": "▒▒", "thin": "░░",
             "neutral": "··", "weak": "--", "loss": "XX"}

    print(f"{'SKU':<16}" + "".join(f"{p.id[:10]:>14}" for p in platforms))
    for row in heatmap.rows:
        cells = "".join(
            f"{c.value:>10.1f} {marks[c.band.value]}{'*' if c.is_best else ' '}"
            for c in row.cells
        )
        print(f"{row.product.sku or row.product.name:<16}{cells}")
    print(f"{'avg profit':<16}" + "".join(f"{c.avg_profit:>14.0f}" for c in heatmap.columns))
    print(f"{'profitable':<16}" + "".join(f"{f'{c.profitable}/{c.total}':>14}" for c in heatmap.columns))


def cmd_marketplace(args):
    """All products on one marketplace."""
    from marketcalc.analytics import marketplace_rollup

    platform = _find_platform(_load_platforms(args), args.platform)
    rollup = marketplace_rollup(_load_products(args), platform, args.ads, args.search or "")
    print(rollup.summary())


def cmd_platforms(args):
    """List configured platforms."""
    from marketcalc.fees import PLATFORM_TYPE_LABELS

    print("📋 Platforms:")
    for p in _load_platforms(args):
        commission = f" {p.commission_percent:g}%" if p.commission_percent else ""
        tax = " (fees excl. GST)" if p.fees_excl_tax else ""
        print(f"  {p.id:<12} {p.name:<12} {PLATFORM_TYPE_LABELS[p.type]}{commission}{tax}")


def main(argv=None):
    from marketcalc.config import config

    parser = argparse.ArgumentParser(
        prog="marketcalc",
        description="Marketplace profit calculator — per-platform profit, break-even, alerts",
    )
    sub = parser.add_subparsers(dest="command", help="Command")

    def add_common(p, products=True):
        if products:
            p.add_argument("--products", required=True, help="JSON file of products")
        p.add_argument("--platforms", help="JSON file of platforms (default: built-in)")
        p.add_argument("--ads", type=float, default=config.GLOBAL_ADS_PERCENT,
                       help="Global ads %% of selling price")

    p = sub.add_parser("calc", help="Profit on every platform")
    add_common(p)
    p.add_argument("--sku", help="Only this product (id or SKU code)")
    p.add_argument("--output", "-o", help="Save results CSV")

    p = sub.add_parser("breakeven", help="Minimum price for a target margin")
    add_common(p)
    p.add_argument("--sku", required=True, help="Product id or SKU code")
    p.add_argument("--platform", required=True, help="Platform id")
    p.add_argument("--margin", type=float, default=0.0, help="Target margin %%")

    p = sub.add_parser("simulate", help="What-if selling price")
    add_common(p)
    p.add_argument("--sku", required=True, help="Product id or SKU code")
    p.add_argument("--platform", required=True, help="Platform id")
    p.add_argument("--price", type=float, required=True, help="New selling price")
    p.add_argument("--mrp", type=float, help="New MRP")

    p = sub.add_parser("alerts", help="Low-margin and loss alerts")
    add_common(p)
    p.add_argument("--threshold", type=float, help="Minimum acceptable margin %%")
    p.add_argument("--platform", help="Only this platform id")
    p.add_argument("--severity", choices=["loss", "low"], help="Only this severity")
    p.add_argument("--output", "-o", help="Save alerts CSV")

    p = sub.add_parser("heatmap", help="Profit heatmap")
    add_common(p)
    p.add_argument("--metric", default="profit", choices=["profit", "margin", "monthlyProfit"])

    p = sub.add_parser("marketplace", help="All products on one marketplace")
    add_common(p)
    p.add_argument("--platform", required=True, help="Platform id")
    p.add_argument("--search", "-s", help="Filter by name or SKU code")

    p = sub.add_parser("platforms", help="List platforms")
    add_common(p, products=False)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    config.validate()
    config.configure_logging()

    commands = {
        "calc": cmd_calc,
        "breakeven": cmd_breakeven,
        "simulate": cmd_simulate,
        "alerts": cmd_alerts,
        "heatmap": cmd_heatmap,
        "marketplace": cmd_marketplace,
        "platforms": cmd_platforms,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
